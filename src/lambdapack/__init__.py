"""Public package entrypoint for the function-runtime packager."""

from .builder import DependencyArchive, DependencyArchiveBuilder, archive_modules
from .config import PackagerConfig
from .errors import (
    CleanupError,
    CompressError,
    ErrorCode,
    InstallError,
    InvalidSourceNameError,
    MalformedManifestError,
    PackagerError,
    Stage,
    TransferError,
    ValidationError,
)
from .manifest import Manifest
from .observability import StructuredLogger
from .project import ProjectArchive, ProjectArchiveOrchestrator, archive_project

__all__ = [
    "CleanupError",
    "CompressError",
    "DependencyArchive",
    "DependencyArchiveBuilder",
    "ErrorCode",
    "InstallError",
    "InvalidSourceNameError",
    "MalformedManifestError",
    "Manifest",
    "PackagerConfig",
    "PackagerError",
    "ProjectArchive",
    "ProjectArchiveOrchestrator",
    "Stage",
    "StructuredLogger",
    "TransferError",
    "ValidationError",
    "archive_modules",
    "archive_project",
]
