"""Manifest loading and normalization APIs."""

from .io import load_manifest, parse_manifest, read_manifest, serialize_manifest, write_manifest
from .model import Manifest
from .normalize import (
    DEFAULT_PREINSTALLED,
    FixedPreinstalled,
    PreinstalledProvider,
    RuntimePreinstalled,
    normalize_manifest,
)

__all__ = [
    "DEFAULT_PREINSTALLED",
    "FixedPreinstalled",
    "Manifest",
    "PreinstalledProvider",
    "RuntimePreinstalled",
    "load_manifest",
    "normalize_manifest",
    "parse_manifest",
    "read_manifest",
    "serialize_manifest",
    "write_manifest",
]
