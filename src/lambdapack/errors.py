"""Typed packager error model with stable, machine-readable error codes."""

from __future__ import annotations

from collections.abc import Mapping
from enum import StrEnum


class ErrorCode(StrEnum):
    """Stable error identifiers used across API surfaces."""

    VALIDATION = "E_VALIDATION"
    MALFORMED_MANIFEST = "E_MALFORMED_MANIFEST"
    INVALID_SOURCE_NAME = "E_INVALID_SOURCE_NAME"
    INSTALL = "E_INSTALL"
    COMPRESS = "E_COMPRESS"
    TRANSFER = "E_TRANSFER"
    CLEANUP = "E_CLEANUP"


class Stage(StrEnum):
    """Pipeline stage at which an error was raised."""

    VALIDATE = "validate"
    NORMALIZE = "normalize"
    PROBE = "probe"
    INSTALL = "install"
    COMPRESS = "compress"
    CACHE = "cache"
    MATERIALIZE = "materialize"
    FETCH = "fetch"
    EXTRACT = "extract"
    PACKAGE = "package"
    UPLOAD = "upload"
    CLEANUP = "cleanup"


class PackagerError(Exception):
    """Base error class that carries code, stage, optional hint, and context."""

    code: str
    stage: str | None
    hint: str | None
    context: Mapping[str, str]

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode,
        stage: Stage | None = None,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code.value
        self.stage = stage.value if stage is not None else None
        self.hint = hint
        self.context = dict(context or {})

    def __str__(self) -> str:
        parts = [super().__str__()]
        if self.stage:
            parts.append(f"Stage: {self.stage}")
        if self.hint:
            parts.append(f"Hint: {self.hint}")
        if self.context:
            for k, v in self.context.items():
                if v:
                    parts.append(f"  {k}: {v}")
        return "\n".join(parts)

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "code": self.code,
            "message": str(self),
            "stage": self.stage,
            "context": dict(self.context),
        }
        if self.hint is not None:
            payload["hint"] = self.hint
        return payload


class ValidationError(PackagerError):
    def __init__(
        self,
        message: str,
        *,
        stage: Stage | None = Stage.VALIDATE,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(
            message, code=ErrorCode.VALIDATION, stage=stage, hint=hint, context=context
        )


class MalformedManifestError(PackagerError):
    def __init__(
        self,
        message: str,
        *,
        stage: Stage | None = Stage.NORMALIZE,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(
            message, code=ErrorCode.MALFORMED_MANIFEST, stage=stage, hint=hint, context=context
        )


class InvalidSourceNameError(PackagerError):
    def __init__(
        self,
        message: str,
        *,
        stage: Stage | None = Stage.VALIDATE,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(
            message, code=ErrorCode.INVALID_SOURCE_NAME, stage=stage, hint=hint, context=context
        )


class InstallError(PackagerError):
    def __init__(
        self,
        message: str,
        *,
        stage: Stage | None = Stage.INSTALL,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.INSTALL, stage=stage, hint=hint, context=context)


class CompressError(PackagerError):
    def __init__(
        self,
        message: str,
        *,
        stage: Stage | None = Stage.COMPRESS,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.COMPRESS, stage=stage, hint=hint, context=context)


class TransferError(PackagerError):
    def __init__(
        self,
        message: str,
        *,
        stage: Stage | None = Stage.FETCH,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.TRANSFER, stage=stage, hint=hint, context=context)


class CleanupError(PackagerError):
    """Best-effort cleanup failure; logged, never raised over another error."""

    def __init__(
        self,
        message: str,
        *,
        stage: Stage | None = Stage.CLEANUP,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.CLEANUP, stage=stage, hint=hint, context=context)


__all__ = [
    "CleanupError",
    "CompressError",
    "ErrorCode",
    "InstallError",
    "InvalidSourceNameError",
    "MalformedManifestError",
    "PackagerError",
    "Stage",
    "TransferError",
    "ValidationError",
]
