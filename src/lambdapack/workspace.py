"""Working-root lifecycle helpers."""

from __future__ import annotations

import shutil
import tempfile
from pathlib import Path

from lambdapack.errors import CleanupError, Stage
from lambdapack.observability import StructuredLogger


def create_working_root(prefix: str) -> Path:
    return Path(tempfile.mkdtemp(prefix=prefix))


def remove_working_root(root: Path, *, logger: StructuredLogger, operation: str) -> bool:
    """Delete *root* recursively. Failures are logged, never raised."""
    if not root.exists():
        return True
    try:
        shutil.rmtree(root)
    except OSError as exc:
        error = CleanupError(
            "Failed to remove working root.",
            hint=str(exc),
            context={"operation": operation, "path": str(root)},
        )
        logger.log(
            operation=operation,
            stage=Stage.CLEANUP,
            message=str(error),
            level="warning",
            extra=error.to_dict(),
        )
        return False
    logger.log(operation=operation, stage=Stage.CLEANUP, message=f"removed working root '{root}'")
    return True
