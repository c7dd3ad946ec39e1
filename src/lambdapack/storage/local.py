"""Local filesystem transfers."""

from __future__ import annotations

import shutil
from pathlib import Path

from lambdapack.errors import Stage, TransferError


def copy_file(source: Path, target: Path, *, stage: Stage) -> Path:
    """Copy *source* to *target*, creating parent directories as needed."""
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(source, target)
    except OSError as exc:
        raise TransferError(
            "File copy failed.",
            stage=stage,
            hint=str(exc),
            context={"operation": "copy_file", "source": str(source), "target": str(target)},
        ) from exc
    return target
