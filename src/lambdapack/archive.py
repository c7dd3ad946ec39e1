"""Tarball and zip creation/extraction.

Each operation prefers an external binary (``tar``/``zip``) and falls back to
the :mod:`tarfile`/:mod:`zipfile` implementation when the compressor mode is
``builtin`` or the binary is not on ``PATH``.
"""

from __future__ import annotations

import os
import shutil
import subprocess
import tarfile
import zipfile
from pathlib import Path

from lambdapack.config import CompressorMode
from lambdapack.errors import CompressError, Stage

ZIP_LEVEL = 9


def create_tarball(
    source: Path,
    target: Path,
    *,
    compressor: CompressorMode = "external",
    tar_command: str = "tar",
    stage: Stage = Stage.COMPRESS,
) -> Path:
    """Write a gzip tarball of *source* to *target* with ``source.name`` as the root entry."""
    _ensure_exists(source, operation="create_tarball", stage=stage)
    target = target.resolve()
    target.parent.mkdir(parents=True, exist_ok=True)

    if _use_external(compressor, tar_command):
        _run(
            [tar_command, "-czf", str(target), source.name],
            cwd=source.parent,
            operation="create_tarball",
            stage=stage,
        )
        return target

    try:
        with tarfile.open(target, "w:gz") as archive:
            archive.add(source, arcname=source.name)
    except (tarfile.TarError, OSError) as exc:
        raise CompressError(
            "Creating tarball failed.",
            stage=stage,
            hint=str(exc),
            context={"operation": "create_tarball", "source": str(source)},
        ) from exc
    return target


def extract_tarball(
    source: Path,
    target: Path,
    *,
    compressor: CompressorMode = "external",
    tar_command: str = "tar",
    stage: Stage = Stage.EXTRACT,
) -> Path:
    """Extract a gzip tarball into *target*, creating the directory if absent."""
    _ensure_exists(source, operation="extract_tarball", stage=stage)
    if target.exists() and not target.is_dir():
        raise CompressError(
            "Extraction target exists and is not a directory.",
            stage=stage,
            context={"operation": "extract_tarball", "target": str(target)},
        )
    target.mkdir(parents=True, exist_ok=True)

    if _use_external(compressor, tar_command):
        _run(
            [tar_command, "-xzf", str(source.resolve()), "-C", str(target.resolve())],
            cwd=target,
            operation="extract_tarball",
            stage=stage,
        )
        return target

    try:
        with tarfile.open(source, "r:gz") as archive:
            archive.extractall(target, filter="data")
    except (tarfile.TarError, OSError) as exc:
        raise CompressError(
            "Extracting tarball failed.",
            stage=stage,
            hint=str(exc),
            context={"operation": "extract_tarball", "source": str(source)},
        ) from exc
    return target


def create_zip(
    source: Path,
    target: Path,
    *,
    compressor: CompressorMode = "external",
    zip_command: str = "zip",
    stage: Stage = Stage.PACKAGE,
) -> Path:
    """Zip *source*; a directory's contents are stored at the archive root."""
    _ensure_exists(source, operation="create_zip", stage=stage)
    target = target.resolve()
    target.parent.mkdir(parents=True, exist_ok=True)
    target.unlink(missing_ok=True)

    if _use_external(compressor, zip_command):
        if source.is_dir():
            argv = [zip_command, "-qr", "-9", str(target), "."]
            cwd = source
        else:
            argv = [zip_command, "-q", "-9", str(target), source.name]
            cwd = source.parent
        _run(argv, cwd=cwd, operation="create_zip", stage=stage)
        return target

    try:
        with zipfile.ZipFile(
            target, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=ZIP_LEVEL
        ) as archive:
            if source.is_dir():
                for path in _walk(source):
                    archive.write(path, path.relative_to(source).as_posix())
            else:
                archive.write(source, source.name)
    except (zipfile.BadZipFile, OSError) as exc:
        raise CompressError(
            "Creating zip archive failed.",
            stage=stage,
            hint=str(exc),
            context={"operation": "create_zip", "source": str(source)},
        ) from exc
    return target


def _walk(root: Path) -> list[Path]:
    entries: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames.sort()
        base = Path(dirpath)
        entries.extend(base / name for name in dirnames)
        entries.extend(base / name for name in sorted(filenames))
    return entries


def _use_external(compressor: CompressorMode, command: str) -> bool:
    return compressor == "external" and shutil.which(command) is not None


def _ensure_exists(source: Path, *, operation: str, stage: Stage) -> None:
    if not source.exists():
        raise CompressError(
            "Archive source does not exist.",
            stage=stage,
            context={"operation": operation, "source": str(source)},
        )


def _run(argv: list[str], *, cwd: Path, operation: str, stage: Stage) -> None:
    result = subprocess.run(
        argv,
        cwd=str(cwd),
        capture_output=True,
        text=True,
        check=False,
    )
    if result.returncode != 0:
        raise CompressError(
            f"{argv[0]} exited with status {result.returncode}.",
            stage=stage,
            hint="Check the archive tool output for details.",
            context={
                "operation": operation,
                "returncode": str(result.returncode),
                "stderr": result.stderr[:2000] if result.stderr else "",
                "command": " ".join(argv),
            },
        )
