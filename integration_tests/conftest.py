"""Shared helpers for integration tests."""

from __future__ import annotations

import json
import shutil
import tarfile
from pathlib import Path

import pytest


def requires_tool(name: str) -> pytest.MarkDecorator:
    return pytest.mark.skipif(shutil.which(name) is None, reason=f"{name} not available.")


def write_bundle(directory: Path, name: str, manifest: dict[str, object]) -> Path:
    """Create an `npm pack` style tarball with a top-level ``package/`` directory."""
    package = directory / "bundle-src" / "package"
    package.mkdir(parents=True)
    (package / "package.json").write_text(json.dumps(manifest), encoding="utf-8")
    (package / "index.js").write_text(
        "exports.handler = async () => require('is-number')(42);\n",
        encoding="utf-8",
    )
    bundle = directory / name
    with tarfile.open(bundle, "w:gz") as archive:
        archive.add(package, arcname="package")
    return bundle
