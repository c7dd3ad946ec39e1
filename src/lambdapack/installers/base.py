"""Typed interface for dependency installers."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol


class Installer(Protocol):
    name: str

    def install(self, directory: Path) -> Path:
        """Install production dependencies of ``directory/package.json`` in place.

        Returns the installed-dependency tree (``directory/node_modules``).
        """
