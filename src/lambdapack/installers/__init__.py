"""Dependency installer implementations."""

from .base import Installer
from .npm import NPM_INSTALL_ARGS, NpmInstaller

__all__ = ["Installer", "NPM_INSTALL_ARGS", "NpmInstaller"]
