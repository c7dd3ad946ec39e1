"""Removal of runtime-provided dependencies from a manifest."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from lambdapack.manifest.model import Manifest

DEFAULT_PREINSTALLED: tuple[str, ...] = ("aws-sdk",)


class PreinstalledProvider(Protocol):
    def modules(self) -> frozenset[str]:
        """Return package names guaranteed to exist in the target runtime."""


@dataclass(frozen=True, slots=True)
class FixedPreinstalled:
    names: tuple[str, ...] = DEFAULT_PREINSTALLED

    def modules(self) -> frozenset[str]:
        return frozenset(self.names)


@dataclass(frozen=True, slots=True)
class RuntimePreinstalled:
    """Probe ``<runtime_dir>/node_modules`` for packages bundled with the runtime."""

    runtime_dir: Path
    fallback: FixedPreinstalled = FixedPreinstalled()

    def modules(self) -> frozenset[str]:
        modules_dir = Path(self.runtime_dir) / "node_modules"
        try:
            found = _list_packages(modules_dir)
        except OSError:
            return self.fallback.modules()
        return found or self.fallback.modules()


def normalize_manifest(manifest: Manifest, provider: PreinstalledProvider) -> Manifest:
    """Return a copy of *manifest* without the provider's preinstalled packages."""
    return manifest.without(provider.modules())


def _list_packages(modules_dir: Path) -> frozenset[str]:
    names: set[str] = set()
    for entry in modules_dir.iterdir():
        if entry.name.startswith("."):
            continue
        if entry.name.startswith("@") and entry.is_dir():
            # scoped packages live one level down: @scope/name
            for scoped in entry.iterdir():
                if not scoped.name.startswith("."):
                    names.add(f"{entry.name}/{scoped.name}")
            continue
        names.add(entry.name)
    return frozenset(names)
