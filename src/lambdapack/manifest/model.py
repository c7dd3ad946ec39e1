"""Dependency manifest model."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class Manifest:
    """A ``package.json`` document split into name, dependencies, and the rest."""

    name: str
    dependencies: dict[str, str]
    fields: dict[str, Any] = field(default_factory=dict)

    def without(self, excluded: frozenset[str]) -> Manifest:
        """Return a copy with every dependency named in *excluded* removed."""
        return Manifest(
            name=self.name,
            dependencies={
                dep: version for dep, version in self.dependencies.items() if dep not in excluded
            },
            fields=dict(self.fields),
        )

    def to_payload(self) -> dict[str, Any]:
        payload = dict(self.fields)
        payload["name"] = self.name
        payload["dependencies"] = dict(self.dependencies)
        return payload
