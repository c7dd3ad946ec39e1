"""Manifest parser and serializer."""

from __future__ import annotations

import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from lambdapack.errors import MalformedManifestError
from lambdapack.manifest.model import Manifest

ManifestSource = Manifest | Mapping[str, Any] | str | Path


def load_manifest(source: ManifestSource) -> Manifest:
    """Load a manifest from a model, a mapping, a JSON string, or a ``.json`` path."""
    if isinstance(source, Manifest):
        return source
    if isinstance(source, Path):
        return read_manifest(source)
    if isinstance(source, str):
        if source.endswith(".json"):
            return read_manifest(source)
        return parse_manifest(source)
    if isinstance(source, Mapping):
        return manifest_from_payload(source)
    raise MalformedManifestError(
        f"Unsupported manifest source type: {type(source).__name__}",
        hint="Pass a mapping, a JSON string, or a path to package.json.",
    )


def parse_manifest(raw: str) -> Manifest:
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise MalformedManifestError("Invalid manifest JSON.", hint=str(exc)) from exc
    return manifest_from_payload(payload)


def read_manifest(path: str | Path) -> Manifest:
    manifest_path = Path(path)
    try:
        raw = manifest_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise MalformedManifestError(
            "Manifest file cannot be read.",
            hint=str(exc),
            context={"path": str(manifest_path)},
        ) from exc
    return parse_manifest(raw)


def write_manifest(manifest: Manifest, path: str | Path) -> Path:
    manifest_path = Path(path)
    manifest_path.parent.mkdir(parents=True, exist_ok=True)
    manifest_path.write_text(serialize_manifest(manifest), encoding="utf-8")
    return manifest_path


def serialize_manifest(manifest: Manifest) -> str:
    return json.dumps(manifest.to_payload(), indent=2, ensure_ascii=False) + "\n"


def manifest_from_payload(payload: Any) -> Manifest:
    if not isinstance(payload, Mapping):
        raise MalformedManifestError("Invalid manifest payload type.")

    name = payload.get("name")
    if not isinstance(name, str) or not name:
        raise MalformedManifestError(
            "Manifest is missing a `name`.",
            hint="package.json must declare a non-empty string name.",
        )

    dependencies = payload.get("dependencies")
    if not isinstance(dependencies, Mapping):
        raise MalformedManifestError(
            "Manifest is missing a `dependencies` mapping.",
            hint="package.json must declare dependencies, even if empty.",
            context={"name": name},
        )
    for dep, version in dependencies.items():
        if not isinstance(dep, str) or not isinstance(version, str):
            raise MalformedManifestError(
                "Invalid dependency entry in manifest.",
                context={"name": name, "dependency": str(dep)},
            )

    fields = {
        key: value for key, value in payload.items() if key not in ("name", "dependencies")
    }
    return Manifest(name=name, dependencies=dict(dependencies), fields=fields)
