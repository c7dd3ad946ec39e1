"""Cache key and archive name derivation."""

from __future__ import annotations

import hashlib
import json
import re
from collections.abc import Mapping

MODULES_PREFIX = "modules"
PROJECT_PREFIX = "archived"

_WHITESPACE = re.compile(r"\s+")
_UNSAFE = re.compile(r"[^A-Za-z0-9._-]")


def slugify(name: str) -> str:
    """Collapse whitespace runs to one hyphen and replace key-unsafe characters."""
    return _UNSAFE.sub("-", _WHITESPACE.sub("-", name))


def canonical_dependencies(dependencies: Mapping[str, str]) -> str:
    return json.dumps(
        dict(dependencies),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )


def dependencies_digest(dependencies: Mapping[str, str]) -> str:
    canonical = canonical_dependencies(dependencies)
    return hashlib.md5(canonical.encode("utf-8")).hexdigest()  # noqa: S324 - cache key, not security


def cache_key(project_name: str, dependencies: Mapping[str, str]) -> str:
    return f"{MODULES_PREFIX}-{slugify(project_name)}-{dependencies_digest(dependencies)}"


def dependency_archive_name(key: str) -> str:
    return f"{key}.tgz"


def project_archive_name(project_name: str) -> str:
    return f"{PROJECT_PREFIX}-{slugify(project_name)}.zip"
