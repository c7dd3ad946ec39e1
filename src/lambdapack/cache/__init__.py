"""Content-addressed dependency cache APIs."""

from .keys import cache_key, dependency_archive_name, project_archive_name, slugify
from .store import (
    CacheError,
    CacheHit,
    CacheLookup,
    CacheMiss,
    ObjectCache,
    S3ObjectCache,
    open_s3_cache,
)

__all__ = [
    "CacheError",
    "CacheHit",
    "CacheLookup",
    "CacheMiss",
    "ObjectCache",
    "S3ObjectCache",
    "cache_key",
    "dependency_archive_name",
    "open_s3_cache",
    "project_archive_name",
    "slugify",
]
