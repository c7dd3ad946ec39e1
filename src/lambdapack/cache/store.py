"""Object-store backed dependency archive cache."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from lambdapack.errors import Stage, TransferError, ValidationError
from lambdapack.storage.location import S3Location, parse_s3_location
from lambdapack.storage.s3 import S3Storage


@dataclass(frozen=True, slots=True)
class CacheHit:
    """Entry exists; ``payload`` is set only when the probe fetched it."""

    payload: bytes | None = None


@dataclass(frozen=True, slots=True)
class CacheMiss:
    pass


@dataclass(frozen=True, slots=True)
class CacheError:
    cause: Exception


CacheLookup = CacheHit | CacheMiss | CacheError


class ObjectCache(Protocol):
    def probe(self, name: str, *, fetch: bool) -> CacheLookup:
        """Check for *name*, downloading its payload when *fetch* is set."""

    def put(self, name: str, path: Path) -> str:
        """Store the file at *path* under *name* and return its location."""


class S3ObjectCache:
    def __init__(self, storage: S3Storage, location: S3Location) -> None:
        self.storage = storage
        self.location = location

    def entry(self, name: str) -> S3Location:
        return self.location.join(name)

    def probe(self, name: str, *, fetch: bool) -> CacheLookup:
        entry = self.entry(name)
        try:
            if fetch:
                payload = self.storage.get_bytes(entry, stage=Stage.PROBE)
                return CacheMiss() if payload is None else CacheHit(payload=payload)
            return CacheHit() if self.storage.head(entry, stage=Stage.PROBE) else CacheMiss()
        except TransferError as exc:
            return CacheError(cause=exc)

    def put(self, name: str, path: Path) -> str:
        return self.storage.upload(path, self.entry(name), stage=Stage.CACHE)

    def __repr__(self) -> str:
        return f"S3ObjectCache({self.location})"


def open_s3_cache(uri: str, storage: S3Storage | None = None) -> S3ObjectCache:
    location = parse_s3_location(uri)
    if location is None:
        raise ValidationError(
            "Invalid cache location.",
            hint="Expected s3://bucket[/prefix].",
            context={"operation": "open_cache", "uri": uri},
        )
    return S3ObjectCache(storage or S3Storage(), location)
