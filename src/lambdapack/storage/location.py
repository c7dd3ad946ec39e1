"""Parsing of ``s3://bucket/key`` location strings."""

from __future__ import annotations

import re
from dataclasses import dataclass

S3_LOCATION_PATTERN = re.compile(r"^s3://([a-z0-9][a-z0-9.-]{2,62})(?:/(.*))?$")


@dataclass(frozen=True, slots=True)
class S3Location:
    bucket: str
    key: str = ""

    def __str__(self) -> str:
        return f"s3://{self.bucket}/{self.key}" if self.key else f"s3://{self.bucket}"

    def join(self, name: str) -> S3Location:
        """Return a location for *name* beneath this key prefix."""
        key = f"{self.key.rstrip('/')}/{name}".lstrip("/")
        return S3Location(bucket=self.bucket, key=key)

    @property
    def name(self) -> str:
        return self.key.rstrip("/").rsplit("/", 1)[-1]


def parse_s3_location(value: str) -> S3Location | None:
    match = S3_LOCATION_PATTERN.fullmatch(value)
    if match is None:
        return None
    return S3Location(bucket=match.group(1), key=match.group(2) or "")


def is_s3_location(value: str) -> bool:
    return value.startswith("s3://")
