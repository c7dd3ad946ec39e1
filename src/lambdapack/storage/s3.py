"""Object store access over boto3."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import boto3
from boto3.exceptions import S3UploadFailedError
from botocore.exceptions import BotoCoreError, ClientError

from lambdapack.errors import Stage, TransferError
from lambdapack.storage.location import S3Location

NOT_FOUND_CODES = frozenset({"404", "NoSuchKey", "NotFound"})


def is_not_found(exc: ClientError) -> bool:
    return str(exc.response.get("Error", {}).get("Code", "")) in NOT_FOUND_CODES


class S3Storage:
    """Thin wrapper over an S3 client that reports failures as ``TransferError``.

    ``head`` and ``get_bytes`` report a missing object as ``False``/``None`` so
    callers can tell a miss apart from a transfer failure.
    """

    def __init__(self, client: Any | None = None, *, region: str | None = None) -> None:
        self._client = client
        self.region = region

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = (
                boto3.client("s3", region_name=self.region) if self.region else boto3.client("s3")
            )
        return self._client

    def head(self, location: S3Location, *, stage: Stage = Stage.PROBE) -> bool:
        try:
            self.client.head_object(Bucket=location.bucket, Key=location.key)
        except ClientError as exc:
            if is_not_found(exc):
                return False
            raise _transfer_error("head_object", location, exc, stage=stage) from exc
        except BotoCoreError as exc:
            raise _transfer_error("head_object", location, exc, stage=stage) from exc
        return True

    def get_bytes(self, location: S3Location, *, stage: Stage = Stage.FETCH) -> bytes | None:
        try:
            response = self.client.get_object(Bucket=location.bucket, Key=location.key)
            return response["Body"].read()
        except ClientError as exc:
            if is_not_found(exc):
                return None
            raise _transfer_error("get_object", location, exc, stage=stage) from exc
        except BotoCoreError as exc:
            raise _transfer_error("get_object", location, exc, stage=stage) from exc

    def download(self, location: S3Location, path: Path, *, stage: Stage = Stage.FETCH) -> Path:
        payload = self.get_bytes(location, stage=stage)
        if payload is None:
            raise TransferError(
                "Object does not exist.",
                stage=stage,
                hint="Check the bucket and key of the source location.",
                context={"operation": "get_object", "location": str(location)},
            )
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(payload)
        return path

    def upload(self, path: Path, location: S3Location, *, stage: Stage = Stage.UPLOAD) -> str:
        try:
            self.client.upload_file(str(path), location.bucket, location.key)
        except (S3UploadFailedError, ClientError, BotoCoreError, OSError) as exc:
            raise _transfer_error("upload_file", location, exc, stage=stage) from exc
        return str(location)


def _transfer_error(
    operation: str,
    location: S3Location,
    exc: Exception,
    *,
    stage: Stage,
) -> TransferError:
    return TransferError(
        f"S3 {operation} failed.",
        stage=stage,
        hint=str(exc),
        context={"operation": operation, "location": str(location)},
    )
