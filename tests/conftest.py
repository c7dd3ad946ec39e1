"""Shared test fixtures."""

from __future__ import annotations

import io
import json
import tarfile
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
from boto3.exceptions import S3UploadFailedError
from botocore.exceptions import ClientError

from lambdapack.cache.store import CacheError, CacheHit, CacheLookup, CacheMiss
from lambdapack.config import PackagerConfig
from lambdapack.errors import InstallError, TransferError


class FakeInstaller:
    """Writes one ``node_modules/<dep>/package.json`` per declared dependency."""

    name = "fake"

    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.calls: list[Path] = []
        self.manifests: list[dict[str, Any]] = []

    def install(self, directory: Path) -> Path:
        self.calls.append(directory)
        manifest = json.loads((directory / "package.json").read_text(encoding="utf-8"))
        self.manifests.append(manifest)
        if self.fail:
            raise InstallError("npm install failed.", context={"installer": self.name})
        modules_dir = directory / "node_modules"
        modules_dir.mkdir(parents=True, exist_ok=True)
        for dep, version in manifest["dependencies"].items():
            package_dir = modules_dir / dep
            package_dir.mkdir(parents=True, exist_ok=True)
            (package_dir / "package.json").write_text(
                json.dumps({"name": dep, "version": version}),
                encoding="utf-8",
            )
        return modules_dir


class MemoryCache:
    """In-memory object cache with switchable probe/put failures."""

    def __init__(self, *, probe_error: bool = False, put_error: bool = False) -> None:
        self.entries: dict[str, bytes] = {}
        self.probe_error = probe_error
        self.put_error = put_error
        self.probes: list[tuple[str, bool]] = []
        self.puts: list[str] = []

    def probe(self, name: str, *, fetch: bool) -> CacheLookup:
        self.probes.append((name, fetch))
        if self.probe_error:
            return CacheError(cause=TransferError("S3 head_object failed."))
        if name not in self.entries:
            return CacheMiss()
        return CacheHit(payload=self.entries[name] if fetch else None)

    def put(self, name: str, path: Path) -> str:
        self.puts.append(name)
        if self.put_error:
            raise TransferError("S3 upload_file failed.")
        self.entries[name] = path.read_bytes()
        return f"memory://cache/{name}"

    def __repr__(self) -> str:
        return "MemoryCache()"


class FakeS3Client:
    """Subset of the boto3 S3 client API backed by a dict."""

    def __init__(self, *, errors: dict[str, str] | None = None) -> None:
        self.objects: dict[tuple[str, str], bytes] = {}
        self.errors = dict(errors or {})
        self.calls: list[tuple[str, str, str]] = []

    def head_object(self, *, Bucket: str, Key: str) -> dict[str, Any]:  # noqa: N803
        self._record("head_object", Bucket, Key)
        if (Bucket, Key) not in self.objects:
            raise _client_error("404", "HeadObject")
        return {"ContentLength": len(self.objects[(Bucket, Key)])}

    def get_object(self, *, Bucket: str, Key: str) -> dict[str, Any]:  # noqa: N803
        self._record("get_object", Bucket, Key)
        if (Bucket, Key) not in self.objects:
            raise _client_error("NoSuchKey", "GetObject")
        return {"Body": io.BytesIO(self.objects[(Bucket, Key)])}

    def upload_file(self, filename: str, bucket: str, key: str) -> None:
        # the transfer manager reports PutObject failures as S3UploadFailedError
        try:
            self._record("upload_file", bucket, key)
        except ClientError as exc:
            raise S3UploadFailedError(
                f"Failed to upload {filename} to {bucket}/{key}: {exc}"
            ) from exc
        self.objects[(bucket, key)] = Path(filename).read_bytes()

    def _record(self, operation: str, bucket: str, key: str) -> None:
        self.calls.append((operation, bucket, key))
        code = self.errors.get(operation)
        if code:
            raise _client_error(code, operation)


def _client_error(code: str, operation: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


@pytest.fixture
def installer() -> FakeInstaller:
    return FakeInstaller()


@pytest.fixture
def failing_installer() -> FakeInstaller:
    return FakeInstaller(fail=True)


@pytest.fixture
def memory_cache() -> MemoryCache:
    return MemoryCache()


@pytest.fixture
def cache_factory() -> Callable[..., MemoryCache]:
    return MemoryCache


@pytest.fixture
def s3_client() -> FakeS3Client:
    return FakeS3Client()


@pytest.fixture
def s3_client_factory() -> Callable[..., FakeS3Client]:
    return FakeS3Client


@pytest.fixture
def builtin_config() -> PackagerConfig:
    """Config that never shells out to tar/zip."""
    return PackagerConfig(compressor="builtin")


@pytest.fixture
def make_bundle(tmp_path: Path) -> Callable[..., Path]:
    """Create an ``npm pack`` style bundle: everything nested under ``package/``."""

    def _make(
        name: str = "foo-1.0.0.tgz",
        manifest: dict[str, Any] | None = None,
        files: dict[str, str] | None = None,
    ) -> Path:
        manifest = manifest or {
            "name": "foo",
            "version": "1.0.0",
            "dependencies": {"left-pad": "1.0.0"},
        }
        files = files or {"index.js": "exports.handler = async () => 'ok';\n"}
        bundle_dir = tmp_path / "bundles"
        bundle_dir.mkdir(parents=True, exist_ok=True)
        bundle_path = bundle_dir / name
        entries = {"package/package.json": json.dumps(manifest)}
        entries.update({f"package/{rel}": content for rel, content in files.items()})
        with tarfile.open(bundle_path, "w:gz") as archive:
            for arcname, content in entries.items():
                payload = content.encode("utf-8")
                info = tarfile.TarInfo(arcname)
                info.size = len(payload)
                info.mode = 0o644
                archive.addfile(info, io.BytesIO(payload))
        return bundle_path

    return _make


def snapshot_tree(root: Path) -> dict[str, bytes]:
    """Capture every file under *root* as ``{relative_path: content}``."""
    return {
        path.relative_to(root).as_posix(): path.read_bytes()
        for path in sorted(root.rglob("*"))
        if path.is_file()
    }


@pytest.fixture
def tree_snapshot() -> Callable[[Path], dict[str, bytes]]:
    return snapshot_tree
