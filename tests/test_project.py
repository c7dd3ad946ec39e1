import zipfile
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from lambdapack.config import PackagerConfig
from lambdapack.errors import (
    CompressError,
    InstallError,
    InvalidSourceNameError,
    MalformedManifestError,
    Stage,
    TransferError,
)
from lambdapack.observability import StructuredLogger
from lambdapack.project import ProjectArchiveOrchestrator, archive_project, plan_project
from lambdapack.storage import S3Storage


@pytest.fixture
def working_root(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Pin the orchestrator's temporary root to a known path."""
    root = tmp_path / "packager-root"

    def fake_root(prefix: str) -> Path:
        root.mkdir()
        return root

    monkeypatch.setattr("lambdapack.project.create_working_root", fake_root)
    return root


def _orchestrator(
    config: PackagerConfig,
    installer: Any,
    *,
    storage: S3Storage | None = None,
    logger: StructuredLogger | None = None,
) -> ProjectArchiveOrchestrator:
    return ProjectArchiveOrchestrator(
        config,
        storage=storage or S3Storage(client=object()),
        installer=installer,
        logger=logger or StructuredLogger(),
    )


def test_local_bundle_is_packaged_into_target_directory(
    tmp_path: Path,
    make_bundle: Callable[..., Path],
    builtin_config: PackagerConfig,
    installer: Any,
    working_root: Path,
) -> None:
    bundle = make_bundle("foo-1.0.0.tgz")
    target_dir = tmp_path / "dist"

    location = _orchestrator(builtin_config, installer).run(
        str(bundle), str(target_dir), disable_upload=True
    )

    assert location == str(target_dir / "foo-1.0.0.zip")
    with zipfile.ZipFile(location) as zf:
        names = set(zf.namelist())
    assert {"index.js", "package.json", "node_modules/left-pad/package.json"} <= names
    assert not any(name.startswith(("package/", "package-modules/")) for name in names)
    assert len(installer.calls) == 1
    assert not working_root.exists()


def test_target_ending_in_zip_is_used_verbatim(
    tmp_path: Path,
    make_bundle: Callable[..., Path],
    builtin_config: PackagerConfig,
    installer: Any,
) -> None:
    bundle = make_bundle("foo-1.0.0.tgz")
    target = tmp_path / "out" / "release.zip"

    location = archive_project(
        str(bundle), str(target), config=builtin_config, installer=installer
    )

    assert location == str(target)
    assert zipfile.is_zipfile(target)


def test_keep_retains_working_root(
    tmp_path: Path,
    make_bundle: Callable[..., Path],
    builtin_config: PackagerConfig,
    installer: Any,
    working_root: Path,
) -> None:
    bundle = make_bundle("foo-1.0.0.tgz")

    result = _orchestrator(builtin_config, installer).package(
        str(bundle), str(tmp_path / "dist"), keep=True
    )

    assert result.working_root == working_root
    assert (working_root / "package" / "node_modules" / "left-pad").is_dir()
    assert (working_root / "archived-foo.zip").exists()


def test_invalid_source_name_fails_before_any_side_effect(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    builtin_config: PackagerConfig,
    installer: Any,
) -> None:
    def forbidden(*args: object, **kwargs: object) -> None:
        raise AssertionError("no filesystem or network activity expected")

    monkeypatch.setattr("lambdapack.project.create_working_root", forbidden)
    monkeypatch.setattr("lambdapack.project.copy_file", forbidden)
    client = type("Client", (), {"get_object": forbidden, "upload_file": forbidden})()
    orchestrator = _orchestrator(builtin_config, installer, storage=S3Storage(client=client))

    with pytest.raises(InvalidSourceNameError) as excinfo:
        orchestrator.run(str(tmp_path / "foo.tar"), str(tmp_path / "dist"))

    assert excinfo.value.stage == "validate"
    assert installer.calls == []
    assert not (tmp_path / "dist").exists()


def test_compress_failure_cleans_up_and_surfaces_original_error(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    make_bundle: Callable[..., Path],
    builtin_config: PackagerConfig,
    installer: Any,
    working_root: Path,
) -> None:
    def broken_zip(*args: object, **kwargs: object) -> Path:
        raise CompressError("zip exited with status 12.", stage=Stage.PACKAGE)

    monkeypatch.setattr("lambdapack.project.create_zip", broken_zip)
    logger = StructuredLogger()
    bundle = make_bundle("foo-1.0.0.tgz")

    with pytest.raises(CompressError) as excinfo:
        _orchestrator(builtin_config, installer, logger=logger).run(
            str(bundle), str(tmp_path / "dist")
        )

    assert excinfo.value.stage == "package"
    assert not working_root.exists()
    assert not (tmp_path / "dist").exists()
    assert logger.records_at_level("error")[0]["stage"] == "package"


def test_cleanup_failure_never_masks_pipeline_error(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    make_bundle: Callable[..., Path],
    builtin_config: PackagerConfig,
    installer: Any,
    working_root: Path,
) -> None:
    def broken_zip(*args: object, **kwargs: object) -> Path:
        raise CompressError("zip exited with status 12.", stage=Stage.PACKAGE)

    def broken_rmtree(path: object, *args: object, **kwargs: object) -> None:
        raise PermissionError("read-only file system")

    monkeypatch.setattr("lambdapack.project.create_zip", broken_zip)
    monkeypatch.setattr("lambdapack.workspace.shutil.rmtree", broken_rmtree)
    logger = StructuredLogger()
    bundle = make_bundle("foo-1.0.0.tgz")

    with pytest.raises(CompressError):
        _orchestrator(builtin_config, installer, logger=logger).run(
            str(bundle), str(tmp_path / "dist")
        )

    cleanup_warnings = [
        record
        for record in logger.records_for_stage("cleanup")
        if record["level"] == "warning"
    ]
    assert cleanup_warnings
    assert cleanup_warnings[0]["extra"]["code"] == "E_CLEANUP"


def test_keep_skips_cleanup_on_failure(
    tmp_path: Path,
    make_bundle: Callable[..., Path],
    builtin_config: PackagerConfig,
    failing_installer: Any,
    working_root: Path,
) -> None:
    bundle = make_bundle("foo-1.0.0.tgz")

    with pytest.raises(InstallError):
        _orchestrator(builtin_config, failing_installer).run(
            str(bundle), str(tmp_path / "dist"), keep=True
        )

    assert (working_root / "package" / "package.json").exists()


def test_missing_local_source_is_transfer_error(
    tmp_path: Path,
    builtin_config: PackagerConfig,
    installer: Any,
    working_root: Path,
) -> None:
    with pytest.raises(TransferError) as excinfo:
        _orchestrator(builtin_config, installer).run(
            str(tmp_path / "missing-1.0.0.tgz"), str(tmp_path / "dist")
        )

    assert excinfo.value.stage == "fetch"
    assert not working_root.exists()


def test_bundle_without_manifest_is_malformed(
    tmp_path: Path,
    make_bundle: Callable[..., Path],
    builtin_config: PackagerConfig,
    installer: Any,
) -> None:
    bundle = make_bundle("foo-1.0.0.tgz", manifest={"name": "foo"})

    with pytest.raises(MalformedManifestError):
        _orchestrator(builtin_config, installer).run(str(bundle), str(tmp_path / "dist"))


def test_s3_bundle_is_fetched_built_with_cache_and_uploaded(
    make_bundle: Callable[..., Path],
    builtin_config: PackagerConfig,
    installer: Any,
    s3_client: Any,
) -> None:
    bundle = make_bundle("foo-1.0.0.tgz")
    s3_client.objects[("source-bucket", "builds/foo-1.0.0.tgz")] = bundle.read_bytes()
    orchestrator = _orchestrator(builtin_config, installer, storage=S3Storage(client=s3_client))

    first = orchestrator.run(
        "s3://source-bucket/builds/foo-1.0.0.tgz",
        "s3://release-bucket/lambdas",
        cache="s3://cache-bucket/modules",
    )
    second = orchestrator.run(
        "s3://source-bucket/builds/foo-1.0.0.tgz",
        "s3://release-bucket/lambdas",
        cache="s3://cache-bucket/modules",
    )

    assert first == second == "s3://release-bucket/lambdas/foo-1.0.0.zip"
    assert ("release-bucket", "lambdas/foo-1.0.0.zip") in s3_client.objects
    assert len(installer.calls) == 1
    cached = [key for bucket, key in s3_client.objects if bucket == "cache-bucket"]
    assert len(cached) == 1
    assert cached[0].startswith("modules/modules-foo-")


def test_plan_resolves_targets_without_side_effects(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.chdir(tmp_path)

    local = plan_project("/builds/app-2.1.0.tar.gz", "/srv/releases")
    s3 = plan_project("s3://bucket/builds/app-2.1.0.tgz", "s3://bucket/out/app.zip")
    disabled = plan_project("app-2.1.0.tgz", "s3://bucket/out", disable_upload=True)

    assert local.output_name == "app-2.1.0.zip"
    assert local.target == str(Path("/srv/releases") / "app-2.1.0.zip")
    assert s3.source_name == "app-2.1.0.tgz"
    assert s3.target == "s3://bucket/out/app.zip"
    assert disabled.target == str(tmp_path / "app-2.1.0.zip")


@pytest.mark.parametrize("name", ["foo.tar", "foo.zip", "foo.tgz.bak", "foo bar.tgz"])
def test_plan_rejects_unexpected_bundle_names(name: str) -> None:
    with pytest.raises(InvalidSourceNameError):
        plan_project(f"/builds/{name}", "/srv/releases")


def test_failed_move_of_extracted_bundle_is_typed(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    make_bundle: Callable[..., Path],
    builtin_config: PackagerConfig,
    installer: Any,
    working_root: Path,
) -> None:
    def broken_move(*args: object, **kwargs: object) -> None:
        raise OSError(28, "No space left on device")

    monkeypatch.setattr("lambdapack.project.shutil.move", broken_move)
    bundle = make_bundle("foo-1.0.0.tgz")

    with pytest.raises(CompressError) as excinfo:
        _orchestrator(builtin_config, installer).run(str(bundle), str(tmp_path / "dist"))

    assert excinfo.value.stage == "extract"
    assert "No space left" in str(excinfo.value)
    assert installer.calls == []
    assert not working_root.exists()
