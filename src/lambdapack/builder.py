"""Build-or-fetch of the cached dependency archive.

The builder walks a fixed sequence of stages and never re-enters one::

    probe (cache configured) -> hit | miss
    miss: install -> compress -> cache (cache configured)
    materialize (requested)

A failed probe is a miss. Install and compress failures propagate. A failed
cache upload is logged and the freshly built archive is still returned.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from lambdapack.archive import create_tarball, extract_tarball
from lambdapack.cache.keys import cache_key, dependency_archive_name
from lambdapack.cache.store import CacheError, CacheHit, ObjectCache, open_s3_cache
from lambdapack.config import PackagerConfig
from lambdapack.errors import Stage, TransferError
from lambdapack.installers import Installer, NpmInstaller
from lambdapack.manifest import Manifest, load_manifest, normalize_manifest, write_manifest
from lambdapack.manifest.io import ManifestSource
from lambdapack.observability import StructuredLogger
from lambdapack.storage.local import copy_file
from lambdapack.storage.s3 import S3Storage
from lambdapack.workspace import create_working_root, remove_working_root

INSTALL_DIR_NAME = "package-modules"
MODULES_DIR_NAME = "node_modules"


@dataclass(frozen=True, slots=True)
class DependencyArchive:
    archive_name: str
    archive_path: Path
    key: str
    cache_hit: bool
    cache_location: str | None = None
    materialized_path: Path | None = None


class DependencyArchiveBuilder:
    operation = "archive_modules"

    def __init__(
        self,
        config: PackagerConfig | None = None,
        *,
        installer: Installer | None = None,
        logger: StructuredLogger | None = None,
    ) -> None:
        self.config = config or PackagerConfig()
        self.installer = installer or NpmInstaller(command=self.config.installer)
        self.logger = logger or self.config.new_logger()

    def build(
        self,
        source: ManifestSource,
        *,
        work_dir: Path,
        cache: ObjectCache | None = None,
        materialize: bool = False,
        target_dir: Path | None = None,
    ) -> DependencyArchive:
        """Return the dependency archive for *source*, building it on a cache miss.

        With ``materialize`` the installed tree is extracted into *target_dir*
        (``work_dir`` by default) on both the hit and the miss path.
        """
        work_dir = Path(work_dir)
        work_dir.mkdir(parents=True, exist_ok=True)
        materialize_dir = Path(target_dir) if target_dir is not None else work_dir
        self._log(None, f"working dir set to '{work_dir}'")

        manifest = normalize_manifest(load_manifest(source), self.config.preinstalled_provider())
        key = cache_key(manifest.name, manifest.dependencies)
        archive_name = dependency_archive_name(key)
        archive_path = work_dir / archive_name
        self._log(
            Stage.NORMALIZE,
            "normalized manifest",
            extra={"key": key, "dependencies": len(manifest.dependencies)},
        )

        if cache is not None and self._probe(cache, archive_name, archive_path, materialize):
            materialized = self._materialize(archive_path, materialize_dir) if materialize else None
            return DependencyArchive(
                archive_name=archive_name,
                archive_path=archive_path,
                key=key,
                cache_hit=True,
                materialized_path=materialized,
            )

        modules_dir = self._install(manifest, work_dir / INSTALL_DIR_NAME)

        self._log(Stage.COMPRESS, f"creating {MODULES_DIR_NAME} archive; file = '{archive_name}'")
        create_tarball(
            modules_dir,
            archive_path,
            compressor=self.config.compressor,
            tar_command=self.config.tar_command,
        )

        cache_location = (
            self._publish(cache, archive_name, archive_path) if cache is not None else None
        )
        materialized = self._materialize(archive_path, materialize_dir) if materialize else None
        return DependencyArchive(
            archive_name=archive_name,
            archive_path=archive_path,
            key=key,
            cache_hit=False,
            cache_location=cache_location,
            materialized_path=materialized,
        )

    def _probe(
        self,
        cache: ObjectCache,
        archive_name: str,
        archive_path: Path,
        fetch: bool,
    ) -> bool:
        self._log(Stage.PROBE, f"cache enabled; probing {cache!r}", extra={"fetch": fetch})
        lookup = cache.probe(archive_name, fetch=fetch)
        if isinstance(lookup, CacheError):
            self._log(
                Stage.PROBE,
                "cache probe failed; treating as miss",
                level="warning",
                extra={"cause": str(lookup.cause)},
            )
            return False
        if not isinstance(lookup, CacheHit):
            self._log(Stage.PROBE, "archive not in cache")
            return False
        if fetch:
            if lookup.payload is None:
                self._log(
                    Stage.PROBE,
                    "cache hit carried no payload; treating as miss",
                    level="warning",
                )
                return False
            self._log(Stage.PROBE, "saving archive from cache")
            archive_path.write_bytes(lookup.payload)
        self._log(Stage.PROBE, "archive found in cache")
        return True

    def _install(self, manifest: Manifest, install_dir: Path) -> Path:
        install_dir.mkdir(parents=True, exist_ok=True)
        manifest_path = write_manifest(manifest, install_dir / "package.json")
        self._log(Stage.INSTALL, f"updating package config; file = '{manifest_path}'")
        self._log(
            Stage.INSTALL,
            "installing all dependencies",
            extra={"installer": self.installer.name},
        )
        modules_dir = self.installer.install(install_dir)
        modules_dir.mkdir(parents=True, exist_ok=True)
        return modules_dir

    def _publish(self, cache: ObjectCache, archive_name: str, archive_path: Path) -> str | None:
        self._log(Stage.CACHE, "uploading to cache")
        try:
            location = cache.put(archive_name, archive_path)
        except TransferError as exc:
            self._log(
                Stage.CACHE,
                "cache upload failed; keeping local archive",
                level="warning",
                extra=exc.to_dict(),
            )
            return None
        self._log(Stage.CACHE, f"saved in cache; location = {location}")
        return location

    def _materialize(self, archive_path: Path, target_dir: Path) -> Path:
        self._log(Stage.MATERIALIZE, f"extracting dependencies into '{target_dir}'")
        extract_tarball(
            archive_path,
            target_dir,
            compressor=self.config.compressor,
            tar_command=self.config.tar_command,
            stage=Stage.MATERIALIZE,
        )
        return target_dir / MODULES_DIR_NAME

    def _log(
        self,
        stage: Stage | None,
        message: str,
        *,
        level: str = "info",
        extra: dict[str, object] | None = None,
    ) -> None:
        self.logger.log(
            operation=self.operation,
            stage=stage,
            message=message,
            level=level,
            extra=extra,
        )


def archive_modules(
    source: ManifestSource,
    *,
    cache_uri: str | None = None,
    work_dir: str | Path | None = None,
    keep: bool = False,
    output_dir: str | Path | None = None,
    config: PackagerConfig | None = None,
    storage: S3Storage | None = None,
    installer: Installer | None = None,
    logger: StructuredLogger | None = None,
) -> str:
    """Build (or fetch) the dependency archive for *source* and return its name.

    A temporary working root is created when *work_dir* is not given and is
    removed afterwards unless *keep* is set. *output_dir* receives a copy of
    the archive before cleanup.
    """
    config = config or PackagerConfig()
    logger = logger or config.new_logger()
    cache = open_s3_cache(cache_uri, storage) if cache_uri else None
    builder = DependencyArchiveBuilder(config, installer=installer, logger=logger)

    owns_root = work_dir is None
    root = create_working_root("modules-") if work_dir is None else Path(work_dir)
    try:
        result = builder.build(
            source,
            work_dir=root,
            cache=cache,
            materialize=keep or output_dir is not None,
        )
        if output_dir is not None:
            destination = Path(output_dir)
            copy_file(result.archive_path, destination / result.archive_name, stage=Stage.UPLOAD)
            logger.log(
                operation=builder.operation,
                stage=None,
                message=f"archive copied to '{destination / result.archive_name}'",
            )
    finally:
        if owns_root and not keep:
            remove_working_root(root, logger=logger, operation=builder.operation)
        elif keep:
            logger.log(
                operation=builder.operation,
                stage=None,
                message=f"intermediate files saved; path = {root}",
            )
    return result.archive_name
