"""Project bundle packaging: fetch, extract, build dependencies, zip, deliver.

Stages run strictly in order::

    fetch -> extract -> build dependencies -> package -> upload

The working root is removed after the last stage or after any failure
unless ``keep`` is set. Cleanup problems are logged and never replace the
error that stopped the pipeline.
"""

from __future__ import annotations

import re
import shutil
from dataclasses import dataclass
from pathlib import Path

from lambdapack.archive import create_zip, extract_tarball
from lambdapack.builder import DependencyArchive, DependencyArchiveBuilder
from lambdapack.cache.keys import project_archive_name
from lambdapack.cache.store import ObjectCache, open_s3_cache
from lambdapack.config import PackagerConfig
from lambdapack.errors import (
    CompressError,
    InvalidSourceNameError,
    PackagerError,
    Stage,
    ValidationError,
)
from lambdapack.installers import Installer
from lambdapack.manifest import read_manifest
from lambdapack.observability import StructuredLogger
from lambdapack.storage.local import copy_file
from lambdapack.storage.location import is_s3_location, parse_s3_location
from lambdapack.storage.s3 import S3Storage
from lambdapack.workspace import create_working_root, remove_working_root

SOURCE_NAME_PATTERN = re.compile(r"^[A-Za-z0-9._@+-]+\.(tgz|tar\.gz)$")
SOURCE_EXTENSION_PATTERN = re.compile(r"\.(tgz|tar\.gz)$")
OUTPUT_EXTENSION = ".zip"
PACKAGE_DIR_NAME = "package"


@dataclass(frozen=True, slots=True)
class ProjectPlan:
    source: str
    source_name: str
    output_name: str
    target: str


@dataclass(frozen=True, slots=True)
class ProjectArchive:
    location: str
    archive_name: str
    modules: DependencyArchive
    working_root: Path | None = None


def plan_project(source: str, target: str, *, disable_upload: bool = False) -> ProjectPlan:
    """Validate *source* and resolve the concrete output location.

    Touches neither the filesystem nor the network.
    """
    source_name = str(source).rstrip("/").rsplit("/", 1)[-1]
    if not SOURCE_NAME_PATTERN.fullmatch(source_name):
        raise InvalidSourceNameError(
            f"Unexpected package name `{source_name}`.",
            hint="Expected a bundle named like `[a-zA-Z0-9-.]*.tgz`, as produced by `npm pack`.",
            context={"source": str(source)},
        )
    if is_s3_location(source) and parse_s3_location(source) is None:
        raise ValidationError("Invalid source location.", context={"source": str(source)})

    output_name = SOURCE_EXTENSION_PATTERN.sub(OUTPUT_EXTENSION, source_name)
    return ProjectPlan(
        source=str(source),
        source_name=source_name,
        output_name=output_name,
        target=_resolve_target(str(target), output_name, disable_upload=disable_upload),
    )


def _resolve_target(target: str, output_name: str, *, disable_upload: bool) -> str:
    if is_s3_location(target):
        if disable_upload:
            # upload disabled: the archive lands in the current directory
            return str(Path.cwd() / output_name)
        location = parse_s3_location(target)
        if location is None:
            raise ValidationError("Invalid target location.", context={"target": target})
        if not location.key.endswith(OUTPUT_EXTENSION):
            location = location.join(output_name)
        return str(location)

    if target.endswith(OUTPUT_EXTENSION):
        return str(Path(target))
    return str(Path(target) / output_name)


class ProjectArchiveOrchestrator:
    operation = "archive_project"

    def __init__(
        self,
        config: PackagerConfig | None = None,
        *,
        storage: S3Storage | None = None,
        installer: Installer | None = None,
        logger: StructuredLogger | None = None,
    ) -> None:
        self.config = config or PackagerConfig()
        self.storage = storage or S3Storage()
        self.logger = logger or self.config.new_logger()
        self.builder = DependencyArchiveBuilder(self.config, installer=installer, logger=self.logger)

    def run(
        self,
        source: str,
        target: str,
        *,
        cache: str | ObjectCache | None = None,
        keep: bool = False,
        disable_upload: bool = False,
    ) -> str:
        """Package *source* and deliver it; returns the resolved target location."""
        return self.package(
            source, target, cache=cache, keep=keep, disable_upload=disable_upload
        ).location

    def package(
        self,
        source: str,
        target: str,
        *,
        cache: str | ObjectCache | None = None,
        keep: bool = False,
        disable_upload: bool = False,
    ) -> ProjectArchive:
        plan = plan_project(source, target, disable_upload=disable_upload)
        object_cache = open_s3_cache(cache, self.storage) if isinstance(cache, str) else cache

        self._log(None, "creating working directory")
        root = create_working_root("packager-")
        try:
            bundle_path = self._fetch(plan, root)
            package_dir = self._extract(bundle_path, root)

            manifest = read_manifest(package_dir / "package.json")
            modules = self.builder.build(
                manifest,
                work_dir=root / "modules",
                cache=object_cache,
                materialize=True,
                target_dir=package_dir,
            )

            archive_name = project_archive_name(manifest.name)
            self._log(Stage.PACKAGE, f"archiving lambda; file = {archive_name}")
            archive_path = create_zip(
                package_dir,
                root / archive_name,
                compressor=self.config.compressor,
                zip_command=self.config.zip_command,
            )

            location = self._deliver(archive_path, plan)
        except PackagerError as exc:
            self._log(
                exc.stage,
                "project packaging failed",
                level="error",
                extra=exc.to_dict(),
            )
            raise
        finally:
            if keep:
                self._log(None, f"intermediate files saved; path = {root}")
            else:
                self._log(Stage.CLEANUP, "cleaning up...")
                remove_working_root(root, logger=self.logger, operation=self.operation)

        return ProjectArchive(
            location=location,
            archive_name=archive_name,
            modules=modules,
            working_root=root if keep else None,
        )

    def _fetch(self, plan: ProjectPlan, root: Path) -> Path:
        bundle_path = root / plan.source_name
        location = parse_s3_location(plan.source)
        if location is not None:
            self._log(Stage.FETCH, f"downloading package archive from {location}")
            return self.storage.download(location, bundle_path, stage=Stage.FETCH)
        self._log(Stage.FETCH, f"copying package archive from '{plan.source}'")
        return copy_file(Path(plan.source), bundle_path, stage=Stage.FETCH)

    def _extract(self, bundle_path: Path, root: Path) -> Path:
        self._log(Stage.EXTRACT, "unarchiving package archive")
        extracted = extract_tarball(
            bundle_path,
            root / "bundle",
            compressor=self.config.compressor,
            tar_command=self.config.tar_command,
        )
        package_dir = root / PACKAGE_DIR_NAME
        # npm pack nests everything under package/
        nested = extracted / PACKAGE_DIR_NAME
        source_dir = nested if nested.is_dir() else extracted
        try:
            shutil.move(str(source_dir), package_dir)
        except OSError as exc:
            raise CompressError(
                "Failed to move extracted package into place.",
                stage=Stage.EXTRACT,
                hint=str(exc),
                context={"source": str(source_dir), "target": str(package_dir)},
            ) from exc
        return package_dir

    def _deliver(self, archive_path: Path, plan: ProjectPlan) -> str:
        location = parse_s3_location(plan.target)
        if location is not None:
            self._log(Stage.UPLOAD, f"uploading '{archive_path.name}' to {location}")
            return self.storage.upload(archive_path, location, stage=Stage.UPLOAD)
        self._log(Stage.UPLOAD, f"saving archive; file = {plan.target}")
        return str(copy_file(archive_path, Path(plan.target), stage=Stage.UPLOAD))

    def _log(
        self,
        stage: str | None,
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


def archive_project(
    source: str,
    target: str,
    *,
    cache_uri: str | None = None,
    keep: bool = False,
    disable_upload: bool = False,
    config: PackagerConfig | None = None,
    storage: S3Storage | None = None,
    installer: Installer | None = None,
    logger: StructuredLogger | None = None,
) -> str:
    orchestrator = ProjectArchiveOrchestrator(
        config, storage=storage, installer=installer, logger=logger
    )
    return orchestrator.run(
        source, target, cache=cache_uri, keep=keep, disable_upload=disable_upload
    )
