"""Explicit per-invocation packager configuration."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Literal

from lambdapack.errors import ValidationError
from lambdapack.manifest.normalize import (
    DEFAULT_PREINSTALLED,
    FixedPreinstalled,
    PreinstalledProvider,
    RuntimePreinstalled,
)
from lambdapack.observability import LogSink, StructuredLogger

CompressorMode = Literal["external", "builtin"]
PreinstalledMode = Literal["fixed", "runtime"]

COMPRESSOR_MODES: tuple[str, ...] = ("external", "builtin")
PREINSTALLED_MODES: tuple[str, ...] = ("fixed", "runtime")


@dataclass(frozen=True, slots=True)
class PackagerConfig:
    installer: str = "npm"
    compressor: CompressorMode = "external"
    tar_command: str = "tar"
    zip_command: str = "zip"
    preinstalled: PreinstalledMode = "fixed"
    preinstalled_modules: tuple[str, ...] = DEFAULT_PREINSTALLED
    runtime_dir: Path | None = None
    log_sink: LogSink | None = None

    def __post_init__(self) -> None:
        if self.compressor not in COMPRESSOR_MODES:
            raise ValidationError(
                f"Unsupported compressor mode: {self.compressor}",
                hint=f"Use one of: {', '.join(COMPRESSOR_MODES)}.",
            )
        if self.preinstalled not in PREINSTALLED_MODES:
            raise ValidationError(
                f"Unsupported preinstalled mode: {self.preinstalled}",
                hint=f"Use one of: {', '.join(PREINSTALLED_MODES)}.",
            )
        if self.preinstalled == "runtime" and self.runtime_dir is None:
            raise ValidationError(
                "Runtime preinstalled detection requires runtime_dir.",
                hint="Set runtime_dir or use preinstalled='fixed'.",
            )

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        **overrides: object,
    ) -> PackagerConfig:
        """Build a config from environment variables, then apply *overrides*."""
        env = os.environ if environ is None else environ
        runtime_dir = env.get("LAMBDA_RUNTIME_DIR")
        config = cls(
            installer=env.get("LAMBDAPACK_INSTALLER", "npm"),
            compressor=env.get("LAMBDAPACK_COMPRESSOR", "external"),  # type: ignore[arg-type]
            preinstalled="runtime" if runtime_dir else "fixed",
            runtime_dir=Path(runtime_dir) if runtime_dir else None,
        )
        if overrides:
            config = replace(config, **overrides)  # type: ignore[arg-type]
        return config

    def preinstalled_provider(self) -> PreinstalledProvider:
        fixed = FixedPreinstalled(names=self.preinstalled_modules)
        if self.preinstalled == "runtime" and self.runtime_dir is not None:
            return RuntimePreinstalled(runtime_dir=self.runtime_dir, fallback=fixed)
        return fixed

    def new_logger(self) -> StructuredLogger:
        return StructuredLogger(sink=self.log_sink)
