"""Serverless entry point routing an invocation event to a packaging mode."""

from __future__ import annotations

import sys
from collections.abc import Callable, Mapping
from typing import Any

from lambdapack.builder import archive_modules
from lambdapack.config import PackagerConfig
from lambdapack.errors import ValidationError
from lambdapack.observability import stream_sink
from lambdapack.project import archive_project


def _run_project(event: Mapping[str, Any], config: PackagerConfig) -> str:
    for required in ("sourceUri", "targetUri"):
        if not event.get(required):
            raise ValidationError(
                f"Project mode requires `{required}`.",
                context={"mode": "project"},
            )
    return archive_project(
        event["sourceUri"],
        event["targetUri"],
        cache_uri=event.get("cacheUri"),
        keep=bool(event.get("keep", False)),
        disable_upload=bool(event.get("disableUpload", False)),
        config=config,
    )


def _run_modules(event: Mapping[str, Any], config: PackagerConfig) -> str:
    if event.get("source") is None:
        raise ValidationError("Modules mode requires `source`.", context={"mode": "modules"})
    return archive_modules(
        event["source"],
        cache_uri=event.get("cacheUri"),
        work_dir=event.get("workDir"),
        keep=bool(event.get("keep", False)),
        config=config,
    )


MODES: dict[str, Callable[[Mapping[str, Any], PackagerConfig], str]] = {
    "project": _run_project,
    "modules": _run_modules,
}


def dispatch(event: Mapping[str, Any], config: PackagerConfig | None = None) -> str:
    mode = event.get("mode", "project")
    runner = MODES.get(mode)
    if runner is None:
        raise ValidationError(
            f"Unexpected mode `{mode}`.",
            hint=f"Use one of: {', '.join(sorted(MODES))}.",
        )
    return runner(event, config or PackagerConfig.from_env(log_sink=stream_sink(sys.stdout)))


def handler(event: Mapping[str, Any], context: Any = None) -> str:
    """Function runtime entry point; errors propagate to the runtime."""
    return dispatch(event)
