"""Structured logging helpers."""

from __future__ import annotations

import json
import sys
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

LogSink = Callable[[dict[str, Any]], None]


@dataclass(slots=True)
class StructuredLogger:
    sink: LogSink | None = None
    records: list[dict[str, Any]] = field(default_factory=list)

    def log(
        self,
        *,
        operation: str,
        stage: str | None,
        message: str,
        level: str = "info",
        extra: dict[str, Any] | None = None,
    ) -> None:
        record: dict[str, Any] = {
            "level": level,
            "operation": operation,
            "stage": stage,
            "message": message,
        }
        if extra is not None:
            record["extra"] = extra
        self.records.append(record)
        if self.sink is not None:
            self.sink(record)

    def records_for_stage(self, stage: str) -> list[dict[str, Any]]:
        return [record for record in self.records if record.get("stage") == stage]

    def records_at_level(self, level: str) -> list[dict[str, Any]]:
        return [record for record in self.records if record.get("level") == level]

    def to_json_lines(self, path: str | Path) -> Path:
        output_path = Path(path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        lines = [json.dumps(record, sort_keys=True) for record in self.records]
        output_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return output_path


def format_record(record: dict[str, Any]) -> str:
    """Render a record as a single human-readable line."""
    stage = record.get("stage") or "-"
    line = f"[{record['level']}] {record['operation']}/{stage}: {record['message']}"
    extra = record.get("extra")
    if extra:
        line += " " + json.dumps(extra, sort_keys=True, default=str)
    return line


def stream_sink(stream: Any = None) -> LogSink:
    """Return a sink that writes formatted records to *stream* (stderr by default)."""

    def _write(record: dict[str, Any]) -> None:
        target = stream if stream is not None else sys.stderr
        target.write(format_record(record) + "\n")

    return _write
