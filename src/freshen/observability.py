"""Structured logging and observability helpers."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, TextIO


@dataclass(slots=True)
class StructuredLogger:
    """Collects structured records and optionally echoes them as ``key=value`` lines."""

    records: list[dict[str, Any]] = field(default_factory=list)
    stream: TextIO | None = None

    def log(
        self,
        *,
        operation: str,
        task: str | None,
        phase: str | None,
        message: str,
        level: str = "info",
        extra: dict[str, Any] | None = None,
    ) -> None:
        record: dict[str, Any] = {
            "level": level,
            "operation": operation,
            "task": task,
            "phase": phase,
            "message": message,
        }
        if extra is not None:
            record["extra"] = extra
        self.records.append(record)
        if self.stream is not None:
            self.stream.write(_format_line(record) + "\n")
            self.stream.flush()

    def records_for_task(self, task: str) -> list[dict[str, Any]]:
        return [record for record in self.records if record.get("task") == task]

    def to_json_lines(self, path: str | Path) -> Path:
        output_path = Path(path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        lines = [json.dumps(record, sort_keys=True) for record in self.records]
        output_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return output_path


def _format_line(record: dict[str, Any]) -> str:
    parts = [f"[{record['level']}]"]
    for key in ("task", "phase"):
        if record.get(key):
            parts.append(f"{key}={record[key]}")
    for key, value in (record.get("extra") or {}).items():
        parts.append(f"{key}={value}")
    parts.append(record["message"])
    return " ".join(parts)
