"""Read and write derived hash files (a single JSON string per file)."""

from __future__ import annotations

import json
from pathlib import Path

from freshen.errors import FileIoError


def read_hash_file(path: str | Path) -> str:
    """Return the stored hash, or ``""`` when the file does not exist yet."""
    hash_path = Path(path)
    try:
        raw = hash_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return ""
    except OSError as exc:
        raise FileIoError(
            "Hash file could not be read.",
            hint=str(exc),
            context={"operation": "read_hash_file", "path": str(hash_path)},
        ) from exc
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise FileIoError(
            "Hash file is not valid JSON.",
            hint="Hash files must contain exactly one JSON string.",
            context={"operation": "read_hash_file", "path": str(hash_path)},
        ) from exc
    if not isinstance(value, str):
        raise FileIoError(
            "Hash file does not contain a JSON string.",
            hint="Hash files must contain exactly one JSON string.",
            context={"operation": "read_hash_file", "path": str(hash_path)},
        )
    return value


def write_hash_file(path: str | Path, value: str) -> Path:
    hash_path = Path(path)
    try:
        hash_path.parent.mkdir(parents=True, exist_ok=True)
        hash_path.write_text(json.dumps(value), encoding="utf-8")
    except OSError as exc:
        raise FileIoError(
            "Hash file could not be written.",
            hint=str(exc),
            context={"operation": "write_hash_file", "path": str(hash_path)},
        ) from exc
    return hash_path
