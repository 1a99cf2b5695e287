"""Flake lock parser."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from freshen.errors import LockParseError
from freshen.lockfile.model import FLAKE_LOCK_FILENAME, LockInfo, LockNode, Locks


def parse_locks(raw: str) -> Locks:
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise LockParseError("Invalid flake lock JSON.", hint=str(exc)) from exc

    if not isinstance(payload, dict):
        raise LockParseError("Invalid flake lock payload type.")

    nodes_raw = payload.get("nodes", {})
    if not isinstance(nodes_raw, dict):
        raise LockParseError("Invalid flake lock `nodes` value.")
    nodes = {name: _parse_node(name, item) for name, item in nodes_raw.items()}
    return Locks(nodes=nodes)


def read_locks(path: str | Path) -> Locks:
    lock_path = Path(path)
    try:
        raw = lock_path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise LockParseError(
            "Flake lock does not exist.",
            hint="Run `nix flake lock` in the project root first.",
            context={"path": str(lock_path)},
        ) from exc
    except OSError as exc:
        raise LockParseError(
            "Flake lock could not be read.",
            hint=str(exc),
            context={"path": str(lock_path)},
        ) from exc
    try:
        return parse_locks(raw)
    except LockParseError as exc:
        raise exc.with_context(path=str(lock_path))


def read_flake_locks(root: str | Path) -> Locks:
    return read_locks(Path(root) / FLAKE_LOCK_FILENAME)


def _parse_node(name: str, item: Any) -> LockNode:
    if not isinstance(item, dict):
        raise LockParseError("Invalid node entry in flake lock.", context={"node": name})
    # The root node and follows-only inputs carry no `locked` record.
    locked = item.get("locked")
    if locked is None:
        return LockNode()
    if not isinstance(locked, dict):
        raise LockParseError("Invalid node `locked` value.", context={"node": name})
    return LockNode(
        locked=LockInfo(
            type=_optional_str(locked, "type", node=name),
            last_modified=_optional_int(locked, "lastModified", node=name),
            nar_hash=_optional_str(locked, "narHash", node=name),
            rev=_optional_str(locked, "rev", node=name),
        )
    )


def _optional_str(payload: dict[str, Any], key: str, *, node: str) -> str:
    value = payload.get(key, "")
    if not isinstance(value, str):
        raise LockParseError(f"Invalid flake lock `{key}` value.", context={"node": node})
    return value


def _optional_int(payload: dict[str, Any], key: str, *, node: str) -> int:
    value = payload.get(key, 0)
    if not isinstance(value, int) or isinstance(value, bool):
        raise LockParseError(f"Invalid flake lock `{key}` value.", context={"node": node})
    return value
