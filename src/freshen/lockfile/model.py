"""Flake lock typed model."""

from __future__ import annotations

from dataclasses import dataclass, field

FLAKE_LOCK_FILENAME = "flake.lock"


@dataclass(frozen=True, slots=True)
class LockInfo:
    type: str = ""
    last_modified: int = 0
    nar_hash: str = ""
    rev: str = ""


@dataclass(frozen=True, slots=True)
class LockNode:
    locked: LockInfo = field(default_factory=LockInfo)


@dataclass(frozen=True, slots=True)
class Locks:
    nodes: dict[str, LockNode] = field(default_factory=dict)

    def input_rev(self, name: str) -> str | None:
        """Return the locked revision of *name*, or ``None`` when absent or empty."""
        node = self.nodes.get(name)
        if node is None or not node.locked.rev:
            return None
        return node.locked.rev
