"""Flake lock model and reader."""

from .io import parse_locks, read_flake_locks, read_locks
from .model import FLAKE_LOCK_FILENAME, LockInfo, LockNode, Locks

__all__ = [
    "FLAKE_LOCK_FILENAME",
    "LockInfo",
    "LockNode",
    "Locks",
    "parse_locks",
    "read_flake_locks",
    "read_locks",
]
