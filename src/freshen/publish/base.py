"""Protocol for commit publishers."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

from freshen.update_result import UpdateResult


class CommitPublisher(Protocol):
    name: str

    def download(self, target_dir: Path) -> None:
        """Materialise the branch contents into *target_dir*."""

    def latest_commit(self) -> str:
        """Return the current head commit of the configured branch."""

    def publish(self, result: UpdateResult, root: Path, *, message: str, parent: str) -> str:
        """Commit the files listed in *result* on top of *parent*; return the new commit."""
