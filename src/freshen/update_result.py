"""Change-set accumulated by an update task."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field


@dataclass(slots=True)
class UpdateResult:
    """Set of project-relative paths modified by a task."""

    paths_changed: set[str] = field(default_factory=set)

    @classmethod
    def of(cls, paths: Iterable[str]) -> UpdateResult:
        return cls(paths_changed=set(paths))

    def add(self, path: str) -> None:
        self.paths_changed.add(path)

    def union(self, other: UpdateResult) -> None:
        self.paths_changed.update(other.paths_changed)

    def is_empty(self) -> bool:
        return not self.paths_changed

    def to_list(self) -> list[str]:
        return sorted(self.paths_changed)

    def __contains__(self, path: object) -> bool:
        return path in self.paths_changed

    def __iter__(self) -> Iterator[str]:
        return iter(self.to_list())

    def __len__(self) -> int:
        return len(self.paths_changed)
