"""Protocol for build tool backends."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol


@dataclass(frozen=True, slots=True)
class BuildOutput:
    stdout: str
    stderr: str
    ok: bool


class BuildTool(Protocol):
    name: str
    root: Path

    def refresh_input(self, input_name: str) -> None:
        """Refresh one input's lock entry in place."""

    def build_captured(self, attr_path: str, *, sandbox: bool = True) -> BuildOutput:
        """Build *attr_path*, teeing and capturing both output streams."""

    def build_output_path(self, attr_path: str) -> str:
        """Build *attr_path* and return its realised main output path."""
