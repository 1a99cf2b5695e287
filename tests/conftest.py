from pathlib import Path

import pytest

from fakes import FakeBuildTool, write_flake


@pytest.fixture
def flake_root(tmp_path: Path) -> Path:
    """A flake whose lock pins nixpkgs@ABC and home-manager@HM1."""
    root = tmp_path / "flake"
    write_flake(root, {"nixpkgs": "ABC", "home-manager": "HM1"})
    return root


@pytest.fixture
def build_tool(flake_root: Path) -> FakeBuildTool:
    return FakeBuildTool(root=flake_root)
