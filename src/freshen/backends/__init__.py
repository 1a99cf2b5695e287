"""Build tool interfaces and implementations."""

from .base import BuildOutput, BuildTool
from .nix import NIX_STORE_DIR, NixFlake, parse_main_output_path

__all__ = [
    "NIX_STORE_DIR",
    "BuildOutput",
    "BuildTool",
    "NixFlake",
    "parse_main_output_path",
]
