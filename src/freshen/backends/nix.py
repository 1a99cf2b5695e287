"""Nix flake build tool backend.

Drives the ``nix`` command line against a flake rooted at ``root``:

- ``nix flake lock --update-input <name>`` to refresh one input,
- ``nix build -L .#<attr>`` to build a target while streaming the build log,
- ``nix build --json -L .#<attr>`` to realise a target and read back its
  main output path.

Build output is forwarded live to this process's stdout/stderr and captured
at the same time, so callers can both watch a build and parse its log.

This backend requires ``nix`` available in PATH with flakes enabled.
"""

from __future__ import annotations

import json
import shutil
import subprocess
import sys
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, Any, TextIO

from freshen.backends.base import BuildOutput
from freshen.errors import BuildResultMalformed, BuildToolError

NIX_STORE_DIR = "/nix/store"


@dataclass(slots=True)
class NixFlake:
    """Build tool backend that shells out to ``nix`` in the flake root."""

    root: Path
    name: str = "nix"
    store_dir: str = NIX_STORE_DIR
    stdout: TextIO | None = None
    stderr: TextIO | None = None
    _nix_bin: str | None = field(default=None, repr=False)

    def refresh_input(self, input_name: str) -> None:
        cmd = [self._nix(), "flake", "lock", "--update-input", input_name]
        returncode, _, stderr = self._run_teed(cmd)
        if returncode != 0:
            raise BuildToolError(
                "nix flake lock --update-input failed.",
                hint="Check that the input exists in flake.nix and is reachable.",
                context={
                    "backend": self.name,
                    "operation": "refresh_input",
                    "input": input_name,
                    "returncode": str(returncode),
                    "stderr": stderr[-2000:],
                },
            )

    def build_captured(self, attr_path: str, *, sandbox: bool = True) -> BuildOutput:
        cmd = [self._nix(), "build", "-L"]
        if not sandbox:
            cmd.extend(["--option", "build-use-sandbox", "false"])
        cmd.append(_flake_ref(attr_path))
        returncode, stdout, stderr = self._run_teed(cmd)
        return BuildOutput(stdout=stdout, stderr=stderr, ok=returncode == 0)

    def build_output_path(self, attr_path: str) -> str:
        cmd = [self._nix(), "build", "--json", "-L", _flake_ref(attr_path)]
        returncode, stdout, stderr = self._run_teed(cmd)
        if returncode != 0:
            raise BuildToolError(
                "nix build failed.",
                context={
                    "backend": self.name,
                    "operation": "build_output_path",
                    "attr_path": attr_path,
                    "returncode": str(returncode),
                    "stderr": stderr[-2000:],
                },
            )
        return parse_main_output_path(stdout, store_dir=self.store_dir, attr_path=attr_path)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _nix(self) -> str:
        if self._nix_bin is None:
            found = shutil.which("nix")
            if found is None:
                raise BuildToolError(
                    "Cannot find the `nix` binary in PATH.",
                    hint="Install Nix with flakes enabled: https://nixos.org/download.html",
                    context={"backend": self.name, "operation": "locate"},
                )
            self._nix_bin = found
        return self._nix_bin

    def _run_teed(self, cmd: list[str]) -> tuple[int, str, str]:
        """Run *cmd* in the flake root, forwarding output live while capturing it."""
        try:
            proc = subprocess.Popen(
                cmd,
                cwd=str(self.root),
                text=True,
                encoding="utf-8",
                errors="replace",
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                bufsize=1,
            )
        except OSError as exc:
            raise BuildToolError(
                "Failed to start the build tool.",
                hint=str(exc),
                context={"backend": self.name, "command": " ".join(cmd)},
            ) from exc

        out_chunks: list[str] = []
        err_chunks: list[str] = []
        pumps = [
            threading.Thread(
                target=_pump,
                args=(proc.stdout, self.stdout or sys.stdout, out_chunks),
                daemon=True,
            ),
            threading.Thread(
                target=_pump,
                args=(proc.stderr, self.stderr or sys.stderr, err_chunks),
                daemon=True,
            ),
        ]
        for pump in pumps:
            pump.start()
        returncode = proc.wait()
        for pump in pumps:
            pump.join()
        return returncode, "".join(out_chunks), "".join(err_chunks)


def parse_main_output_path(raw: str, *, store_dir: str = NIX_STORE_DIR, attr_path: str = "") -> str:
    """Extract ``outputs.out`` from ``nix build --json`` output."""
    context = {"operation": "build_output_path", "attr_path": attr_path}
    try:
        payload: Any = json.loads(raw.strip())
    except json.JSONDecodeError as exc:
        raise BuildResultMalformed(
            "nix build json malformed: not valid JSON.", hint=str(exc), context=context
        ) from exc
    if not isinstance(payload, list) or len(payload) != 1:
        raise BuildResultMalformed(
            "nix build json malformed: invalid root array length.", context=context
        )
    entry = payload[0]
    outputs = entry.get("outputs") if isinstance(entry, dict) else None
    if not isinstance(outputs, dict):
        raise BuildResultMalformed("nix build json malformed: no outputs key.", context=context)
    main_output = outputs.get("out")
    if not isinstance(main_output, str):
        raise BuildResultMalformed(
            "nix build json malformed: main output not present.", context=context
        )
    if not main_output.startswith(store_dir):
        raise BuildResultMalformed(
            f"nix build sanity check: output does not start with {store_dir}.",
            context={**context, "output": main_output},
        )
    return main_output


def _flake_ref(attr_path: str) -> str:
    return f".#{attr_path}"


def _pump(src: IO[str] | None, sink: TextIO, chunks: list[str]) -> None:
    if src is None:
        return
    try:
        for line in iter(src.readline, ""):
            sink.write(line)
            sink.flush()
            chunks.append(line)
    finally:
        src.close()
