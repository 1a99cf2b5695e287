"""Remote update workflow: fetch a branch, run a task, publish the changes."""

from __future__ import annotations

import shutil
import tempfile
from collections.abc import Callable
from pathlib import Path

from freshen.backends.base import BuildTool
from freshen.backends.nix import NixFlake
from freshen.config import CONFIG_FILENAME, read_config
from freshen.observability import StructuredLogger
from freshen.orchestrator import UpdateSpec
from freshen.publish.base import CommitPublisher


def run_remote_task(
    name: str,
    publisher: CommitPublisher,
    *,
    logger: StructuredLogger | None = None,
    build_tool_factory: Callable[[Path], BuildTool] = NixFlake,
) -> str | None:
    """Run task *name* on a fresh download of the branch and publish the result.

    Returns the new commit, or ``None`` when the task changed nothing.
    """
    log = logger or StructuredLogger()
    work_dir = Path(tempfile.mkdtemp(prefix="freshen-remote-"))
    try:
        log.log(
            operation="remote_update",
            task=name,
            phase="download",
            message="downloading repository",
            extra={"dir": str(work_dir), "publisher": publisher.name},
        )
        publisher.download(work_dir)
        config = read_config(work_dir / CONFIG_FILENAME)
        spec = UpdateSpec(config=config, build_tool=build_tool_factory(work_dir), logger=log)

        parent = publisher.latest_commit()
        log.log(
            operation="remote_update",
            task=name,
            phase="download",
            message="resolved branch head",
            extra={"commit": parent},
        )

        result = spec.run_task(name, check=False)
        if result.is_empty():
            log.log(operation="remote_update", task=name, phase="publish", message="no update changes")
            return None

        for rel_path in result:
            log.log(
                operation="remote_update",
                task=name,
                phase="publish",
                message="changed file",
                extra={"file": rel_path},
            )
        return publisher.publish(result, work_dir, message=f"{name}: update", parent=parent)
    finally:
        shutil.rmtree(work_dir, ignore_errors=True)
