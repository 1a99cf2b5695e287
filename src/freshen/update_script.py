"""Run an update script against a scratch copy of the project and harvest its edits."""

from __future__ import annotations

import shutil
import subprocess
import tempfile
from pathlib import Path

from freshen.config import UpdateScriptSpec
from freshen.errors import FileIoError, ScriptExecutionError
from freshen.observability import StructuredLogger
from freshen.update_result import UpdateResult
from freshen.worktree import GIT_DIRNAME, changed_files, prepare_baseline


def run_update_script(
    script_output: str | Path,
    spec: UpdateScriptSpec,
    project_root: str | Path,
    *,
    logger: StructuredLogger | None = None,
    task: str | None = None,
) -> UpdateResult:
    """Run *spec* inside a copy of *project_root* and copy modified files back.

    The script never sees the real project root. Only files that existed
    before the run and were modified in place are copied back and reported.
    """
    root = Path(project_root)
    scratch = Path(tempfile.mkdtemp(prefix="freshen-script-"))
    try:
        _copy_project(root, scratch)
        baseline = prepare_baseline(scratch)
        _execute(Path(script_output) / spec.executable, spec, cwd=scratch)

        result = UpdateResult()
        for rel_path in changed_files(baseline):
            if logger is not None:
                logger.log(
                    operation="update_script",
                    task=task,
                    phase="scripts",
                    message="copying updated file",
                    extra={"file": rel_path},
                )
            _copy_back(scratch / rel_path, root / rel_path)
            result.add(rel_path)
        return result
    finally:
        shutil.rmtree(scratch, ignore_errors=True)


def _copy_project(root: Path, scratch: Path) -> None:
    # Only the top-level metadata directory is skipped; nested `.git` entries are copied.
    def skip_dot_git(directory: str, names: list[str]) -> set[str]:
        if Path(directory) == root:
            return {GIT_DIRNAME} & set(names)
        return set()

    try:
        shutil.copytree(root, scratch, symlinks=True, ignore=skip_dot_git, dirs_exist_ok=True)
    except (OSError, shutil.Error) as exc:
        raise FileIoError(
            "Failed to copy the project into a scratch directory.",
            hint=str(exc),
            context={"operation": "update_script", "path": str(root)},
        ) from exc


def _execute(executable: Path, spec: UpdateScriptSpec, *, cwd: Path) -> None:
    cmd = [str(executable), *spec.args]
    try:
        completed = subprocess.run(cmd, cwd=str(cwd), check=False)
    except OSError as exc:
        raise ScriptExecutionError(
            "Update script could not be started.",
            hint=str(exc),
            context={
                "operation": "update_script",
                "attr_path": spec.attr_path,
                "executable": str(executable),
            },
        ) from exc
    if completed.returncode != 0:
        raise ScriptExecutionError(
            "Update script exited with a non-zero status.",
            hint="Check the script output above for details.",
            context={
                "operation": "update_script",
                "attr_path": spec.attr_path,
                "executable": str(executable),
                "returncode": str(completed.returncode),
            },
        )


def _copy_back(source: Path, target: Path) -> None:
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(source, target)
    except OSError as exc:
        raise FileIoError(
            "Failed to copy an updated file back into the project.",
            hint=str(exc),
            context={"operation": "update_script", "path": str(target)},
        ) from exc
