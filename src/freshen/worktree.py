"""Content-level change detection for a scratch working copy.

A throwaway git repository is initialised over the directory and every file
is staged; the index then holds the baseline, and ``git status`` reports what
an arbitrary process changed afterwards. Only in-place modifications are
reported: created, deleted and renamed files are ignored.
"""

from __future__ import annotations

import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path

from freshen.errors import WorkingCopyError

GIT_DIRNAME = ".git"


@dataclass(frozen=True, slots=True)
class WorkingCopy:
    root: Path


def prepare_baseline(root: str | Path) -> WorkingCopy:
    """Replace any git metadata under *root* with a fresh repo staging every file."""
    root_path = Path(root)
    git_dir = root_path / GIT_DIRNAME
    if git_dir.is_dir() and not git_dir.is_symlink():
        shutil.rmtree(git_dir)
    elif git_dir.exists() or git_dir.is_symlink():
        git_dir.unlink()

    _run_git(["init", "--quiet"], cwd=root_path)
    _run_git(["add", "--all", "--force", "."], cwd=root_path)
    return WorkingCopy(root=root_path)


def changed_files(baseline: WorkingCopy) -> list[str]:
    """Return root-relative paths of files modified in place since the baseline."""
    output = _run_git(
        ["status", "--porcelain=v1", "-z", "--untracked-files=no", "--no-renames"],
        cwd=baseline.root,
    )
    changed: list[str] = []
    entries = iter(output.split("\0"))
    for entry in entries:
        if len(entry) < 4:
            continue
        index_status, worktree_status, path = entry[0], entry[1], entry[3:]
        if index_status in "RC":
            # Rename/copy records carry the source path as a separate entry.
            next(entries, None)
        if worktree_status == "M":
            changed.append(path)
    return sorted(changed)


def _run_git(argv: list[str], *, cwd: Path) -> str:
    command = ["git", *argv]
    try:
        completed = subprocess.run(
            command,
            cwd=cwd,
            check=False,
            text=True,
            capture_output=True,
        )
    except OSError as exc:
        raise WorkingCopyError(
            "Failed to run git.",
            hint="Install git and ensure it is available in PATH.",
            context={"operation": "worktree", "argv": " ".join(command)},
        ) from exc
    if completed.returncode != 0:
        raise WorkingCopyError(
            "Git command failed.",
            hint="Inspect the scratch working copy and git installation.",
            context={
                "operation": "worktree",
                "argv": " ".join(command),
                "path": str(cwd),
                "stderr": completed.stderr.strip(),
            },
        )
    return completed.stdout
