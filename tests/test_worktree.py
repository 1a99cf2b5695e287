import shutil
from pathlib import Path

import pytest

from freshen.errors import WorkingCopyError
from freshen.worktree import changed_files, prepare_baseline

pytestmark = pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed.")


def test_only_in_place_modifications_are_reported(tmp_path: Path) -> None:
    _write(tmp_path / "a.txt", "a\n")
    _write(tmp_path / "b.txt", "b\n")
    _write(tmp_path / "nested" / "c.json", "{}\n")
    _write(tmp_path / "gone.txt", "bye\n")
    baseline = prepare_baseline(tmp_path)

    _write(tmp_path / "nested" / "c.json", '{"x": 1}\n')
    _write(tmp_path / "a.txt", "a changed\n")
    _write(tmp_path / "new.txt", "new\n")
    (tmp_path / "gone.txt").unlink()

    assert changed_files(baseline) == ["a.txt", "nested/c.json"]


def test_no_changes(tmp_path: Path) -> None:
    _write(tmp_path / "a.txt", "a\n")
    baseline = prepare_baseline(tmp_path)

    assert changed_files(baseline) == []


def test_existing_git_metadata_is_replaced(tmp_path: Path) -> None:
    _write(tmp_path / ".git", "gitdir: /somewhere/else\n")
    _write(tmp_path / "a.txt", "a\n")

    baseline = prepare_baseline(tmp_path)

    assert (tmp_path / ".git").is_dir()
    _write(tmp_path / "a.txt", "a, edited\n")
    assert changed_files(baseline) == ["a.txt"]


def test_ignored_files_are_still_tracked(tmp_path: Path) -> None:
    _write(tmp_path / ".gitignore", "*.json\n")
    _write(tmp_path / "hash.json", '"sha256-old="')
    baseline = prepare_baseline(tmp_path)

    _write(tmp_path / "hash.json", '"sha256-newer="')

    assert changed_files(baseline) == ["hash.json"]


def test_git_failure_raises_working_copy_error(tmp_path: Path) -> None:
    with pytest.raises(WorkingCopyError) as excinfo:
        prepare_baseline(tmp_path / "missing")

    assert excinfo.value.code == "E_FILE_IO"


def _write(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
