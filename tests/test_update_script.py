import shutil
import tempfile
from pathlib import Path

import pytest

from freshen.config import UpdateScriptSpec
from freshen.errors import ScriptExecutionError
from freshen.observability import StructuredLogger
from freshen.update_script import run_update_script

pytestmark = pytest.mark.skipif(
    shutil.which("git") is None or shutil.which("sh") is None,
    reason="git and a POSIX shell are required.",
)

BUMP_SCRIPT = """#!/bin/sh
set -e
echo "version = \\"$1\\"" > pkgs/version.toml
echo "created" > created.txt
rm -f obsolete.txt
"""


def test_modified_files_are_copied_back(tmp_path: Path) -> None:
    project = _project(tmp_path)
    script_output = _script(tmp_path, BUMP_SCRIPT)
    spec = UpdateScriptSpec(attr_path="bump", executable="bin/bump", args=("2.0.0-rc1",))

    result = run_update_script(script_output, spec, project)

    assert result.to_list() == ["pkgs/version.toml"]
    assert (project / "pkgs" / "version.toml").read_text(encoding="utf-8") == 'version = "2.0.0-rc1"\n'
    assert not (project / "created.txt").exists()
    assert (project / "obsolete.txt").exists()


def test_project_git_metadata_is_left_alone(tmp_path: Path) -> None:
    project = _project(tmp_path)
    (project / ".git").mkdir()
    (project / ".git" / "HEAD").write_text("ref: refs/heads/main\n", encoding="utf-8")
    script_output = _script(tmp_path, BUMP_SCRIPT)

    run_update_script(script_output, UpdateScriptSpec(attr_path="bump", executable="bin/bump", args=("3",)), project)

    assert (project / ".git" / "HEAD").read_text(encoding="utf-8") == "ref: refs/heads/main\n"
    assert sorted(path.name for path in (project / ".git").iterdir()) == ["HEAD"]


def test_scratch_directory_is_removed(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    project = _project(tmp_path)
    script_output = _script(tmp_path, "#!/bin/sh\nexit 3\n")
    created: list[Path] = []
    real_mkdtemp = tempfile.mkdtemp

    def recording_mkdtemp(*args: object, **kwargs: object) -> str:
        path = real_mkdtemp(*args, **kwargs)
        created.append(Path(path))
        return path

    monkeypatch.setattr("freshen.update_script.tempfile.mkdtemp", recording_mkdtemp)

    with pytest.raises(ScriptExecutionError) as excinfo:
        run_update_script(script_output, UpdateScriptSpec(attr_path="bump", executable="bin/bump"), project)

    assert excinfo.value.context["returncode"] == "3"
    assert len(created) == 1
    assert not created[0].exists()


def test_failed_script_leaves_project_untouched(tmp_path: Path) -> None:
    project = _project(tmp_path)
    script_output = _script(tmp_path, "#!/bin/sh\necho broken > pkgs/version.toml\nexit 1\n")

    with pytest.raises(ScriptExecutionError):
        run_update_script(script_output, UpdateScriptSpec(attr_path="bump", executable="bin/bump"), project)

    assert (project / "pkgs" / "version.toml").read_text(encoding="utf-8") == 'version = "1.0.0"\n'


def test_missing_executable_raises(tmp_path: Path) -> None:
    project = _project(tmp_path)
    script_output = tmp_path / "store-empty"
    script_output.mkdir()

    with pytest.raises(ScriptExecutionError, match="could not be started"):
        run_update_script(script_output, UpdateScriptSpec(attr_path="bump", executable="bin/bump"), project)


def test_copied_files_are_logged(tmp_path: Path) -> None:
    project = _project(tmp_path)
    script_output = _script(tmp_path, BUMP_SCRIPT)
    logger = StructuredLogger()

    run_update_script(
        script_output,
        UpdateScriptSpec(attr_path="bump", executable="bin/bump", args=("2",)),
        project,
        logger=logger,
        task="tools",
    )

    assert [record["extra"] for record in logger.records_for_task("tools")] == [
        {"file": "pkgs/version.toml"}
    ]


def _project(tmp_path: Path) -> Path:
    project = tmp_path / "project"
    (project / "pkgs").mkdir(parents=True)
    (project / "pkgs" / "version.toml").write_text('version = "1.0.0"\n', encoding="utf-8")
    (project / "obsolete.txt").write_text("old\n", encoding="utf-8")
    (project / "flake.nix").write_text("{ }\n", encoding="utf-8")
    return project


def _script(tmp_path: Path, body: str) -> Path:
    script_output = tmp_path / "store-bump"
    executable = script_output / "bin" / "bump"
    executable.parent.mkdir(parents=True)
    executable.write_text(body, encoding="utf-8")
    executable.chmod(0o755)
    return script_output
