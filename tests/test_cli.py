import json
from pathlib import Path

import pytest

from fakes import FakeBuildTool, write_flake
from freshen.cli import main
from freshen.publish.github import GitHubPublisher


def test_update_prints_changed_paths(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    repo = _repo(tmp_path)
    _patch_build_tool(monkeypatch, upstream_revs={"nixpkgs": "DEF"})

    exit_code = main(["update", "--name", "nixpkgs", "--repo-path", str(repo)])

    captured = capsys.readouterr()
    assert exit_code == 0
    assert captured.out.splitlines() == ["flake.lock"]
    assert "task=nixpkgs phase=inputs" in captured.err


def test_update_unknown_task_exits_non_zero(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    repo = _repo(tmp_path)
    _patch_build_tool(monkeypatch)

    exit_code = main(["update", "--name", "rust", "--repo-path", str(repo)])

    assert exit_code == 1
    assert "error[E_UNKNOWN_TASK]: No update task named `rust`." in capsys.readouterr().err


def test_update_requires_flake_root(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = main(["update", "--name", "nixpkgs", "--repo-path", str(tmp_path)])

    assert exit_code == 1
    assert "error[E_CONFIG_PARSE]" in capsys.readouterr().err


def test_update_writes_json_log(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    repo = _repo(tmp_path)
    _patch_build_tool(monkeypatch)
    log_path = tmp_path / "logs" / "freshen.jsonl"

    exit_code = main(
        ["--log-json", str(log_path), "update", "--name", "nixpkgs", "--repo-path", str(repo), "--check"]
    )

    assert exit_code == 0
    records = [json.loads(line) for line in log_path.read_text(encoding="utf-8").splitlines()]
    assert records[0]["operation"] == "update"
    assert records[-1]["phase"] == "done"


def test_missing_name_is_a_usage_error(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["update"])

    assert excinfo.value.code == 2
    assert "--name" in capsys.readouterr().err


def test_remote_update_builds_github_publisher(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    (tmp_path / "github_token.txt").write_text("ghp_test\n", encoding="utf-8")
    monkeypatch.setenv("CREDENTIALS_DIRECTORY", str(tmp_path))
    git_config = tmp_path / "git.json"
    git_config.write_text(
        json.dumps(
            {
                "author": "Update Bot",
                "email": "bot@example.invalid",
                "branch": "main",
                "github": {"owner": "acme", "repo": "infra"},
            }
        ),
        encoding="utf-8",
    )
    seen: list[tuple[str, GitHubPublisher]] = []

    def fake_run_remote_task(name: str, publisher: GitHubPublisher, **_: object) -> str:
        seen.append((name, publisher))
        return "new-commit"

    monkeypatch.setattr("freshen.cli.run_remote_task", fake_run_remote_task)

    exit_code = main(["remote-update", "--name", "nixpkgs", "--config", str(git_config)])

    assert exit_code == 0
    assert capsys.readouterr().out.strip() == "new-commit"
    name, publisher = seen[0]
    assert name == "nixpkgs"
    assert publisher.token == "ghp_test"
    assert publisher.repo_path == "/repos/acme/infra"


def test_remote_update_without_credentials(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    monkeypatch.delenv("CREDENTIALS_DIRECTORY", raising=False)
    git_config = tmp_path / "git.json"
    git_config.write_text(
        '{"author": "a", "email": "e", "branch": "main", "github": {"owner": "o", "repo": "r"}}',
        encoding="utf-8",
    )

    exit_code = main(["remote-update", "--name", "nixpkgs", "--config", str(git_config)])

    assert exit_code == 1
    assert "error[E_CREDENTIALS]" in capsys.readouterr().err


def _repo(tmp_path: Path) -> Path:
    repo = tmp_path / "repo"
    write_flake(repo, {"nixpkgs": "ABC"})
    (repo / "freshen.json").write_text(
        json.dumps({"update_tasks": [{"name": "nixpkgs", "inputs": ["nixpkgs"]}]}),
        encoding="utf-8",
    )
    return repo


def _patch_build_tool(monkeypatch: pytest.MonkeyPatch, **kwargs: object) -> None:
    def build_tool(root: Path) -> FakeBuildTool:
        return FakeBuildTool(root=root, **kwargs)

    monkeypatch.setattr("freshen.cli.NixFlake", build_tool)
