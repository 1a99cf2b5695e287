"""Typed configuration for update tasks and remote publishing.

The project configuration lives in ``<root>/freshen.json``::

    {
      "update_tasks": [
        {
          "name": "nixpkgs",
          "attr_path": "default",
          "inputs": ["nixpkgs"],
          "derived_hashes": [{"attr_path": "vendor", "filename": "vendor-hash.json"}],
          "update_scripts": [{"attr_path": "bump", "executable": "bin/bump", "args": []}],
          "tests": [{"attr_path": "checks.x86_64-linux.vm", "disable_sandbox": false}],
          "required_update_tasks": []
        }
      ]
    }

The remote git configuration is a separate document passed on the command
line; it names the commit author, the branch and the GitHub repository.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path, PurePosixPath
from typing import Any

from freshen.errors import ConfigParseError

CONFIG_FILENAME = "freshen.json"


class RunMode(StrEnum):
    """When a derived hash or update script runs."""

    ON_FLAKE_INPUT_CHANGE = "on_flake_input_change"
    ALWAYS = "always"


@dataclass(frozen=True, slots=True)
class DerivedHashSpec:
    attr_path: str
    filename: str
    run_mode: RunMode = RunMode.ON_FLAKE_INPUT_CHANGE

    def __post_init__(self) -> None:
        _check_relative_path("filename", self.filename)


@dataclass(frozen=True, slots=True)
class UpdateScriptSpec:
    attr_path: str
    executable: str
    args: tuple[str, ...] = ()
    run_mode: RunMode = RunMode.ON_FLAKE_INPUT_CHANGE

    def __post_init__(self) -> None:
        _check_relative_path("executable", self.executable)


@dataclass(frozen=True, slots=True)
class TestSpec:
    __test__ = False

    attr_path: str
    disable_sandbox: bool = False


@dataclass(frozen=True, slots=True)
class UpdateTask:
    name: str
    main_attr_path: str = ""
    inputs: tuple[str, ...] = ()
    derived_hashes: tuple[DerivedHashSpec, ...] = ()
    update_scripts: tuple[UpdateScriptSpec, ...] = ()
    tests: tuple[TestSpec, ...] = ()
    required_tasks: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class FreshenConfig:
    update_tasks: tuple[UpdateTask, ...] = ()

    def task_names(self) -> list[str]:
        return [task.name for task in self.update_tasks]


@dataclass(frozen=True, slots=True)
class GitHubConfig:
    owner: str
    repo: str
    token_file: str = ""


@dataclass(frozen=True, slots=True)
class GitConfig:
    author: str
    email: str
    branch: str
    github: GitHubConfig


def parse_config(raw: str) -> FreshenConfig:
    payload = _load_object(raw, what="freshen config")
    tasks_raw = payload.get("update_tasks", [])
    if not isinstance(tasks_raw, list):
        raise ConfigParseError("Invalid config `update_tasks` value.")

    tasks = tuple(_parse_task(item, index) for index, item in enumerate(tasks_raw))
    seen: set[str] = set()
    for task in tasks:
        if task.name in seen:
            raise ConfigParseError(
                "Duplicate update task name.",
                hint="Update task names must be unique.",
                context={"task": task.name},
            )
        seen.add(task.name)
    return FreshenConfig(update_tasks=tasks)


def read_config(path: str | Path) -> FreshenConfig:
    config_path = Path(path)
    raw = _read_text(config_path, hint=f"Create {CONFIG_FILENAME} in the project root.")
    try:
        return parse_config(raw)
    except ConfigParseError as exc:
        raise exc.with_context(path=str(config_path))


def parse_git_config(raw: str) -> GitConfig:
    payload = _load_object(raw, what="git config")
    github_raw = payload.get("github")
    if not isinstance(github_raw, dict):
        raise ConfigParseError(
            "Invalid git config `github` value.",
            hint="Remote updates currently require a `github` section.",
        )
    github = GitHubConfig(
        owner=_required_str(github_raw, "owner", where="github"),
        repo=_required_str(github_raw, "repo", where="github"),
        token_file=_optional_str(github_raw, "token_file", where="github"),
    )
    return GitConfig(
        author=_required_str(payload, "author", where="git config"),
        email=_required_str(payload, "email", where="git config"),
        branch=_required_str(payload, "branch", where="git config"),
        github=github,
    )


def read_git_config(path: str | Path) -> GitConfig:
    config_path = Path(path)
    raw = _read_text(config_path, hint="Pass the path of an existing git config file.")
    try:
        return parse_git_config(raw)
    except ConfigParseError as exc:
        raise exc.with_context(path=str(config_path))


def _parse_task(item: Any, index: int) -> UpdateTask:
    where = f"update_tasks[{index}]"
    if not isinstance(item, dict):
        raise ConfigParseError("Invalid update task entry.", context={"entry": where})
    name = _required_str(item, "name", where=where)
    where = f"update task `{name}`"
    return UpdateTask(
        name=name,
        main_attr_path=_optional_str(item, "attr_path", where=where),
        inputs=_str_list(item, "inputs", where=where),
        derived_hashes=tuple(
            _parse_derived_hash(entry, where=f"{where} derived_hashes[{i}]")
            for i, entry in enumerate(_dict_list(item, "derived_hashes", where=where))
        ),
        update_scripts=tuple(
            _parse_update_script(entry, where=f"{where} update_scripts[{i}]")
            for i, entry in enumerate(_dict_list(item, "update_scripts", where=where))
        ),
        tests=tuple(
            _parse_test(entry, where=f"{where} tests[{i}]")
            for i, entry in enumerate(_dict_list(item, "tests", where=where))
        ),
        required_tasks=_str_list(item, "required_update_tasks", where=where),
    )


def _parse_derived_hash(item: dict[str, Any], *, where: str) -> DerivedHashSpec:
    attr_path = _required_str(item, "attr_path", where=where)
    filename = _required_str(item, "filename", where=where)
    run_mode = _run_mode(item, where=where)
    try:
        return DerivedHashSpec(attr_path=attr_path, filename=filename, run_mode=run_mode)
    except ConfigParseError as exc:
        raise exc.with_context(entry=where)


def _parse_update_script(item: dict[str, Any], *, where: str) -> UpdateScriptSpec:
    attr_path = _required_str(item, "attr_path", where=where)
    executable = _required_str(item, "executable", where=where)
    args = _str_list(item, "args", where=where)
    run_mode = _run_mode(item, where=where)
    try:
        return UpdateScriptSpec(
            attr_path=attr_path,
            executable=executable,
            args=args,
            run_mode=run_mode,
        )
    except ConfigParseError as exc:
        raise exc.with_context(entry=where)


def _parse_test(item: dict[str, Any], *, where: str) -> TestSpec:
    disable_sandbox = item.get("disable_sandbox", False)
    if not isinstance(disable_sandbox, bool):
        raise ConfigParseError(
            "Invalid config `disable_sandbox` value.",
            context={"entry": where},
        )
    return TestSpec(
        attr_path=_required_str(item, "attr_path", where=where),
        disable_sandbox=disable_sandbox,
    )


def _run_mode(item: dict[str, Any], *, where: str) -> RunMode:
    value = item.get("run_mode")
    if value is None or value == "":
        return RunMode.ON_FLAKE_INPUT_CHANGE
    try:
        return RunMode(value)
    except ValueError as exc:
        raise ConfigParseError(
            f"Unsupported run_mode value: {value!r}.",
            hint=f"Use one of: {', '.join(mode.value for mode in RunMode)}.",
            context={"entry": where},
        ) from exc


def _check_relative_path(key: str, value: str) -> None:
    # Joined onto the project root or the built output directory.
    path = PurePosixPath(value)
    if path.is_absolute() or ".." in path.parts:
        raise ConfigParseError(
            f"Invalid config `{key}` value; expected a relative path without `..`.",
            context={key: value},
        )


def _load_object(raw: str, *, what: str) -> dict[str, Any]:
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ConfigParseError(f"Invalid {what} JSON.", hint=str(exc)) from exc
    if not isinstance(payload, dict):
        raise ConfigParseError(f"Invalid {what} payload type.")
    return payload


def _read_text(path: Path, *, hint: str) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise ConfigParseError(
            "Config file does not exist.",
            hint=hint,
            context={"path": str(path)},
        ) from exc
    except OSError as exc:
        raise ConfigParseError(
            "Config file could not be read.",
            hint=str(exc),
            context={"path": str(path)},
        ) from exc


def _required_str(payload: dict[str, Any], key: str, *, where: str) -> str:
    value = payload.get(key)
    if not isinstance(value, str) or not value:
        raise ConfigParseError(f"Invalid config `{key}` value.", context={"entry": where})
    return value


def _optional_str(payload: dict[str, Any], key: str, *, where: str) -> str:
    value = payload.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ConfigParseError(f"Invalid config `{key}` value.", context={"entry": where})
    return value


def _str_list(payload: dict[str, Any], key: str, *, where: str) -> tuple[str, ...]:
    value = payload.get(key)
    if value is None:
        return ()
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ConfigParseError(
            f"Invalid config `{key}` value; expected a list of strings.",
            context={"entry": where},
        )
    return tuple(value)


def _dict_list(payload: dict[str, Any], key: str, *, where: str) -> list[dict[str, Any]]:
    value = payload.get(key)
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(item, dict) for item in value):
        raise ConfigParseError(
            f"Invalid config `{key}` value; expected a list of objects.",
            context={"entry": where},
        )
    return value
