"""Update task orchestration.

``UpdateSpec.run_task`` executes one named task in a fixed sequence:

1. run required tasks (depth first, in declaration order),
2. refresh each flake input and compare locked revisions,
3. recompute derived hashes by probing builds that must fail with a
   fixed-output hash mismatch,
4. run update scripts in a scratch copy and copy their edits back,
5. build the main attr path and the tests to verify the update.

Steps 3-5 are skipped when nothing changed, unless ``check`` is set or an
entry is configured with ``run_mode = "always"``. Every step reports the
project-relative paths it modified; the union is returned to the caller.
Nothing is rolled back on failure.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from freshen.backends.base import BuildTool
from freshen.config import (
    DerivedHashSpec,
    FreshenConfig,
    RunMode,
    UpdateScriptSpec,
    UpdateTask,
)
from freshen.errors import (
    DependencyCycleError,
    FreshenError,
    MainBuildFailed,
    MissingInputError,
    SelfReferenceError,
    TestBuildFailed,
    UnexpectedBuildSuccessError,
    UnknownTaskError,
)
from freshen.hash_file import read_hash_file, write_hash_file
from freshen.hash_mismatch import find_hash_mismatch
from freshen.lockfile import FLAKE_LOCK_FILENAME, Locks, read_flake_locks
from freshen.observability import StructuredLogger
from freshen.update_result import UpdateResult
from freshen.update_script import run_update_script

ScriptRunner = Callable[..., UpdateResult]


@dataclass(frozen=True, slots=True)
class InputChange:
    input_name: str
    old_rev: str
    new_rev: str


@dataclass(slots=True)
class UpdateSpec:
    """Runs update tasks from a ``FreshenConfig`` against one flake."""

    config: FreshenConfig
    build_tool: BuildTool
    logger: StructuredLogger = field(default_factory=StructuredLogger)
    script_runner: ScriptRunner = run_update_script
    _tasks: dict[str, UpdateTask] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._tasks = {task.name: task for task in self.config.update_tasks}

    @property
    def root(self) -> Path:
        return Path(self.build_tool.root)

    def task(self, name: str) -> UpdateTask:
        task = self._tasks.get(name)
        if task is None:
            raise UnknownTaskError(
                f"No update task named `{name}`.",
                hint=f"Valid names: {', '.join(self.config.task_names()) or '(none)'}",
                context={"task": name},
            )
        return task

    def run_task(self, name: str, check: bool = False) -> UpdateResult:
        """Run task *name* and its prerequisites; return every path they changed."""
        return self._run(name, check=check, in_progress=())

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    def _run(self, name: str, *, check: bool, in_progress: tuple[str, ...]) -> UpdateResult:
        task = self.task(name)
        try:
            return self._run_task(task, check=check, in_progress=(*in_progress, name))
        except FreshenError as exc:
            raise exc.with_context(task=name)

    def _run_task(
        self,
        task: UpdateTask,
        *,
        check: bool,
        in_progress: tuple[str, ...],
    ) -> UpdateResult:
        out = UpdateResult()
        self._check_prerequisites(task, in_progress)
        if task.required_tasks:
            self._log(task, "prereqs", "running required tasks")
        for required in task.required_tasks:
            out.union(self._run(required, check=check, in_progress=in_progress))

        self._log(task, "inputs", "updating inputs")
        old_locks = read_flake_locks(self.root)
        changes = [
            change
            for input_name in task.inputs
            if (change := self._refresh_input(task, input_name, old_locks)) is not None
        ]
        inputs_changed = bool(changes)
        if inputs_changed:
            out.add(FLAKE_LOCK_FILENAME)
        else:
            self._log(task, "inputs", "no inputs changed")

        # Without an input change only `run_mode = "always"` entries run.
        derived_hashes = [
            entry for entry in task.derived_hashes
            if inputs_changed or entry.run_mode is RunMode.ALWAYS
        ]
        update_scripts = [
            entry for entry in task.update_scripts
            if inputs_changed or entry.run_mode is RunMode.ALWAYS
        ]
        if out.is_empty() and not derived_hashes and not update_scripts and not check:
            return UpdateResult()

        if derived_hashes:
            self._log(task, "derived_hashes", "updating derived hashes")
        for derived in derived_hashes:
            if self._update_derived_hash(task, derived):
                out.add(derived.filename)

        for script in update_scripts:
            out.union(self._run_update_script(task, script))

        if out.is_empty() and not check:
            self._log(task, "done", "no update changes")
            return UpdateResult()

        self._build_main(task)
        self._build_tests(task)
        self._log(task, "done", "update verified", extra={"changed": len(out)})
        return out

    def _check_prerequisites(self, task: UpdateTask, in_progress: tuple[str, ...]) -> None:
        for required in task.required_tasks:
            if required == task.name:
                raise SelfReferenceError(
                    f"Update task `{task.name}` lists itself in required_update_tasks.",
                    context={"task": task.name},
                )
        for required in task.required_tasks:
            if required in in_progress:
                cycle = " -> ".join((*in_progress[in_progress.index(required) :], required))
                raise DependencyCycleError(
                    "Update task prerequisites form a cycle.",
                    hint="Remove one of the required_update_tasks entries in the cycle.",
                    context={"task": task.name, "cycle": cycle},
                )

    def _refresh_input(
        self,
        task: UpdateTask,
        input_name: str,
        old_locks: Locks,
    ) -> InputChange | None:
        old_rev = old_locks.input_rev(input_name)
        if old_rev is None:
            raise MissingInputError(
                "Input is missing from the flake lock.",
                hint="Add the input to flake.nix and run `nix flake lock`.",
                context={"task": task.name, "input": input_name},
            )
        self.build_tool.refresh_input(input_name)
        new_rev = read_flake_locks(self.root).input_rev(input_name)
        if new_rev is None:
            raise MissingInputError(
                "Input disappeared from the flake lock after refresh.",
                context={"task": task.name, "input": input_name},
            )
        if new_rev == old_rev:
            self._log(task, "inputs", "no input change", extra={"input": input_name})
            return None
        self._log(
            task,
            "inputs",
            f"{old_rev} -> {new_rev}",
            extra={"input": input_name},
        )
        return InputChange(input_name=input_name, old_rev=old_rev, new_rev=new_rev)

    def _update_derived_hash(self, task: UpdateTask, spec: DerivedHashSpec) -> bool:
        context = {"task": task.name, "attr_path": spec.attr_path}
        output = self.build_tool.build_captured(spec.attr_path, sandbox=True)
        if output.ok:
            raise UnexpectedBuildSuccessError(
                "Derived hash probe build unexpectedly succeeded.",
                hint="The attr path must fail with a fixed-output hash mismatch.",
                context=context,
            )
        try:
            mismatch = find_hash_mismatch(output.stderr)
        except FreshenError as exc:
            raise exc.with_context(**context)

        hash_path = self.root / spec.filename
        old_hash = read_hash_file(hash_path)
        if old_hash == mismatch.got:
            self._log(task, "derived_hashes", "no change", extra={"attr_path": spec.attr_path})
            return False
        write_hash_file(hash_path, mismatch.got)
        self._log(
            task,
            "derived_hashes",
            f"{old_hash or '(none)'} -> {mismatch.got}",
            extra={"attr_path": spec.attr_path, "file": spec.filename},
        )
        return True

    def _run_update_script(self, task: UpdateTask, spec: UpdateScriptSpec) -> UpdateResult:
        self._log(task, "scripts", "building update script", extra={"attr_path": spec.attr_path})
        script_output = self.build_tool.build_output_path(spec.attr_path)
        self._log(task, "scripts", "running update script", extra={"attr_path": spec.attr_path})
        try:
            return self.script_runner(
                script_output,
                spec,
                self.root,
                logger=self.logger,
                task=task.name,
            )
        except FreshenError as exc:
            raise exc.with_context(attr_path=spec.attr_path)

    def _build_main(self, task: UpdateTask) -> None:
        if not task.main_attr_path:
            self._log(task, "main_build", "no main derivation")
            return
        self._log(task, "main_build", "building main derivation")
        output = self.build_tool.build_captured(task.main_attr_path, sandbox=True)
        if not output.ok:
            raise MainBuildFailed(
                "Main derivation build failed.",
                context={"task": task.name, "attr_path": task.main_attr_path},
            )

    def _build_tests(self, task: UpdateTask) -> None:
        for test in task.tests:
            self._log(task, "tests", "building test", extra={"attr_path": test.attr_path})
            output = self.build_tool.build_captured(test.attr_path, sandbox=not test.disable_sandbox)
            if not output.ok:
                raise TestBuildFailed(
                    "Test build failed.",
                    context={"task": task.name, "attr_path": test.attr_path},
                )

    def _log(
        self,
        task: UpdateTask,
        phase: str,
        message: str,
        *,
        extra: dict[str, object] | None = None,
    ) -> None:
        self.logger.log(
            operation="run_task",
            task=task.name,
            phase=phase,
            message=message,
            extra=extra,
        )
