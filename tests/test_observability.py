import io
import json
from pathlib import Path

from freshen.observability import StructuredLogger


def test_logger_collects_records_per_task() -> None:
    logger = StructuredLogger()
    logger.log(operation="run_task", task="nixpkgs", phase="inputs", message="updating inputs")
    logger.log(operation="run_task", task="base", phase="inputs", message="updating inputs")

    records = logger.records_for_task("nixpkgs")

    assert records == [
        {
            "level": "info",
            "operation": "run_task",
            "task": "nixpkgs",
            "phase": "inputs",
            "message": "updating inputs",
        }
    ]


def test_logger_echoes_key_value_lines_to_stream() -> None:
    stream = io.StringIO()
    logger = StructuredLogger(stream=stream)

    logger.log(
        operation="run_task",
        task="nixpkgs",
        phase="inputs",
        message="ABC -> DEF",
        extra={"input": "nixpkgs"},
    )
    logger.log(operation="publish", task=None, phase=None, message="done", level="warning")

    assert stream.getvalue().splitlines() == [
        "[info] task=nixpkgs phase=inputs input=nixpkgs ABC -> DEF",
        "[warning] done",
    ]


def test_logger_writes_json_lines(tmp_path: Path) -> None:
    logger = StructuredLogger()
    logger.log(operation="run_task", task="a", phase="done", message="ok", extra={"changed": 2})

    path = logger.to_json_lines(tmp_path / "logs" / "run.jsonl")

    lines = path.read_text(encoding="utf-8").splitlines()
    assert [json.loads(line) for line in lines] == logger.records
