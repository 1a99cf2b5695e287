from pathlib import Path

import pytest

from freshen.errors import LockParseError
from freshen.lockfile import LockInfo, parse_locks, read_flake_locks, read_locks

DATA_DIR = Path(__file__).parent / "data"


def test_read_locks_from_real_flake_lock() -> None:
    locks = read_locks(DATA_DIR / "flake.lock")

    assert locks.input_rev("nixpkgs") == "ffca9ffaaafb38c8979068cee98b2644bd3f14cb"
    assert locks.input_rev("flake-utils") == "5aed5285a952e0b949eb3ba02c12fa4fcfef535f"
    assert locks.nodes["nixpkgs"].locked == LockInfo(
        type="github",
        last_modified=1669833724,
        nar_hash="sha256-/HEZNyGbnQecrgJnfE8d0WC5c1xuPSD2LUpB6YXlg4c=",
        rev="ffca9ffaaafb38c8979068cee98b2644bd3f14cb",
    )


def test_root_node_has_no_revision() -> None:
    locks = read_locks(DATA_DIR / "flake.lock")

    assert "root" in locks.nodes
    assert locks.input_rev("root") is None
    assert locks.input_rev("home-manager") is None


def test_read_flake_locks_uses_flake_lock_in_root(tmp_path: Path) -> None:
    (tmp_path / "flake.lock").write_text(
        '{"nodes": {"nixpkgs": {"locked": {"rev": "abc"}}}, "version": 7}',
        encoding="utf-8",
    )

    assert read_flake_locks(tmp_path).input_rev("nixpkgs") == "abc"


def test_missing_lock_file_raises_lock_parse_error(tmp_path: Path) -> None:
    with pytest.raises(LockParseError) as excinfo:
        read_flake_locks(tmp_path)

    assert excinfo.value.code == "E_LOCK_PARSE"
    assert excinfo.value.context["path"] == str(tmp_path / "flake.lock")


def test_invalid_json_reports_path(tmp_path: Path) -> None:
    lock_path = tmp_path / "flake.lock"
    lock_path.write_text("{not json", encoding="utf-8")

    with pytest.raises(LockParseError) as excinfo:
        read_locks(lock_path)

    assert excinfo.value.context["path"] == str(lock_path)


@pytest.mark.parametrize(
    "raw",
    [
        "[]",
        '{"nodes": []}',
        '{"nodes": {"nixpkgs": "oops"}}',
        '{"nodes": {"nixpkgs": {"locked": {"rev": 42}}}}',
        '{"nodes": {"nixpkgs": {"locked": {"lastModified": "yesterday"}}}}',
    ],
)
def test_malformed_lock_payloads_are_rejected(raw: str) -> None:
    with pytest.raises(LockParseError):
        parse_locks(raw)
