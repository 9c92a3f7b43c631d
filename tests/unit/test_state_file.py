"""Tests for StateFile, the on-disk state store."""

import json
from pathlib import Path

from treetext.protocols import StateStoreProtocol
from treetext.state_file import StateFile


def test_read_missing_file_returns_none(tmp_path: Path) -> None:
    sf = StateFile(tmp_path / "state.json")
    assert sf.read() is None


def test_write_creates_parent_and_file(tmp_path: Path) -> None:
    sf = StateFile(tmp_path / "nested" / "state.json")
    assert sf.write({"a": 1}) is True
    assert json.loads((tmp_path / "nested" / "state.json").read_text()) == {"a": 1}
    assert json.loads(sf.read() or "") == {"a": 1}


def test_identical_write_is_skipped(tmp_path: Path) -> None:
    path = tmp_path / "state.json"
    sf = StateFile(path)
    sf.write({"a": 1})
    mtime = path.stat().st_mtime_ns
    assert sf.write({"a": 1}) is False
    assert path.stat().st_mtime_ns == mtime
    assert sf.write({"a": 2}) is True


def test_no_temporary_files_left_behind(tmp_path: Path) -> None:
    sf = StateFile(tmp_path / "state.json")
    sf.write({"a": 1})
    sf.write({"a": 2})
    assert [p.name for p in tmp_path.iterdir()] == ["state.json"]


def test_dry_run_does_not_write(tmp_path: Path) -> None:
    sf = StateFile(tmp_path / "state.json", dry_run=True)
    assert sf.write({"a": 1}) is True
    assert not (tmp_path / "state.json").exists()


def test_clear_removes_file(tmp_path: Path) -> None:
    sf = StateFile(tmp_path / "state.json")
    sf.write({"a": 1})
    sf.clear()
    assert sf.read() is None
    sf.clear()


def test_satisfies_protocol(tmp_path: Path) -> None:
    assert isinstance(StateFile(tmp_path / "state.json"), StateStoreProtocol)
