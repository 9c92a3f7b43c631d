"""Tests for the treetext CLI."""

import json
from collections.abc import Iterator
from pathlib import Path
from unittest.mock import patch

import pytest
from click.testing import Result
from loguru import logger
from typer.testing import CliRunner

from tests.unit.fakes import FakeGenerationApi
from treetext.cli import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    for name in ("TREETEXT_DATA_DIR", "TREETEXT_LLM_URL", "TREETEXT_SYSTEM_PROMPT", "TREETEXT_MODEL"):
        monkeypatch.delenv(name, raising=False)
    yield
    # The CLI points loguru at the runner's stderr, which is closed afterwards
    logger.remove()


def _run(data: Path, *args: str, answer: str | None = None) -> Result:
    return runner.invoke(app, ["--data-dir", str(data), *args], input=answer)


def _state(data: Path) -> dict:
    return json.loads((data / "state.json").read_text())


def _active_root(data: Path) -> str:
    state = _state(data)
    active = state["treetext_ui_state_v2"]["activeDocumentId"]
    return state["treetext_documents_v2"][active]["rootId"]


def test_documents_creates_default_state(tmp_path: Path) -> None:
    result = _run(tmp_path, "documents")
    assert result.exit_code == 0, result.output
    assert "1 documents" in result.output
    assert "My First Document" in result.output
    assert (tmp_path / "state.json").exists()


def test_new_and_select(tmp_path: Path) -> None:
    result = _run(tmp_path, "new", "Journal")
    assert result.exit_code == 0, result.output
    assert "Created 'Journal'" in result.output

    result = _run(tmp_path, "select", "My First Document")
    assert result.exit_code == 0, result.output
    assert "Active document: My First Document" in result.output

    result = _run(tmp_path, "select", "Nope")
    assert result.exit_code == 1
    assert "Document 'Nope' not found." in result.output


def test_add_show_and_read(tmp_path: Path) -> None:
    result = _run(tmp_path, "add", "Chapter 1", "--content", "It begins.")
    assert result.exit_code == 0, result.output
    assert "Added 'Chapter 1'" in result.output

    result = _run(tmp_path, "show")
    assert result.exit_code == 0, result.output
    lines = result.output.splitlines()
    assert lines[0] == "- My First Document (id: root)"
    assert lines[1].startswith("  - Chapter 1 (id: node-")

    # The new node is focused, so read defaults to it
    result = _run(tmp_path, "read")
    assert result.exit_code == 0, result.output
    assert "- Chapter 1\n  > It begins." in result.output


def test_move_and_delete(tmp_path: Path) -> None:
    _run(tmp_path, "add", "A", "--parent", "root")
    _run(tmp_path, "add", "B", "--parent", "root")
    docs = _state(tmp_path)["treetext_documents_v2"]
    doc = next(iter(docs.values()))
    nodes = dict(doc["nodes"])
    a_id, b_id = nodes["root"]["childrenIds"]

    result = _run(tmp_path, "move", b_id, "right")
    assert result.exit_code == 0, result.output
    assert f"Moved {b_id} right" in result.output

    result = _run(tmp_path, "move", a_id, "up")
    assert f"{a_id} cannot move up" in result.output

    result = _run(tmp_path, "delete", a_id)
    assert result.exit_code == 0, result.output
    assert "Deleted 2 node(s)" in result.output

    result = _run(tmp_path, "delete", "root")
    assert result.exit_code == 1
    assert "Cannot delete root node." in result.output


def test_rename_root_renames_document(tmp_path: Path) -> None:
    _run(tmp_path, "documents")
    result = _run(tmp_path, "rename", _active_root(tmp_path), "Novel")
    assert result.exit_code == 0, result.output
    assert "Novel" in _run(tmp_path, "documents").output


def test_edit_from_file(tmp_path: Path) -> None:
    body = tmp_path / "body.txt"
    body.write_text("from a file", encoding="utf-8")
    result = _run(tmp_path, "edit", "root", "--file", str(body))
    assert result.exit_code == 0, result.output
    assert "from a file" in _run(tmp_path, "export").output


def test_edit_requires_exactly_one_source(tmp_path: Path) -> None:
    result = _run(tmp_path, "edit", "root")
    assert result.exit_code == 1


def test_export_json_and_import(tmp_path: Path) -> None:
    _run(tmp_path, "add", "Keep me")
    out_dir = tmp_path / "out"
    out_dir.mkdir()
    result = _run(tmp_path, "export", "--format", "json", "--output", str(out_dir))
    assert result.exit_code == 0, result.output
    exported = out_dir / "treetext-My_First_Document.json"
    assert exported.exists()

    _run(tmp_path, "delete-document", "--yes")
    result = _run(tmp_path, "import", str(exported))
    assert result.exit_code == 0, result.output
    assert "Imported 'My First Document' (2 nodes)" in result.output


def test_import_bad_file(tmp_path: Path) -> None:
    bad = tmp_path / "bad.json"
    bad.write_text(json.dumps({"name": "x"}))
    result = _run(tmp_path, "import", str(bad))
    assert result.exit_code == 1
    assert "Invalid document file format" in result.output


def test_export_unknown_format(tmp_path: Path) -> None:
    result = _run(tmp_path, "export", "--format", "pdf")
    assert result.exit_code == 1


def test_batch_import(tmp_path: Path) -> None:
    (tmp_path / "one.txt").write_text("first", encoding="utf-8")
    (tmp_path / "two.md").write_text("second", encoding="utf-8")
    result = _run(tmp_path, "batch-import", str(tmp_path / "one.txt"), str(tmp_path / "two.md"))
    assert result.exit_code == 0, result.output
    assert "Added 2 file(s) under root" in result.output
    outline = _run(tmp_path, "show").output
    assert "- one (id:" in outline
    assert "- two (id:" in outline


def test_delete_document_asks_for_confirmation(tmp_path: Path) -> None:
    _run(tmp_path, "new", "Scratch")
    result = _run(tmp_path, "delete-document", "Scratch", answer="n\n")
    assert result.exit_code != 0
    assert "Scratch" in _run(tmp_path, "documents").output

    result = _run(tmp_path, "delete-document", "Scratch", answer="y\n")
    assert result.exit_code == 0, result.output
    assert "Scratch" not in _run(tmp_path, "documents").output


def test_settings_round_trip(tmp_path: Path) -> None:
    result = _run(tmp_path, "settings", "--url", "http://localhost:1234", "--model", "m1")
    assert result.exit_code == 0, result.output
    shown = json.loads(_run(tmp_path, "settings").output)
    assert shown["openAIBaseUrl"] == "http://localhost:1234"
    assert shown["model"] == "m1"


def test_suggest_requires_server(tmp_path: Path) -> None:
    result = _run(tmp_path, "suggest", "root", "shorter")
    assert result.exit_code == 1


def test_suggest_and_apply(tmp_path: Path) -> None:
    _run(tmp_path, "settings", "--url", "http://localhost:1234")
    fake = FakeGenerationApi(json.dumps({"suggestion": "A better opening."}))
    with patch("treetext.cli.GenerationApi", return_value=fake):
        result = _run(tmp_path, "suggest", "root", "improve", "--apply")
    assert result.exit_code == 0, result.output
    assert "A better opening." in result.output
    assert "A better opening." in _run(tmp_path, "export").output


def test_smart_add(tmp_path: Path) -> None:
    _run(tmp_path, "settings", "--url", "http://localhost:1234")
    fake = FakeGenerationApi(json.dumps({"title": "Risks", "content": "Many."}))
    with patch("treetext.cli.GenerationApi", return_value=fake):
        result = _run(tmp_path, "smart-add", "a risks section")
    assert result.exit_code == 0, result.output
    assert "Added 'Risks'" in result.output


def test_reset(tmp_path: Path) -> None:
    _run(tmp_path, "new", "Extra")
    result = _run(tmp_path, "reset", "--yes")
    assert result.exit_code == 0, result.output
    listing = _run(tmp_path, "documents").output
    assert "1 documents" in listing
    assert "Extra" not in listing
