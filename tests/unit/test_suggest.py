"""Tests for content suggestions and generated nodes."""

import json

import pytest

from tests.unit.fakes import FakeGenerationApi
from treetext.config import JSON_SYSTEM_PROMPT, NODE_SYSTEM_PROMPT
from treetext.core.assist.suggest import (
    build_suggestion_messages,
    parse_suggestion,
    propose_node,
    suggest_content,
)
from treetext.errors import BackendFailure
from treetext.models.node import Node

NODE = Node(id="n1", title="Intro", content="Some draft text.", parent_id="root")


def test_suggestion_messages_include_node_and_prompt() -> None:
    messages = build_suggestion_messages(NODE, "make it formal")
    assert messages[0] == {"role": "system", "content": JSON_SYSTEM_PROMPT}
    user = messages[1]["content"]
    assert "User Prompt: make it formal" in user
    assert "node with ID: n1" in user
    assert "---\nSome draft text.\n---" in user
    assert "Document Outline" not in user


def test_suggestion_messages_with_outline() -> None:
    messages = build_suggestion_messages(
        NODE, "shorter", outline="- Intro (id: n1)\n", system_prompt="Be terse."
    )
    assert messages[0]["content"] == "Be terse."
    assert "Document Outline:\n---\n- Intro (id: n1)\n" in messages[1]["content"]


def test_parse_suggestion() -> None:
    assert parse_suggestion('{"suggestion": "Better text."}') == "Better text."
    assert parse_suggestion("plain reply") == "plain reply"
    assert parse_suggestion('{"other": 1}') == '{"other": 1}'


def test_suggest_content_asks_for_json() -> None:
    api = FakeGenerationApi(json.dumps({"suggestion": "Formal text."}))
    result = suggest_content(api, NODE, "make it formal", outline="- Intro (id: n1)\n")

    assert result == "Formal text."
    messages, json_object = api.calls[0]
    assert json_object is True
    assert "Document Outline" in messages[1]["content"]


def test_suggest_content_rejects_empty_prompt() -> None:
    api = FakeGenerationApi()
    with pytest.raises(ValueError, match="enter a prompt"):
        suggest_content(api, NODE, "   ")
    assert api.calls == []


def test_suggest_content_propagates_backend_failure() -> None:
    api = FakeGenerationApi()
    api.error = BackendFailure("API request failed with status 500: boom", status_code=500)
    with pytest.raises(BackendFailure, match="status 500"):
        suggest_content(api, NODE, "rewrite")


def test_propose_node_uses_title_and_content() -> None:
    api = FakeGenerationApi(json.dumps({"title": "Risks", "content": "What could go wrong."}))
    node = propose_node(api, "root", "a section about risks")

    assert node.title == "Risks"
    assert node.content == "What could go wrong."
    assert node.parent_id == "root"
    assert node.children_ids == ()
    messages, _ = api.calls[0]
    assert messages[0]["content"] == NODE_SYSTEM_PROMPT
    assert "Parent Node ID: root" in messages[1]["content"]
    assert "Intent: a section about risks" in messages[1]["content"]


def test_propose_node_defaults() -> None:
    api = FakeGenerationApi(json.dumps({"title": "Only a title"}), json.dumps({}))
    first = propose_node(api, "root", "x")
    assert (first.title, first.content) == ("Only a title", "Only a title")
    second = propose_node(api, "root", "x")
    assert (second.title, second.content) == ("Untitled", "Untitled")


def test_propose_node_with_malformed_reply() -> None:
    api = FakeGenerationApi("Sure! Here is a node about cats.")
    node = propose_node(api, "root", "cats")
    assert node.title == "Untitled"
    assert node.content == "Sure! Here is a node about cats."


def test_propose_node_rejects_empty_intent() -> None:
    with pytest.raises(ValueError, match="describe the node"):
        propose_node(FakeGenerationApi(), "root", "")
