"""Generation call sites: rewrite a node's content, propose a new node.

Both return *proposed* values only. Nothing here touches a document; the
caller decides whether to apply the proposal.
"""

import json
from typing import Any

from loguru import logger

from treetext.config import DEFAULT_SYSTEM_PROMPT, JSON_SYSTEM_PROMPT, NODE_SYSTEM_PROMPT
from treetext.models.node import Node, make_node_id
from treetext.protocols import GenerationProtocol

UNTITLED = "Untitled"


def _parse_json_object(text: str) -> dict[str, Any] | None:
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, dict) else None


def build_suggestion_messages(
    node: Node,
    prompt: str,
    *,
    current_content: str | None = None,
    outline: str = "",
    system_prompt: str | None = None,
) -> list[dict[str, str]]:
    text = node.content if current_content is None else current_content
    user_message = (
        "A user has provided text from a document node and a prompt. Modify the text based "
        "on the user's prompt, keeping the overall document structure and context in mind.\n\n"
        f"User Prompt: {prompt}\n"
        f"Original Text (from node with ID: {node.id}):\n"
        f"---\n{text}\n---\n\n"
        'Return a JSON object with a single key "suggestion" containing only the modified text.'
    )
    if outline:
        user_message = (
            "You are editing a node within a larger document. Use the following document "
            "outline to understand the context of the node you are modifying. The user is "
            f"currently focused on the node with ID: {node.id}.\n\n"
            f"Document Outline:\n---\n{outline}\n---\n\n{user_message}"
        )
    return [
        {"role": "system", "content": system_prompt or JSON_SYSTEM_PROMPT},
        {"role": "user", "content": user_message},
    ]


def parse_suggestion(text: str) -> str:
    """Extract ``suggestion`` from the reply, falling back to the raw text."""
    data = _parse_json_object(text)
    if data is not None and isinstance(data.get("suggestion"), str) and data["suggestion"]:
        return data["suggestion"]
    logger.warning("Backend did not return a JSON suggestion, using raw output")
    return text


def suggest_content(
    api: GenerationProtocol,
    node: Node,
    prompt: str,
    *,
    outline: str = "",
    system_prompt: str | None = DEFAULT_SYSTEM_PROMPT,
) -> str:
    """Ask the backend to rewrite ``node``'s content according to ``prompt``.

    Raises:
        ValueError: If the prompt is empty.
        BackendFailure: If the exchange fails.
    """
    if not prompt.strip():
        msg = "Please enter a prompt to transform the text."
        raise ValueError(msg)
    messages = build_suggestion_messages(
        node, prompt, outline=outline, system_prompt=system_prompt
    )
    return parse_suggestion(api.chat(messages, json_object=True))


def build_node_messages(parent_id: str, intent: str) -> list[dict[str, str]]:
    prompt = (
        "You are a document creation assistant. Given a parent node ID and a description of "
        "the desired content, generate a relevant title and initial content for a new "
        "document node.\n\n"
        f"Parent Node ID: {parent_id}\n"
        f"Intent: {intent}\n\n"
        'Return the result as a JSON object with two keys: "title" and "content". '
        "For example:\n"
        '{\n  "title": "A Relevant Title",\n  "content": "Initial content for the new node."\n}'
    )
    return [
        {"role": "system", "content": NODE_SYSTEM_PROMPT},
        {"role": "user", "content": prompt},
    ]


def propose_node(api: GenerationProtocol, parent_id: str, intent: str) -> Node:
    """Ask the backend for a title and content for a new child of ``parent_id``.

    The returned node is not attached to any tree yet.
    """
    if not intent.strip():
        msg = "Please describe the node to create."
        raise ValueError(msg)
    reply = api.chat(build_node_messages(parent_id, intent), json_object=True)
    data = _parse_json_object(reply)
    if data is None:
        logger.warning("Backend did not return a JSON node, using raw output as content")
        title, content = UNTITLED, reply
    else:
        title = data.get("title") if isinstance(data.get("title"), str) else ""
        title = title or UNTITLED
        content = data.get("content") if isinstance(data.get("content"), str) else ""
        content = content or title
    return Node(id=make_node_id(), title=title, content=content, parent_id=parent_id)
