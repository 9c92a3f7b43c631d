"""MCP server exposing treetext documents for reading and editing."""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from loguru import logger
from mcp.server.fastmcp import Context, FastMCP

from treetext.config import resolve_data_directory
from treetext.core.workspace import Workspace

# --- Core functions (testable without MCP context) ---


def treetext_list_documents(ws: Workspace) -> dict[str, Any]:
    """List all documents with node counts, most recently modified first."""
    return ws.list_documents()


def treetext_outline(ws: Workspace, *, document: str | None = None) -> dict[str, Any]:
    """Return the indented outline (titles and ids) of a document."""
    return ws.outline(document)


def treetext_read_node(
    ws: Workspace,
    *,
    node_id: str | None = None,
    document: str | None = None,
    max_depth: int | None = None,
    include_content: bool = True,
) -> dict[str, Any]:
    """Read a node and its subtree as markdown.

    Args:
        node_id: Node ID to read (default: the focused node).
        document: Document name or id (default: the active document).
        max_depth: Max depth levels to include (None = unlimited).
        include_content: Include node content below each title.
    """
    result = ws.read_node(
        node_id, document=document, max_depth=max_depth, include_content=include_content
    )
    if result["success"]:
        estimated_tokens = len(result["content"]) // 4
        result["estimated_tokens"] = estimated_tokens
        if estimated_tokens > 5000:
            result["warning"] = (
                f"Large result (~{estimated_tokens} tokens). "
                "Consider using max_depth to limit output."
            )
    return result


def treetext_get_node_context(
    ws: Workspace,
    *,
    node_id: str,
    document: str | None = None,
    sibling_count: int = 3,
    child_limit: int = 20,
) -> dict[str, Any]:
    """Get a node with breadcrumbs, siblings, children and legal moves."""
    return ws.node_context(
        node_id,
        document=document,
        sibling_count=max(0, sibling_count),
        child_limit=max(1, child_limit),
    )


def treetext_add_node(
    ws: Workspace,
    *,
    parent_id: str,
    title: str,
    content: str | None = None,
    document: str | None = None,
) -> dict[str, Any]:
    """Append a new node under ``parent_id``."""
    return ws.add_node(parent_id, title=title, content=content, document=document)


def treetext_edit_node(
    ws: Workspace,
    *,
    node_id: str,
    title: str | None = None,
    content: str | None = None,
    document: str | None = None,
) -> dict[str, Any]:
    """Change a node's title and/or content."""
    if title is None and content is None:
        return {"success": False, "error": "Nothing to change: pass title and/or content."}
    if title is not None:
        result = ws.rename_node(node_id, title, document=document)
        if not result["success"]:
            return result
    if content is not None:
        return ws.edit_node(node_id, content, document=document)
    return {"success": True, "node_id": node_id}


def treetext_move_node(
    ws: Workspace,
    *,
    node_id: str,
    direction: str,
    document: str | None = None,
) -> dict[str, Any]:
    """Move a node up, down, left (outdent) or right (indent)."""
    return ws.move_node(node_id, direction, document=document)


def treetext_delete_node(
    ws: Workspace, *, node_id: str, document: str | None = None
) -> dict[str, Any]:
    """Delete a node and its whole subtree."""
    return ws.delete_node(node_id, document=document)


# --- MCP Server Setup ---


@dataclass
class ServerContext:
    """Shared resources for the MCP server lifetime."""

    workspace: Workspace
    data_dir: Path
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)


_data_dir: Path | None = None


@asynccontextmanager
async def server_lifespan(_server: FastMCP) -> AsyncIterator[ServerContext]:
    """Open the workspace on startup."""
    data_dir = _data_dir or resolve_data_directory()
    ws = Workspace.open(data_dir)
    logger.info("Serving {} document(s) from {}", len(ws.registry), data_dir)
    yield ServerContext(workspace=ws, data_dir=data_dir)


mcp_server = FastMCP(
    "treetext",
    instructions="""\
treetext documents are trees of nodes. Each node has a short title and a body
of content; the document text is the content of all nodes in depth-first order.

## Working with documents

1. Call treetext_list_documents_tool to see the documents.
2. Call treetext_outline_tool to get node titles and ids.
3. Read a subtree with treetext_read_node_tool (use max_depth for big trees).
4. Edit with treetext_add_node_tool, treetext_edit_node_tool,
   treetext_move_node_tool and treetext_delete_node_tool.

Every tool returns {"success": false, "error": ...} when it cannot apply.
Omitting `document` targets the active document.
""",
    lifespan=server_lifespan,
)


def _ctx(mcp_ctx: Context) -> ServerContext:
    return mcp_ctx.request_context.lifespan_context  # type: ignore[return-value]


# --- MCP Tool Wrappers ---


@mcp_server.tool()
async def treetext_list_documents_tool(ctx: Context) -> dict[str, Any]:
    """List all treetext documents with their ids and node counts."""
    return treetext_list_documents(_ctx(ctx).workspace)


@mcp_server.tool()
async def treetext_outline_tool(ctx: Context, document: str | None = None) -> dict[str, Any]:
    """Get the outline of a document: one line per node with its id.

    Args:
        document: Document name or id (default: the active document).
    """
    return treetext_outline(_ctx(ctx).workspace, document=document)


@mcp_server.tool()
async def treetext_read_node_tool(
    ctx: Context,
    node_id: str | None = None,
    document: str | None = None,
    max_depth: int | None = None,
    include_content: bool = True,
) -> dict[str, Any]:
    """Read a node and its subtree as markdown.

    Args:
        node_id: Node ID to read (default: the focused node).
        document: Document name or id.
        max_depth: Max depth levels (None = unlimited).
        include_content: Include node content below each title.
    """
    return treetext_read_node(
        _ctx(ctx).workspace,
        node_id=node_id,
        document=document,
        max_depth=max_depth,
        include_content=include_content,
    )


@mcp_server.tool()
async def treetext_get_node_context_tool(
    ctx: Context,
    node_id: str,
    document: str | None = None,
    sibling_count: int = 3,
    child_limit: int = 20,
) -> dict[str, Any]:
    """Get a node with its ancestors, siblings, children and allowed moves.

    Args:
        node_id: Node ID.
        document: Document name or id.
        sibling_count: Siblings before/after to include.
        child_limit: Max direct children to show.
    """
    return treetext_get_node_context(
        _ctx(ctx).workspace,
        node_id=node_id,
        document=document,
        sibling_count=sibling_count,
        child_limit=child_limit,
    )


@mcp_server.tool()
async def treetext_add_node_tool(
    ctx: Context,
    parent_id: str,
    title: str,
    content: str | None = None,
    document: str | None = None,
) -> dict[str, Any]:
    """Add a new node as the last child of a parent.

    Args:
        parent_id: Parent node ID.
        title: Title of the new node.
        content: Content of the new node (default: the title).
        document: Document name or id.
    """
    server = _ctx(ctx)
    async with server.lock:
        return treetext_add_node(
            server.workspace, parent_id=parent_id, title=title, content=content, document=document
        )


@mcp_server.tool()
async def treetext_edit_node_tool(
    ctx: Context,
    node_id: str,
    title: str | None = None,
    content: str | None = None,
    document: str | None = None,
) -> dict[str, Any]:
    """Change a node's title and/or content.

    Renaming the root node also renames the document.

    Args:
        node_id: Node ID to edit.
        title: New title.
        content: New content.
        document: Document name or id.
    """
    server = _ctx(ctx)
    async with server.lock:
        return treetext_edit_node(
            server.workspace, node_id=node_id, title=title, content=content, document=document
        )


@mcp_server.tool()
async def treetext_move_node_tool(
    ctx: Context,
    node_id: str,
    direction: str,
    document: str | None = None,
) -> dict[str, Any]:
    """Move a node among its siblings or change its depth.

    Args:
        node_id: Node ID to move.
        direction: "up", "down", "left" (outdent) or "right" (indent under the
            previous sibling).
        document: Document name or id.
    """
    server = _ctx(ctx)
    async with server.lock:
        return treetext_move_node(
            server.workspace, node_id=node_id, direction=direction, document=document
        )


@mcp_server.tool()
async def treetext_delete_node_tool(
    ctx: Context,
    node_id: str,
    document: str | None = None,
) -> dict[str, Any]:
    """Delete a node and all of its descendants. The root cannot be deleted.

    Args:
        node_id: Node ID to delete.
        document: Document name or id.
    """
    server = _ctx(ctx)
    async with server.lock:
        return treetext_delete_node(server.workspace, node_id=node_id, document=document)


def run_mcp_server(data_dir: Path | None = None) -> None:
    """Run the MCP server with stdio transport."""
    global _data_dir
    from treetext.logging_config import configure_logging

    configure_logging(verbose=False)
    _data_dir = data_dir
    mcp_server.run(transport="stdio")
