"""CLI for treetext: edit tree-structured documents from the terminal."""

import json
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Annotated, Any

import typer
from loguru import logger

from treetext.api import GenerationApi
from treetext.config import Settings, load_settings, resolve_data_directory, save_settings
from treetext.core.workspace import Workspace
from treetext.logging_config import configure_logging

app = typer.Typer(help="treetext: tree-structured documents with an optional LLM assistant.")

DocumentOption = Annotated[
    str | None,
    typer.Option("--document", "-D", help="Document name or id (default: the active one)"),
]


@dataclass
class CliState:
    data_dir: Path

    def workspace(self) -> Workspace:
        return Workspace.open(self.data_dir)

    def settings(self) -> Settings:
        return load_settings(self.data_dir)

    def generation_api(self) -> GenerationApi:
        settings = self.settings()
        if not settings.llm_base_url:
            logger.error(
                "No generation server configured. Use 'treetext settings --url URL' "
                "or set TREETEXT_LLM_URL."
            )
            raise typer.Exit(1)
        try:
            return GenerationApi(settings.llm_base_url, model=settings.model)
        except ValueError as e:
            logger.error("{}", e)
            raise typer.Exit(1) from e


def _state(ctx: typer.Context) -> CliState:
    return ctx.obj  # type: ignore[no-any-return]


def _check(result: dict[str, Any]) -> dict[str, Any]:
    """Exit with status 1 if a workspace operation failed."""
    if not result.get("success", False):
        typer.echo(f"Error: {result.get('error', 'unknown error')}", err=True)
        raise typer.Exit(1)
    return result


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    data_dir: Annotated[
        Path | None,
        typer.Option("--data-dir", "-d", help="Directory holding state.json and settings.json"),
    ] = None,
) -> None:
    configure_logging(verbose=verbose)
    ctx.obj = CliState(data_dir=(data_dir or resolve_data_directory()).expanduser())


# --- documents ---


@app.command()
def documents(ctx: typer.Context) -> None:
    """List all documents, most recently modified first."""
    result = _state(ctx).workspace().list_documents()
    typer.echo(f"{result['count']} documents:\n")
    for d in result["documents"]:
        marker = "*" if d["active"] else " "
        typer.echo(
            f"{marker} {d['name']} - {d['node_count']} nodes  "
            f"[id={d['id']}]  modified {d['last_modified'][:16]}"
        )


@app.command()
def new(
    ctx: typer.Context,
    name: str = typer.Argument("Untitled Document", help="Name of the new document"),
) -> None:
    """Create a new document and make it active."""
    result = _check(_state(ctx).workspace().create_document(name))
    typer.echo(f"Created {result['name']!r} [id={result['document_id']}]")


@app.command()
def select(
    ctx: typer.Context,
    document: str = typer.Argument(..., help="Document name or id"),
) -> None:
    """Make a document the active one."""
    result = _check(_state(ctx).workspace().select_document(document))
    typer.echo(f"Active document: {result['name']}")


@app.command(name="delete-document")
def delete_document(
    ctx: typer.Context,
    document: Annotated[str | None, typer.Argument(help="Document name or id")] = None,
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
) -> None:
    """Delete a document (default: the active one)."""
    ws = _state(ctx).workspace()
    doc = ws.registry.active if document is None else ws.registry.resolve(document)
    if doc is None:
        _check({"success": False, "error": f"Document '{document}' not found."})
        return
    if not yes:
        typer.confirm(f"Delete {doc.name!r} and all of its nodes?", abort=True)
    result = _check(ws.delete_document(doc.id))
    typer.echo(f"Deleted {doc.name!r}")
    if result["recreated"]:
        typer.echo("Created a new empty document.")


# --- reading ---


@app.command()
def show(ctx: typer.Context, document: DocumentOption = None) -> None:
    """Print the outline of a document with node ids."""
    result = _check(_state(ctx).workspace().outline(document))
    typer.echo(result["outline"], nl=False)


@app.command()
def read(
    ctx: typer.Context,
    node_id: Annotated[str | None, typer.Argument(help="Node id (default: focused node)")] = None,
    document: DocumentOption = None,
    max_depth: Annotated[
        int | None,
        typer.Option("--max-depth", "-m", help="Max depth levels to render"),
    ] = None,
) -> None:
    """Read a node and its subtree as markdown."""
    result = _check(_state(ctx).workspace().read_node(node_id, document=document, max_depth=max_depth))
    if result["breadcrumbs"]:
        typer.echo(f"# {result['breadcrumbs']}\n")
    typer.echo(result["content"])


@app.command()
def preview(ctx: typer.Context, document: DocumentOption = None) -> None:
    """Print the whole document as flowing text."""
    result = _check(_state(ctx).workspace().preview(document))
    for block in result["blocks"]:
        typer.echo(block["text"])
        typer.echo()


# --- editing ---


@app.command()
def add(
    ctx: typer.Context,
    title: str = typer.Argument("Untitled", help="Title of the new node"),
    parent: Annotated[
        str | None,
        typer.Option("--parent", "-p", help="Parent node id (default: focused node)"),
    ] = None,
    content: Annotated[
        str | None,
        typer.Option("--content", "-c", help="Content (default: the title)"),
    ] = None,
    document: DocumentOption = None,
) -> None:
    """Add a child node."""
    result = _check(
        _state(ctx).workspace().add_node(parent, title=title, content=content, document=document)
    )
    typer.echo(f"Added {result['title']!r} [id={result['node_id']}] under {result['parent_id']}")


@app.command()
def rename(
    ctx: typer.Context,
    node_id: str = typer.Argument(..., help="Node id"),
    title: str = typer.Argument(..., help="New title"),
    document: DocumentOption = None,
) -> None:
    """Rename a node (renaming the root renames the document)."""
    _check(_state(ctx).workspace().rename_node(node_id, title, document=document))
    typer.echo(f"Renamed {node_id} to {title!r}")


@app.command()
def edit(
    ctx: typer.Context,
    node_id: str = typer.Argument(..., help="Node id"),
    content: Annotated[
        str | None,
        typer.Option("--content", "-c", help="New content"),
    ] = None,
    from_file: Annotated[
        Path | None,
        typer.Option("--file", "-f", help="Read new content from this file"),
    ] = None,
    document: DocumentOption = None,
) -> None:
    """Replace a node's content."""
    if (content is None) == (from_file is None):
        typer.echo("Error: pass exactly one of --content or --file", err=True)
        raise typer.Exit(1)
    text = from_file.read_text(encoding="utf-8") if from_file is not None else content
    _check(_state(ctx).workspace().edit_node(node_id, text or "", document=document))
    typer.echo(f"Updated {node_id}")


@app.command()
def delete(
    ctx: typer.Context,
    node_id: str = typer.Argument(..., help="Node id"),
    document: DocumentOption = None,
) -> None:
    """Delete a node and all of its descendants."""
    result = _check(_state(ctx).workspace().delete_node(node_id, document=document))
    typer.echo(f"Deleted {result['removed']} node(s)")


@app.command()
def move(
    ctx: typer.Context,
    node_id: str = typer.Argument(..., help="Node id"),
    direction: str = typer.Argument(..., help="up, down, left (outdent) or right (indent)"),
    document: DocumentOption = None,
) -> None:
    """Reorder, indent or outdent a node."""
    result = _check(_state(ctx).workspace().move_node(node_id, direction, document=document))
    if result["moved"]:
        typer.echo(f"Moved {node_id} {direction}")
    else:
        typer.echo(f"{node_id} cannot move {direction}")


@app.command()
def focus(
    ctx: typer.Context,
    node_id: str = typer.Argument(..., help="Node id"),
    view: Annotated[
        str | None,
        typer.Option("--view", help="Switch to outline, editor or preview"),
    ] = None,
) -> None:
    """Focus a node of the active document."""
    result = _check(_state(ctx).workspace().focus(node_id, view=view))
    typer.echo(f"Focused {result['node_id']} ({result['view']})")


# --- import / export ---


@app.command()
def export(
    ctx: typer.Context,
    fmt: Annotated[
        str,
        typer.Option("--format", "-F", help="markdown or json"),
    ] = "markdown",
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Write to this file (a directory gets the default name)"),
    ] = None,
    document: DocumentOption = None,
) -> None:
    """Export a document as markdown text or as re-importable JSON."""
    ws = _state(ctx).workspace()
    if fmt == "markdown":
        result = _check(ws.export_markdown(document))
    elif fmt == "json":
        result = _check(ws.export_json(document))
    else:
        typer.echo(f"Error: unknown format {fmt!r}", err=True)
        raise typer.Exit(1)

    if output is None:
        typer.echo(result["data"], nl=False)
        return
    if output.is_dir():
        output = output / result["filename"]
    output.write_text(result["data"], encoding="utf-8")
    typer.echo(f"Wrote {output}")


@app.command(name="import")
def import_cmd(
    ctx: typer.Context,
    path: Path = typer.Argument(..., help="A JSON file written by 'export --format json'"),
) -> None:
    """Import a document (an existing document with the same id is replaced)."""
    try:
        text = path.read_bytes()
    except OSError as e:
        typer.echo(f"Error: could not read {path}: {e}", err=True)
        raise typer.Exit(1) from e
    result = _check(_state(ctx).workspace().import_json(text))
    typer.echo(f"Imported {result['name']!r} ({result['node_count']} nodes)")


@app.command(name="batch-import")
def batch_import_cmd(
    ctx: typer.Context,
    paths: list[Path] = typer.Argument(..., help="Text files to add"),
    parent: Annotated[
        str | None,
        typer.Option("--parent", "-p", help="Parent node id (default: focused node)"),
    ] = None,
    document: DocumentOption = None,
) -> None:
    """Add each text file as a child node titled after the file name."""
    result = _check(
        _state(ctx).workspace().batch_import(paths, parent_id=parent, document=document)
    )
    typer.echo(f"Added {len(result['node_ids'])} file(s) under {result['parent_id']}")


# --- generation ---


@app.command()
def suggest(
    ctx: typer.Context,
    node_id: str = typer.Argument(..., help="Node id"),
    prompt: str = typer.Argument(..., help="How to transform the node's content"),
    apply: bool = typer.Option(False, "--apply", "-a", help="Replace the content with the result"),
    document: DocumentOption = None,
) -> None:
    """Ask the generation server to rewrite a node's content."""
    state = _state(ctx)
    api = state.generation_api()
    ws = state.workspace()
    result = _check(
        ws.suggest_content(
            api, node_id, prompt, system_prompt=state.settings().system_prompt, document=document
        )
    )
    typer.echo(result["suggestion"])
    if apply:
        _check(ws.apply_suggestion(node_id, result["suggestion"], document=document))
        typer.echo(f"\nApplied to {node_id}", err=True)


@app.command(name="smart-add")
def smart_add(
    ctx: typer.Context,
    intent: str = typer.Argument(..., help="What the new node should be about"),
    parent: Annotated[
        str | None,
        typer.Option("--parent", "-p", help="Parent node id (default: focused node)"),
    ] = None,
    document: DocumentOption = None,
) -> None:
    """Let the generation server write a new child node."""
    state = _state(ctx)
    api = state.generation_api()
    result = _check(
        state.workspace().smart_add_node(api, intent, parent_id=parent, document=document)
    )
    typer.echo(f"Added {result['title']!r} [id={result['node_id']}] under {result['parent_id']}")


# --- settings & maintenance ---


@app.command()
def settings(
    ctx: typer.Context,
    url: Annotated[
        str | None,
        typer.Option("--url", help="Base URL of an OpenAI compatible server"),
    ] = None,
    system_prompt: Annotated[
        str | None,
        typer.Option("--system-prompt", help="System prompt for content suggestions"),
    ] = None,
    model: Annotated[str | None, typer.Option("--model", help="Model name to request")] = None,
) -> None:
    """Show or update the generation settings."""
    state = _state(ctx)
    current = state.settings()
    changes = {
        k: v
        for k, v in {"llm_base_url": url, "system_prompt": system_prompt, "model": model}.items()
        if v is not None
    }
    if changes:
        current = replace(current, **changes)
        save_settings(state.data_dir, current)
        logger.info("Saved settings to {}", state.data_dir)
    typer.echo(
        json.dumps(
            {
                "openAIBaseUrl": current.llm_base_url,
                "model": current.model,
                "systemPrompt": current.system_prompt,
            },
            indent=2,
        )
    )


@app.command()
def reset(
    ctx: typer.Context,
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
) -> None:
    """Delete all local documents and start over."""
    if not yes:
        typer.confirm("Delete ALL documents? This cannot be undone.", abort=True)
    _check(_state(ctx).workspace().reset())
    typer.echo("All data cleared.")


@app.command()
def serve(ctx: typer.Context) -> None:
    """Start the MCP server (stdio transport)."""
    from treetext.mcp.server import run_mcp_server

    run_mcp_server(_state(ctx).data_dir)
