"""OrgChart-MCP server — MCP tools for editing and rendering an org chart."""

from __future__ import annotations

import asyncio
import json
import logging
import uuid
from pathlib import Path
from typing import Optional

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from .config import OUTPUT_DIR, RENDER_SCALE, THEME, configure_logging, ensure_output_dir
from .document import SAVE_FILENAME, DocumentError, format_for_path
from .renderer import ChartRenderer
from .session import OrgChartSession, entity_to_data

logger = logging.getLogger(__name__)

server = Server("orgchart-mcp")

_session: Optional[OrgChartSession] = None


def get_session() -> OrgChartSession:
    """Return the chart this server edits, creating it on first use."""
    global _session
    if _session is None:
        _session = OrgChartSession()
    return _session


def reset_session(session: Optional[OrgChartSession] = None) -> OrgChartSession:
    """Swap in a new session (a fresh sample chart by default)."""
    global _session
    _session = session if session is not None else OrgChartSession()
    return _session


def _json(payload: dict) -> list[TextContent]:
    return [TextContent(type="text", text=json.dumps(payload, ensure_ascii=False))]


def _status(changed: bool, session: OrgChartSession) -> list[TextContent]:
    """Result of a structural edit: whether it applied, plus the new graph."""
    return _json({
        "status": "success" if changed else "ignored",
        "changed": changed,
        "graph": session.snapshot(),
    })


# --- Tool definitions ---

_EMPTY_SCHEMA = {"type": "object", "properties": {}}


@server.list_tools()
async def list_tools() -> list[Tool]:
    return [
        Tool(
            name="get_graph",
            description=(
                "Return the current org chart as a positioned graph: nodes (with "
                "top-left positions, connector sides and search emphasis), edges, "
                "the selection, the layout direction and the active search."
            ),
            inputSchema=_EMPTY_SCHEMA,
        ),
        Tool(
            name="select_node",
            description="Select the unit or member behind a graph node (a node click).",
            inputSchema={
                "type": "object",
                "properties": {
                    "node_id": {"type": "string", "description": "Id of the clicked node"},
                },
                "required": ["node_id"],
            },
        ),
        Tool(
            name="add_unit",
            description=(
                "Add a new sub-department to the selected unit. "
                "Ignored when nothing is selected or the selection is a member."
            ),
            inputSchema=_EMPTY_SCHEMA,
        ),
        Tool(
            name="add_member",
            description=(
                "Add a new employee to the selected unit. "
                "Ignored when nothing is selected or the selection is a member."
            ),
            inputSchema=_EMPTY_SCHEMA,
        ),
        Tool(
            name="delete_selected",
            description=(
                "Delete the selected unit (with everything under it) or member, "
                "then clear the selection."
            ),
            inputSchema=_EMPTY_SCHEMA,
        ),
        Tool(
            name="edit_selected",
            description=(
                "Set a text field on the selected entity. Units: name. "
                "Members: name, title, tenure."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "field": {"type": "string", "enum": ["name", "title", "tenure"]},
                    "value": {"type": "string"},
                },
                "required": ["field", "value"],
            },
        ),
        Tool(
            name="search",
            description=(
                "Highlight every node whose label contains the query "
                "(case-insensitive). An empty query clears the highlight."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "query": {"type": "string"},
                },
                "required": ["query"],
            },
        ),
        Tool(
            name="relayout",
            description=(
                "Re-run the layered layout on the current graph. 'TB' stacks ranks "
                "top-to-bottom, 'LR' left-to-right. The direction is kept for "
                "later edits."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "direction": {"type": "string", "enum": ["TB", "LR"]},
                },
                "required": ["direction"],
            },
        ),
        Tool(
            name="move_node",
            description="Move one node's top-left corner to (x, y), as a drag would.",
            inputSchema={
                "type": "object",
                "properties": {
                    "node_id": {"type": "string"},
                    "x": {"type": "number"},
                    "y": {"type": "number"},
                },
                "required": ["node_id", "x", "y"],
            },
        ),
        Tool(
            name="save_structure",
            description=(
                f"Save the org structure document (default file name {SAVE_FILENAME}) "
                "and return its path and content."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "filename": {
                        "type": "string",
                        "description": f"Output file name. Default: {SAVE_FILENAME}",
                    },
                    "format": {"type": "string", "enum": ["json", "yaml"], "default": "json"},
                },
            },
        ),
        Tool(
            name="load_structure",
            description=(
                "Replace the org structure with a document, given inline or as a "
                "file path. All ids are regenerated. A malformed document is "
                "reported and the current structure is kept."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "document": {"type": "string", "description": "JSON or YAML document text"},
                    "path": {"type": "string", "description": "Path to a .json/.yaml file"},
                    "format": {"type": "string", "enum": ["json", "yaml"], "default": "json"},
                },
            },
        ),
        Tool(
            name="render_chart",
            description="Render the current chart to PNG and return the file path.",
            inputSchema={
                "type": "object",
                "properties": {
                    "filename": {
                        "type": "string",
                        "description": "Output filename (without extension). Default: auto-generated.",
                    },
                    "scale": {"type": "number", "default": RENDER_SCALE},
                    "theme": {"type": "string", "enum": ["dark", "light"], "default": THEME},
                },
            },
        ),
    ]


@server.call_tool()
async def call_tool(name: str, arguments: dict) -> list[TextContent]:
    arguments = arguments or {}
    handler = _HANDLERS.get(name)
    if handler is None:
        return [TextContent(type="text", text=f"Unknown tool: {name}")]
    return await handler(arguments)


async def _get_graph(args: dict) -> list[TextContent]:
    return _json(get_session().snapshot())


async def _select_node(args: dict) -> list[TextContent]:
    session = get_session()
    entity = session.select(args["node_id"])
    if entity is None:
        return _json({"status": "ignored", "selected": None})
    return _json({"status": "success", "selected": entity_to_data(entity)})


async def _add_unit(args: dict) -> list[TextContent]:
    session = get_session()
    return _status(session.add_unit(), session)


async def _add_member(args: dict) -> list[TextContent]:
    session = get_session()
    return _status(session.add_member(), session)


async def _delete_selected(args: dict) -> list[TextContent]:
    session = get_session()
    return _status(session.delete_selected(), session)


async def _edit_selected(args: dict) -> list[TextContent]:
    session = get_session()
    return _status(session.edit_selected(args["field"], args.get("value", "")), session)


async def _search(args: dict) -> list[TextContent]:
    session = get_session()
    nodes = session.search(args.get("query", ""))
    return _json({
        "status": "success",
        "query": session.search_term,
        "matches": [node.id for node in nodes if node.emphasis],
    })


async def _relayout(args: dict) -> list[TextContent]:
    session = get_session()
    try:
        session.relayout(args["direction"])
    except ValueError as e:
        return [TextContent(type="text", text=f"Layout failed: {e}")]
    return _json({"status": "success", "graph": session.snapshot()})


async def _move_node(args: dict) -> list[TextContent]:
    session = get_session()
    moved = session.move_node(args["node_id"], args["x"], args["y"])
    return _json({"status": "success" if moved else "ignored"})


async def _save_structure(args: dict) -> list[TextContent]:
    ensure_output_dir()
    session = get_session()
    fmt = args.get("format", "json")
    filename = args.get("filename") or (SAVE_FILENAME if fmt == "json" else "structure.yaml")
    path = OUTPUT_DIR / Path(filename).name
    try:
        content = session.save(fmt)
        path.write_text(content, encoding="utf-8")
    except (DocumentError, OSError) as e:
        logger.error(f"Save failed: {e}")
        return [TextContent(type="text", text=f"Failed to save structure: {e}")]
    logger.info(f"Saved structure to {path}")
    return _json({"status": "success", "path": str(path), "document": content})


async def _load_structure(args: dict) -> list[TextContent]:
    session = get_session()
    text = args.get("document")
    fmt = args.get("format", "json")
    try:
        if text is None:
            if "path" not in args:
                return [TextContent(type="text", text="Provide either 'document' or 'path'")]
            path = Path(args["path"])
            text = path.read_text(encoding="utf-8")
            fmt = format_for_path(path)
        root = session.load(text, fmt=fmt)
    except (DocumentError, OSError) as e:
        logger.warning(f"Load failed: {e}")
        return [TextContent(type="text", text=f"Failed to load structure: {e}")]

    return _json({
        "status": "success",
        "title": root.name,
        "nodes": len(session.nodes),
        "edges": len(session.edges),
    })


async def _render_chart(args: dict) -> list[TextContent]:
    ensure_output_dir()
    session = get_session()
    filename = args.get("filename", str(uuid.uuid4())[:8])
    output_path = str(OUTPUT_DIR / f"{Path(filename).name}.png")

    try:
        renderer = ChartRenderer(scale=args.get("scale", RENDER_SCALE), theme=args.get("theme", THEME))
        await asyncio.to_thread(
            renderer.render, session.nodes, session.edges,
            title=session.root.name, output_path=output_path,
        )
    except Exception as e:
        logger.error(f"Render error: {e}")
        return [TextContent(type="text", text=f"Rendering failed: {e}")]

    return _json({
        "status": "success",
        "path": output_path,
        "title": session.root.name,
        "nodes": len(session.nodes),
        "edges": len(session.edges),
        "direction": session.direction,
    })


_HANDLERS = {
    "get_graph": _get_graph,
    "select_node": _select_node,
    "add_unit": _add_unit,
    "add_member": _add_member,
    "delete_selected": _delete_selected,
    "edit_selected": _edit_selected,
    "search": _search,
    "relayout": _relayout,
    "move_node": _move_node,
    "save_structure": _save_structure,
    "load_structure": _load_structure,
    "render_chart": _render_chart,
}


def main():
    """Entry point for the MCP server."""
    configure_logging()
    asyncio.run(_run())


async def _run():
    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())


if __name__ == "__main__":
    main()
