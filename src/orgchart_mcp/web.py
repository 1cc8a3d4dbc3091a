#!/usr/bin/env python3
"""
OrgChart web API — the backend of the interactive chart editor.

A browser client draws the nodes and edges returned by ``/api/graph`` and
sends user actions back: node clicks, drags, the side-panel field edits,
the add/delete buttons, the search box, the layout buttons, and Save/Load.

Usage:
    orgchart-web [--port 8766] [--host 127.0.0.1]
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from aiohttp import web

from .config import HOST, PORT, RENDER_SCALE, THEME, configure_logging
from .document import SAVE_FILENAME, DocumentError, format_for_path
from .renderer import ChartRenderer
from .session import OrgChartSession, entity_to_data

logger = logging.getLogger(__name__)

SESSION_KEY = web.AppKey("session", OrgChartSession)
LOCK_KEY = web.AppKey("lock", asyncio.Lock)


def _session(request: web.Request) -> OrgChartSession:
    return request.app[SESSION_KEY]


def _edit_response(changed: bool, session: OrgChartSession) -> web.Response:
    return web.json_response({"changed": changed, "graph": session.snapshot()})


async def _json_body(request: web.Request) -> dict:
    try:
        data = await request.json()
    except ValueError:
        raise web.HTTPBadRequest(text="Request body must be JSON")
    if not isinstance(data, dict):
        raise web.HTTPBadRequest(text="Request body must be a JSON object")
    return data


# --- Handlers ---

async def handle_graph(request):
    """Current chart: positioned nodes, edges, selection, direction, search."""
    return web.json_response(_session(request).snapshot())


async def handle_select(request):
    """Node click: select the entity behind a node."""
    data = await _json_body(request)
    session = _session(request)
    entity = session.select(str(data.get("node_id", "")))
    if entity is None:
        return web.json_response({"error": "Unknown node"}, status=404)
    return web.json_response({"selected": entity_to_data(entity)})


async def handle_add_unit(request):
    async with request.app[LOCK_KEY]:
        session = _session(request)
        return _edit_response(session.add_unit(), session)


async def handle_add_member(request):
    async with request.app[LOCK_KEY]:
        session = _session(request)
        return _edit_response(session.add_member(), session)


async def handle_delete(request):
    async with request.app[LOCK_KEY]:
        session = _session(request)
        return _edit_response(session.delete_selected(), session)


async def handle_edit(request):
    """Side-panel edit: {"field": "name", "value": "..."}."""
    data = await _json_body(request)
    if "field" not in data:
        return web.json_response({"error": "No field provided"}, status=400)
    async with request.app[LOCK_KEY]:
        session = _session(request)
        return _edit_response(session.edit_selected(data["field"], data.get("value", "")), session)


async def handle_layout(request):
    """Layout buttons: {"direction": "TB" | "LR"}."""
    data = await _json_body(request)
    session = _session(request)
    try:
        session.relayout(str(data.get("direction", "")))
    except ValueError as e:
        return web.json_response({"error": str(e)}, status=400)
    return web.json_response(session.snapshot())


async def handle_search(request):
    """Search box keystroke: {"query": "..."}."""
    data = await _json_body(request)
    query = data.get("query", "")
    if query is not None and not isinstance(query, str):
        return web.json_response({"error": "query must be a string"}, status=400)
    session = _session(request)
    nodes = session.search(query)
    return web.json_response({
        "query": session.search_term,
        "matches": [node.id for node in nodes if node.emphasis],
    })


async def handle_move(request):
    """Node drag: {"x": ..., "y": ...} is the new top-left corner."""
    data = await _json_body(request)
    try:
        x, y = float(data["x"]), float(data["y"])
    except (KeyError, TypeError, ValueError):
        return web.json_response({"error": "x and y must be numbers"}, status=400)
    if not _session(request).move_node(request.match_info["node_id"], x, y):
        return web.json_response({"error": "Unknown node"}, status=404)
    return web.json_response({"success": True})


async def handle_save(request):
    """Save button: the structure document as a downloadable attachment."""
    try:
        content = _session(request).save().encode("utf-8")
    except DocumentError as e:
        logger.error(f"Save failed: {e}")
        return web.json_response({"error": str(e)}, status=500)
    return web.Response(
        body=content,
        headers={
            'Content-Type': 'application/json',
            'Content-Disposition': f'attachment; filename="{SAVE_FILENAME}"',
            'Content-Length': str(len(content)),
        }
    )


async def _read_upload(request: web.Request) -> tuple[str, str]:
    """Return (text, format) from a multipart upload or a raw request body."""
    fmt = request.query.get("format")
    if request.content_type.startswith("multipart/"):
        post = await request.post()
        upload = post.get("file")
        if upload is None or isinstance(upload, str):
            raise web.HTTPBadRequest(text="No file uploaded")
        text = (await asyncio.to_thread(upload.file.read)).decode("utf-8")
        return text, fmt or format_for_path(upload.filename or SAVE_FILENAME)
    return await request.text(), fmt or "json"


async def handle_load(request):
    """Load button: replace the structure with an uploaded document."""
    try:
        text, fmt = await _read_upload(request)
    except UnicodeDecodeError:
        return web.json_response({"error": "Document is not UTF-8 text"}, status=400)

    async with request.app[LOCK_KEY]:
        session = _session(request)
        try:
            session.load(text, fmt=fmt)
        except DocumentError as e:
            logger.warning(f"Load failed: {e}")
            return web.json_response({"error": str(e)}, status=400)
        except ValueError as e:
            return web.json_response({"error": str(e)}, status=400)
        return web.json_response(session.snapshot())


async def handle_render(request):
    """PNG snapshot of the chart as currently laid out."""
    session = _session(request)
    try:
        scale = float(request.query.get("scale", RENDER_SCALE))
        renderer = ChartRenderer(scale=scale, theme=request.query.get("theme", THEME))
    except ValueError as e:
        return web.json_response({"error": str(e)}, status=400)
    png = await asyncio.to_thread(renderer.render, session.nodes, session.edges, title=session.root.name)
    return web.Response(body=png, content_type="image/png")


def create_app(session: Optional[OrgChartSession] = None):
    """Create the aiohttp application."""
    app = web.Application(client_max_size=5 * 1024 * 1024)
    app[SESSION_KEY] = session if session is not None else OrgChartSession()
    app[LOCK_KEY] = asyncio.Lock()

    app.router.add_get('/api/graph', handle_graph)
    app.router.add_post('/api/select', handle_select)
    app.router.add_post('/api/units', handle_add_unit)
    app.router.add_post('/api/members', handle_add_member)
    app.router.add_delete('/api/selection', handle_delete)
    app.router.add_patch('/api/selection', handle_edit)
    app.router.add_post('/api/layout', handle_layout)
    app.router.add_post('/api/search', handle_search)
    app.router.add_post('/api/nodes/{node_id}/position', handle_move)
    app.router.add_get('/api/save', handle_save)
    app.router.add_post('/api/load', handle_load)
    app.router.add_get('/api/render', handle_render)

    return app


async def serve(host: str = HOST, port: int = PORT):
    """Run the web server until cancelled."""
    app = create_app()

    runner = web.AppRunner(app)
    await runner.setup()

    site = web.TCPSite(runner, host, port)
    await site.start()

    logger.info(f"OrgChart running at http://{host}:{port}")

    try:
        while True:
            await asyncio.sleep(3600)
    finally:
        await runner.cleanup()


def main():
    import argparse

    parser = argparse.ArgumentParser(description='OrgChart web server')
    parser.add_argument('--host', default=HOST, help='Host to bind to')
    parser.add_argument('--port', type=int, default=PORT, help='Port to listen on')
    args = parser.parse_args()

    configure_logging()
    try:
        asyncio.run(serve(host=args.host, port=args.port))
    except KeyboardInterrupt:
        logger.info("Shutting down...")


if __name__ == '__main__':
    main()
