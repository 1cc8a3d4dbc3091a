"""Tests for the web API."""

import asyncio

from aiohttp import FormData
from aiohttp.test_utils import TestClient, TestServer

from orgchart_mcp.ids import SequentialIds
from orgchart_mcp.session import OrgChartSession
from orgchart_mcp.web import create_app


def run_with_client(session, scenario):
    async def runner():
        async with TestClient(TestServer(create_app(session))) as client:
            await scenario(client)
    asyncio.run(runner())


def make_session(root):
    return OrgChartSession(root=root, ids=SequentialIds("new-"))


def test_graph_and_click_flow(company):
    session = make_session(company)

    async def scenario(client):
        resp = await client.get("/api/graph")
        assert resp.status == 200
        graph = await resp.json()
        assert [n["id"] for n in graph["nodes"]] == ["co", "eng", "ceo"]

        resp = await client.post("/api/select", json={"node_id": "eng"})
        assert (await resp.json())["selected"]["kind"] == "unit"

        resp = await client.post("/api/members")
        body = await resp.json()
        assert body["changed"] is True
        assert len(body["graph"]["nodes"]) == 4

        resp = await client.patch("/api/selection", json={"field": "name", "value": "Engineering"})
        body = await resp.json()
        assert body["graph"]["selected"]["name"] == "Engineering"

        resp = await client.delete("/api/selection")
        body = await resp.json()
        assert body["changed"] is True
        assert [n["label"] for n in body["graph"]["nodes"]] == ["Co", "CEO"]

    run_with_client(session, scenario)


def test_select_unknown_node(company):
    async def scenario(client):
        resp = await client.post("/api/select", json={"node_id": "nope"})
        assert resp.status == 404

    run_with_client(make_session(company), scenario)


def test_layout_search_and_move(company):
    async def scenario(client):
        resp = await client.post("/api/layout", json={"direction": "LR"})
        assert (await resp.json())["direction"] == "LR"

        resp = await client.post("/api/layout", json={"direction": "up"})
        assert resp.status == 400

        resp = await client.post("/api/search", json={"query": "EN"})
        assert (await resp.json())["matches"] == ["eng"]

        resp = await client.post("/api/nodes/ceo/position", json={"x": 10, "y": 20})
        assert resp.status == 200
        resp = await client.post("/api/nodes/ceo/position", json={"x": "left"})
        assert resp.status == 400
        resp = await client.post("/api/nodes/nope/position", json={"x": 1, "y": 2})
        assert resp.status == 404

    run_with_client(make_session(company), scenario)


def test_save_download(company):
    async def scenario(client):
        resp = await client.get("/api/save")
        assert resp.status == 200
        assert resp.headers["Content-Disposition"] == 'attachment; filename="structure.json"'
        assert (await resp.json())["name"] == "Co"

    run_with_client(make_session(company), scenario)


def test_load_upload_and_raw_body(company):
    session = make_session(company)

    async def scenario(client):
        form = FormData()
        form.add_field("file", b'{"name": "Uploaded", "members": [{"name": "Ann"}]}',
                       filename="structure.json", content_type="application/json")
        resp = await client.post("/api/load", data=form)
        assert resp.status == 200
        assert (await resp.json())["title"] == "Uploaded"

        resp = await client.post("/api/load", data="{broken")
        assert resp.status == 400
        assert "error" in await resp.json()

    run_with_client(session, scenario)
    assert session.root.name == "Uploaded"


def test_bad_json_body(company):
    async def scenario(client):
        resp = await client.post("/api/search", data="not json")
        assert resp.status == 400

    run_with_client(make_session(company), scenario)


def test_render_png(company):
    async def scenario(client):
        resp = await client.get("/api/render", params={"scale": "1"})
        assert resp.status == 200
        assert resp.content_type == "image/png"
        assert (await resp.read()).startswith(b"\x89PNG")

    run_with_client(make_session(company), scenario)


def test_search_rejects_non_text_query(company):
    async def scenario(client):
        resp = await client.post("/api/search", json={"query": 5})
        assert resp.status == 400

    run_with_client(make_session(company), scenario)


def test_overly_deep_upload_is_rejected(company, nested_document):
    session = make_session(company)

    async def scenario(client):
        resp = await client.post("/api/load", data=nested_document(100_000))
        assert resp.status == 400
        assert "nested too deeply" in (await resp.json())["error"]

        resp = await client.post("/api/load", data=nested_document(300))
        assert resp.status == 200
        assert len((await resp.json())["nodes"]) == 301

    run_with_client(session, scenario)


def test_upload_and_render_run_off_the_event_loop(company, monkeypatch):
    offloaded = []
    to_thread = asyncio.to_thread

    async def recording_to_thread(func, *args, **kwargs):
        offloaded.append(getattr(func, "__name__", repr(func)))
        return await to_thread(func, *args, **kwargs)

    monkeypatch.setattr(asyncio, "to_thread", recording_to_thread)

    async def scenario(client):
        form = FormData()
        form.add_field("file", b'{"name": "Uploaded"}', filename="structure.json")
        assert (await client.post("/api/load", data=form)).status == 200
        assert (await client.get("/api/render")).status == 200

    run_with_client(make_session(company), scenario)
    assert "read" in offloaded
    assert "render" in offloaded
