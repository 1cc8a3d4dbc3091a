"""Tests for the MCP tool surface."""

import asyncio
import json

import pytest

from orgchart_mcp import server
from orgchart_mcp.ids import SequentialIds
from orgchart_mcp.session import OrgChartSession


@pytest.fixture
def session(company, tmp_path, monkeypatch):
    monkeypatch.setattr(server, "OUTPUT_DIR", tmp_path)
    monkeypatch.setattr(server, "ensure_output_dir", lambda: tmp_path)
    return server.reset_session(OrgChartSession(root=company, ids=SequentialIds("new-")))


def call(name, arguments=None):
    result = asyncio.run(server.call_tool(name, arguments or {}))
    return result[0].text


def call_json(name, arguments=None):
    return json.loads(call(name, arguments))


def test_tools_are_listed():
    tools = asyncio.run(server.list_tools())

    assert {t.name for t in tools} == {
        "get_graph", "select_node", "add_unit", "add_member", "delete_selected",
        "edit_selected", "search", "relayout", "move_node", "save_structure",
        "load_structure", "render_chart",
    }


def test_get_graph(session):
    graph = call_json("get_graph")

    assert [n["label"] for n in graph["nodes"]] == ["Co", "Eng", "CEO"]
    assert len(graph["edges"]) == 2


def test_select_then_add_unit(session):
    assert call_json("select_node", {"node_id": "eng"})["selected"]["name"] == "Eng"

    result = call_json("add_unit")

    assert result["status"] == "success"
    assert len(result["graph"]["nodes"]) == 4


def test_add_without_selection_is_ignored(session):
    result = call_json("add_member")

    assert result["status"] == "ignored"
    assert len(result["graph"]["nodes"]) == 3


def test_delete_and_edit(session):
    call("select_node", {"node_id": "ceo"})
    assert call_json("edit_selected", {"field": "title", "value": "Boss"})["changed"]

    result = call_json("delete_selected")

    assert result["changed"]
    assert result["graph"]["selected"] is None
    assert [n["label"] for n in result["graph"]["nodes"]] == ["Co", "Eng"]


def test_search(session):
    assert call_json("search", {"query": "eng"})["matches"] == ["eng"]
    assert call_json("search", {"query": ""})["matches"] == []


def test_relayout(session):
    result = call_json("relayout", {"direction": "LR"})

    assert result["graph"]["direction"] == "LR"
    assert "Layout failed" in call("relayout", {"direction": "XY"})


def test_move_node(session):
    assert call_json("move_node", {"node_id": "ceo", "x": 5, "y": 6})["status"] == "success"
    assert call_json("move_node", {"node_id": "nope", "x": 5, "y": 6})["status"] == "ignored"


def test_save_then_load(session, tmp_path):
    saved = call_json("save_structure")

    assert saved["path"] == str(tmp_path / "structure.json")
    assert json.loads((tmp_path / "structure.json").read_text())["name"] == "Co"

    loaded = call_json("load_structure", {"path": saved["path"]})
    assert loaded == {"status": "success", "title": "Co", "nodes": 3, "edges": 2}
    assert session.root.id == "new-1"


def test_load_inline_document(session):
    loaded = call_json("load_structure", {"document": "name: Yaml Co\nmembers:\n  - name: Ann\n", "format": "yaml"})

    assert loaded["title"] == "Yaml Co"
    assert loaded["nodes"] == 2


def test_malformed_load_is_reported(session):
    text = call("load_structure", {"document": "{oops"})

    assert text.startswith("Failed to load structure")
    assert session.root.name == "Co"


def test_load_needs_a_source(session):
    assert "Provide either" in call("load_structure")


def test_render_chart(session, tmp_path):
    result = call_json("render_chart", {"filename": "chart", "scale": 1.0})

    assert result["path"] == str(tmp_path / "chart.png")
    assert (tmp_path / "chart.png").read_bytes().startswith(b"\x89PNG")


def test_unknown_tool():
    assert call("frobnicate") == "Unknown tool: frobnicate"


def test_overly_deep_document_is_reported(session, nested_document):
    text = call("load_structure", {"document": nested_document(100_000)})

    assert text.startswith("Failed to load structure")
    assert session.root.name == "Co"


def test_search_coerces_non_text_query(session):
    assert call_json("search", {"query": 5})["query"] == "5"
