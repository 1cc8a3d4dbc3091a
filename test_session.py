"""Tests for the editor session: selection, rebuilds, view state, load/save."""

import json

import pytest

from orgchart_mcp.document import ParseError, ShapeError
from orgchart_mcp.ids import SequentialIds
from orgchart_mcp.mutations import iter_entities
from orgchart_mcp.session import OrgChartSession


@pytest.fixture
def session(sample):
    return OrgChartSession(root=sample, direction="TB", ids=SequentialIds("new-"))


def _node(session, node_id):
    node = session.get_node(node_id)
    assert node is not None
    return node


def test_new_session_is_laid_out(session):
    assert len(session.nodes) == 8
    assert len(session.edges) == 7
    assert session.selection is None
    assert _node(session, "s-1").connector_sides.source == "bottom"


def test_default_session_uses_sample_structure():
    session = OrgChartSession()

    assert session.root.name == "Example Company"
    assert len(session.nodes) == 8


def test_select_resolves_clicked_node(session):
    entity = session.select("s-8")

    assert entity.name == "CEO"
    assert session.selected_id == "s-8"


def test_select_unknown_node_is_ignored(session):
    session.select("s-2")

    assert session.select("nope") is None
    assert session.selected_id == "s-2"


def test_add_without_selection_is_ignored(session):
    assert not session.add_unit()
    assert not session.add_member()
    assert len(session.nodes) == 8


def test_add_unit_to_selected_unit(session):
    session.select("s-6")

    assert session.add_unit()

    assert len(session.nodes) == 9
    assert len(session.edges) == 8
    assert _node(session, "new-1").label == "New department"
    assert session.selected_id == "s-6"


def test_add_to_selected_member_is_ignored(session):
    session.select("s-7")
    root = session.root

    assert not session.add_unit()
    assert not session.add_member()
    assert session.root is root


def test_delete_selected_clears_selection(session):
    session.select("s-2")

    assert session.delete_selected()

    assert session.selection is None
    assert len(session.nodes) == 4
    assert {n.id for n in session.nodes} == {"s-1", "s-6", "s-7", "s-8"}


def test_delete_without_selection_is_ignored(session):
    assert not session.delete_selected()
    assert len(session.nodes) == 8


def test_delete_root_is_ignored_but_clears_selection(session):
    session.select("s-1")

    assert not session.delete_selected()
    assert session.selection is None
    assert len(session.nodes) == 8


def test_edit_updates_label_and_keeps_selection(session):
    session.select("s-8")

    assert session.edit_selected("name", "Chief")

    assert _node(session, "s-8").label == "Chief"
    assert session.selection.name == "Chief"
    assert not session.edit_selected("salary", "lots")


def test_relayout_direction_sticks_for_later_edits(session):
    session.relayout("LR")
    assert _node(session, "s-1").connector_sides.source == "right"

    session.select("s-1")
    session.add_member()

    assert session.direction == "LR"
    assert all(n.connector_sides.source == "right" for n in session.nodes)


def test_relayout_rejects_unknown_direction(session):
    with pytest.raises(ValueError):
        session.relayout("diagonal")
    assert session.direction == "TB"


def test_search_survives_structural_edits(session):
    session.search("employee")
    assert {n.id for n in session.nodes if n.emphasis} == {"s-4", "s-5", "s-7"}

    session.select("s-6")
    session.add_member()

    assert {n.id for n in session.nodes if n.emphasis} == {"s-4", "s-5", "s-7", "new-1"}


def test_search_keeps_dragged_positions(session):
    session.move_node("s-8", 999, 555)

    session.search("ceo")

    node = _node(session, "s-8")
    assert (node.position.x, node.position.y) == (999, 555)
    assert node.emphasis


def test_relayout_overwrites_dragged_positions(session):
    original = _node(session, "s-8").position
    session.move_node("s-8", 999, 555)

    session.relayout("TB")

    assert _node(session, "s-8").position == original


def test_move_unknown_node_is_ignored(session):
    assert not session.move_node("nope", 1, 2)


def test_failed_load_keeps_the_model(session):
    session.select("s-2")
    root = session.root

    with pytest.raises(ParseError):
        session.load("{broken")
    with pytest.raises(ShapeError):
        session.load('{"name": "Co", "units": "Eng"}')

    assert session.root is root
    assert session.selected_id == "s-2"
    assert len(session.nodes) == 8


def test_load_replaces_model_and_clears_selection(session):
    session.select("s-2")

    root = session.load('{"name": "Co", "units": [{"name": "Eng"}], "members": [{"name": "CEO"}]}')

    assert session.root is root
    assert session.selection is None
    assert [n.label for n in session.nodes] == ["Co", "Eng", "CEO"]
    assert len(session.edges) == 2


def test_save_then_load_round_trips(session):
    document = session.save()
    old_ids = {e.id for e in iter_entities(session.root)}

    session.load(document)

    assert json.loads(document)["name"] == "Example Company"
    assert len(session.nodes) == 8
    assert old_ids.isdisjoint(e.id for e in iter_entities(session.root))


def test_save_yaml(session):
    assert session.save("yaml").startswith("id: s-1")


def test_snapshot_is_json_ready(session):
    session.select("s-8")
    session.search("ceo")

    snapshot = json.loads(json.dumps(session.snapshot()))

    assert snapshot["title"] == "Example Company"
    assert snapshot["direction"] == "TB"
    assert snapshot["search"] == "ceo"
    assert snapshot["selected"] == {
        "id": "s-8", "name": "CEO", "title": "Chief Executive Officer",
        "tenure": "15 years", "kind": "member",
    }
    ceo = next(n for n in snapshot["nodes"] if n["id"] == "s-8")
    assert ceo["emphasis"] is True
    assert ceo["kind"] == "member"
    assert set(ceo["position"]) == {"x", "y"}
    assert len(snapshot["edges"]) == 7


def test_unknown_initial_direction_is_rejected(sample):
    with pytest.raises(ValueError):
        OrgChartSession(root=sample, direction="RL")


def test_deep_document_loads_and_saves(session, nested_document):
    session.load(nested_document(300))

    assert len(session.nodes) == 301
    assert len(session.edges) == 300
    assert json.loads(session.save())["name"] == "level"


def test_overly_deep_load_keeps_the_model(session, nested_document):
    root = session.root

    with pytest.raises(ParseError):
        session.load(nested_document(100_000))

    assert session.root is root
    assert len(session.nodes) == 8


def test_search_coerces_non_text_queries(session):
    nodes = session.search(5)

    assert session.search_term == "5"
    assert not any(node.emphasis for node in nodes)
