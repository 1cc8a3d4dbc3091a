"""
Editor session for OrgChart-MCP.

``OrgChartSession`` is the state behind one open chart: the organization
tree, the positioned graph derived from it, the current selection, the
rank direction and the active search query.  The MCP server and the web
app are thin wrappers that translate requests into calls on a session.

Control flow
------------
Structural edits (add, delete, field edits, load) replace the tree and
then rebuild the graph from scratch: compile → layout in the session's
direction → re-apply the active search.  The graph lists are always
replaced wholesale, never patched.

Re-layout and search work on the *current* node list instead, so they
keep any hand-dragged positions (search) or overwrite them on request
(re-layout) without recompiling.

Selection
---------
Either nothing is selected or one entity is, tracked by id so it always
resolves against the current tree.  Clicking a node selects its entity.
Deleting clears the selection whether or not anything was removed, and
loading a document clears it too.  Add, edit and delete without a
selection are ignored.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from .compiler import compile_tree
from .config import DEFAULT_DIRECTION
from .document import export_document, export_yaml, import_document
from .ids import IdSource, new_id
from .layout import layout_graph
from .models import DIRECTIONS, Entity, GraphEdge, GraphNode, OrgUnit, Position
from .mutations import add_member, add_unit, delete_entity, edit_field, find_entity
from .sample import sample_structure
from .search import highlight

logger = logging.getLogger(__name__)


def _check_direction(direction: str) -> str:
    if direction not in DIRECTIONS:
        valid = ", ".join(DIRECTIONS)
        raise ValueError(f"Unknown layout direction '{direction}'. Valid directions: {valid}")
    return direction


def entity_to_data(entity: Entity) -> dict:
    """Flat record of an entity's own fields (no child collections)."""
    data = entity.model_dump(mode="json", exclude={"units", "members"})
    data["kind"] = entity.kind
    return data


def node_to_data(node: GraphNode) -> dict:
    """JSON-ready node for a rendering client."""
    return {
        "id": node.id,
        "label": node.label,
        "kind": node.source.kind,
        "position": node.position.model_dump(),
        "connector_sides": node.connector_sides.model_dump(),
        "emphasis": node.emphasis,
        "width": node.width,
        "height": node.height,
        "data": entity_to_data(node.source),
    }


class OrgChartSession:
    """One open organization chart and its editor state."""

    def __init__(
        self,
        root: Optional[OrgUnit] = None,
        direction: str = DEFAULT_DIRECTION,
        ids: IdSource = new_id,
    ):
        self.ids = ids
        self.direction = _check_direction(direction)
        self.search_term = ""
        self.selected_id: Optional[str] = None
        self.root: OrgUnit = root if root is not None else sample_structure(ids)
        self.nodes: list[GraphNode] = []
        self.edges: list[GraphEdge] = []
        self._rebuild()

    # --- Graph maintenance ---

    def _project(self, root: OrgUnit) -> tuple[list[GraphNode], list[GraphEdge]]:
        """Compile, lay out and highlight ``root`` without touching state."""
        nodes, edges = compile_tree(root)
        nodes = layout_graph(nodes, edges, self.direction)
        return highlight(nodes, self.search_term), edges

    def _rebuild(self) -> None:
        self.nodes, self.edges = self._project(self.root)

    def _replace_root(self, root: OrgUnit) -> bool:
        if root is self.root:
            return False
        self.root = root
        self._rebuild()
        return True

    def get_node(self, node_id: str) -> Optional[GraphNode]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    # --- Selection ---

    @property
    def selection(self) -> Optional[Entity]:
        return find_entity(self.root, self.selected_id)

    def select(self, node_id: str) -> Optional[Entity]:
        """Select the entity behind a clicked node; unknown ids are ignored."""
        entity = find_entity(self.root, node_id)
        if entity is None:
            logger.debug(f"select ignored: no node '{node_id}'")
            return None
        self.selected_id = entity.id
        return entity

    def clear_selection(self) -> None:
        self.selected_id = None

    # --- Structural edits ---

    def add_unit(self) -> bool:
        """Add a sub-unit to the selected unit.  Returns True if the tree changed."""
        return self._replace_root(add_unit(self.root, self.selection, self.ids))

    def add_member(self) -> bool:
        """Add a member to the selected unit.  Returns True if the tree changed."""
        return self._replace_root(add_member(self.root, self.selection, self.ids))

    def delete_selected(self) -> bool:
        """Delete the selected entity and its subtree, then clear the selection."""
        target_id = self.selected_id
        self.clear_selection()
        if target_id is None:
            logger.debug("delete ignored: nothing selected")
            return False
        return self._replace_root(delete_entity(self.root, target_id))

    def edit_selected(self, field: str, value: Any) -> bool:
        """Set a text field on the selected entity."""
        return self._replace_root(edit_field(self.root, self.selection, field, value))

    # --- View operations (no recompile) ---

    def relayout(self, direction: str) -> list[GraphNode]:
        """Re-lay out the current graph; the direction sticks for later edits."""
        self.direction = _check_direction(direction)
        self.nodes = layout_graph(self.nodes, self.edges, self.direction)
        return self.nodes

    def search(self, term: Optional[str]) -> list[GraphNode]:
        self.search_term = "" if term is None else str(term)
        self.nodes = highlight(self.nodes, self.search_term)
        return self.nodes

    def move_node(self, node_id: str, x: float, y: float) -> bool:
        """Apply a drag: put one node's top-left corner at (x, y)."""
        for idx, node in enumerate(self.nodes):
            if node.id == node_id:
                moved = node.model_copy(update={"position": Position(x=float(x), y=float(y))})
                self.nodes = self.nodes[:idx] + [moved] + self.nodes[idx + 1:]
                return True
        logger.debug(f"move ignored: no node '{node_id}'")
        return False

    # --- Persistence ---

    def save(self, fmt: str = "json") -> str:
        """Serialize the current tree."""
        if fmt == "yaml":
            return export_yaml(self.root)
        return export_document(self.root)

    def load(self, text: str, fmt: str = "json") -> OrgUnit:
        """Replace the tree with an imported document.

        The document is parsed, re-identified and laid out completely before
        anything is replaced, so a failed import leaves the session untouched.

        Raises:
            DocumentError: If the document is malformed or has the wrong shape.
        """
        root = import_document(text, ids=self.ids, fmt=fmt)
        nodes, edges = self._project(root)
        self.clear_selection()
        self.root = root
        self.nodes, self.edges = nodes, edges
        logger.info(f"Loaded structure '{root.name}' ({len(self.nodes)} entities)")
        return root

    def snapshot(self) -> dict:
        """Everything a rendering client needs to draw the chart."""
        selection = self.selection
        return {
            "title": self.root.name,
            "direction": self.direction,
            "search": self.search_term,
            "selected": entity_to_data(selection) if selection is not None else None,
            "nodes": [node_to_data(node) for node in self.nodes],
            "edges": [edge.model_dump() for edge in self.edges],
        }
