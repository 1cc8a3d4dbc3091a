"""Tree-to-graph compiler for OrgChart-MCP.

Flattens an organization tree into the node and edge lists consumed by the
layout adapter and the renderer.

The walk is depth-first pre-order from the root.  At each unit the child
units are visited before the members, so compiling the same tree always
yields the same nodes and edges in the same order — the layout depends on
that order.  Each non-root entity contributes exactly one edge, from its
immediate parent, with id ``e<parentId>-<childId>``.
"""

from __future__ import annotations
from typing import Optional

from .models import Entity, GraphEdge, GraphNode, OrgUnit


def edge_id(parent_id: str, child_id: str) -> str:
    return f"e{parent_id}-{child_id}"


def compile_tree(root: OrgUnit) -> tuple[list[GraphNode], list[GraphEdge]]:
    """Compile ``root`` into ``(nodes, edges)``.

    Nodes are emitted unpositioned (at the origin, no emphasis); run them
    through ``layout.layout_graph`` before drawing.
    """
    nodes: list[GraphNode] = []
    edges: list[GraphEdge] = []

    stack: list[tuple[Entity, Optional[OrgUnit]]] = [(root, None)]
    while stack:
        entity, parent = stack.pop()
        nodes.append(GraphNode(id=entity.id, label=entity.name, source=entity))
        if parent is not None:
            edges.append(GraphEdge(
                id=edge_id(parent.id, entity.id),
                source=parent.id,
                target=entity.id,
            ))
        if isinstance(entity, OrgUnit):
            stack.extend((child, entity) for child in reversed(entity.children()))

    return nodes, edges
