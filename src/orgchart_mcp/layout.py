"""
Layered layout for OrgChart-MCP.

Two layers live here:

  1. ``LayeredGraph`` — the layout collaborator.  A batch "describe the
     graph, compute, query positions" object: ``set_graph``, ``set_node``,
     ``set_edge``, ``layout()``, then ``node(id)`` for each node's centre.
     There is no incremental update; a graph is built, laid out once, and
     thrown away.

  2. ``layout_graph`` — the adapter the rest of the package calls.  It
     builds a fresh ``LayeredGraph`` for every call (no state survives
     between calls), feeds it the compiled nodes and edges with a uniform
     box size, and converts the returned centres into top-left positions
     plus connector-side hints.

The rank algorithm is a topological layering with parent-centre alignment:

  - Kahn's topological sort assigns each node the length of the longest
    path from a source; gaps between levels are compressed.
  - Within a rank, nodes are ordered by the mean cross-axis centre of
    their already placed predecessors (barycentre ordering), which keeps
    sibling groups together and avoids edge crossings in a tree.
  - Each sibling group is centred on its parent, then pushed along the
    cross axis until it clears the previous box by ``nodesep``.
  - Ranks are stacked along the rank axis ``ranksep`` apart.

For a tree every edge therefore joins rank r to rank r + 1, and no two
boxes overlap.

Spacing constants:
  - Node box: 172 x 36
  - Between boxes in a rank: 50
  - Between ranks: 50
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional, Sequence

import networkx as nx

from .models import DIRECTIONS, ConnectorSides, GraphEdge, GraphNode, Position

logger = logging.getLogger(__name__)


# --- Sizing constants ---

NODE_WIDTH = 172
NODE_HEIGHT = 36

NODE_SEPARATION = 50
RANK_SEPARATION = 50

CONNECTOR_SIDES: dict[str, ConnectorSides] = {
    "TB": ConnectorSides(target="top", source="bottom"),
    "LR": ConnectorSides(target="left", source="right"),
}


@dataclass
class LayoutPosition:
    """Computed centre of a node."""
    x: float
    y: float


@dataclass
class _RankEntry:
    """A node waiting to be placed within its rank."""
    node_id: str
    order: int
    target_center: Optional[float]


# ---------------------------------------------------------------------------
# Layout collaborator
# ---------------------------------------------------------------------------

class LayeredGraph:
    """A single-use layered layout graph.

    Usage mirrors a classic layered-layout engine::

        graph = LayeredGraph()
        graph.set_graph({"rankdir": "TB"})
        graph.set_node("a", {"width": 172, "height": 36})
        graph.set_node("b", {"width": 172, "height": 36})
        graph.set_edge("a", "b")
        graph.layout()
        graph.node("b")   # {"x": ..., "y": ..., "width": ..., "height": ...}

    Coordinates returned by ``node()`` are box centres, translated so the
    top-left corner of the whole drawing sits at (0, 0).
    """

    def __init__(self):
        self._graph = nx.DiGraph()
        self._options: dict = {
            "rankdir": "TB",
            "nodesep": NODE_SEPARATION,
            "ranksep": RANK_SEPARATION,
        }
        self._positions: dict[str, LayoutPosition] = {}

    def set_graph(self, options: dict) -> None:
        rankdir = options.get("rankdir", self._options["rankdir"])
        if rankdir not in DIRECTIONS:
            valid = ", ".join(DIRECTIONS)
            raise ValueError(f"Unknown rank direction '{rankdir}'. Valid directions: {valid}")
        self._options.update(options)

    def set_node(self, node_id: str, attrs: dict) -> None:
        self._graph.add_node(
            node_id,
            width=float(attrs.get("width", NODE_WIDTH)),
            height=float(attrs.get("height", NODE_HEIGHT)),
        )

    def set_edge(self, source: str, target: str) -> None:
        # Endpoints that were never described get a zero-size box.
        for node_id in (source, target):
            if node_id not in self._graph:
                self._graph.add_node(node_id, width=0.0, height=0.0)
        self._graph.add_edge(source, target)

    def node(self, node_id: str) -> dict:
        if node_id not in self._positions:
            raise KeyError(f"No layout for node '{node_id}'")
        pos = self._positions[node_id]
        attrs = self._graph.nodes[node_id]
        return {"x": pos.x, "y": pos.y, "width": attrs["width"], "height": attrs["height"]}

    def nodes(self) -> list[str]:
        return list(self._graph.nodes)

    # --- Algorithm ---

    def layout(self) -> None:
        """Compute a centre position for every node in the graph."""
        self._positions = {}
        if self._graph.number_of_nodes() == 0:
            return

        horizontal = self._options["rankdir"] == "LR"
        levels = self._assign_levels()

        grouped: dict[int, list[str]] = {}
        for node_id in self._graph.nodes:
            grouped.setdefault(levels[node_id], []).append(node_id)

        order = {node_id: idx for idx, node_id in enumerate(self._graph.nodes)}
        cross_centers: dict[str, float] = {}
        rank_centers: dict[str, float] = {}
        current_rank = 0.0

        for level in sorted(grouped):
            rank_items = grouped[level]
            rank_size = max(self._rank_extent(n, horizontal) for n in rank_items)

            entries = [
                _RankEntry(
                    node_id=node_id,
                    order=order[node_id],
                    target_center=self._parent_center(node_id, cross_centers),
                )
                for node_id in rank_items
            ]
            # Barycentre ordering; unplaced parents sort last.  Ties keep
            # insertion order so siblings stay in tree order.
            entries.sort(key=lambda e: (
                e.target_center if e.target_center is not None else math.inf,
                e.order,
            ))

            self._place_rank(entries, cross_centers, horizontal)

            for node_id in rank_items:
                rank_centers[node_id] = current_rank + rank_size / 2
            current_rank += rank_size + self._options["ranksep"]

        self._store_positions(cross_centers, rank_centers, horizontal)
        logger.debug(
            f"Laid out {len(self._positions)} nodes in {len(grouped)} ranks "
            f"({self._options['rankdir']})"
        )

    def _assign_levels(self) -> dict[str, int]:
        """Longest-path levels via Kahn's algorithm, gaps compressed."""
        graph = self._graph
        indegree: dict[str, int] = {n: graph.in_degree(n) for n in graph.nodes}
        levels: dict[str, int] = {}
        queue: list[str] = []

        for node_id in graph.nodes:
            if indegree[node_id] == 0:
                levels[node_id] = 0
                queue.append(node_id)

        while queue:
            current = queue.pop(0)
            current_level = levels[current]
            for target in graph.successors(current):
                candidate = current_level + 1
                existing = levels.get(target)
                if existing is None or candidate > existing:
                    levels[target] = candidate
                indegree[target] -= 1
                if indegree[target] == 0:
                    queue.append(target)

        # Nodes on a cycle never reach indegree 0; hang them below their
        # deepest resolved predecessor.
        for node_id in graph.nodes:
            if node_id in levels and indegree[node_id] <= 0:
                continue
            incoming = [levels[p] for p in graph.predecessors(node_id) if p in levels]
            levels[node_id] = max(incoming) + 1 if incoming else 0

        unique_levels = sorted(set(levels.values()))
        remap = {lvl: idx for idx, lvl in enumerate(unique_levels)}
        return {node_id: remap[lvl] for node_id, lvl in levels.items()}

    def _rank_extent(self, node_id: str, horizontal: bool) -> float:
        attrs = self._graph.nodes[node_id]
        return attrs["width"] if horizontal else attrs["height"]

    def _cross_extent(self, node_id: str, horizontal: bool) -> float:
        attrs = self._graph.nodes[node_id]
        return attrs["height"] if horizontal else attrs["width"]

    def _parent_center(self, node_id: str, cross_centers: dict[str, float]) -> Optional[float]:
        centers = [
            cross_centers[p] for p in self._graph.predecessors(node_id)
            if p in cross_centers
        ]
        if not centers:
            return None
        center = sum(centers) / len(centers)
        return center if math.isfinite(center) else None

    def _place_rank(
        self,
        entries: list[_RankEntry],
        cross_centers: dict[str, float],
        horizontal: bool,
    ) -> None:
        """Centre each sibling group on its parent, then resolve overlaps."""
        nodesep = self._options["nodesep"]
        previous_end = -math.inf

        idx = 0
        while idx < len(entries):
            # A group is a run of entries sharing the same target centre.
            group_end = idx + 1
            while (
                group_end < len(entries)
                and entries[group_end].target_center is not None
                and entries[group_end].target_center == entries[idx].target_center
            ):
                group_end += 1
            group = entries[idx:group_end]

            extents = [self._cross_extent(e.node_id, horizontal) for e in group]
            group_extent = sum(extents) + nodesep * (len(group) - 1)

            if group[0].target_center is not None:
                desired_start = group[0].target_center - group_extent / 2
            elif math.isfinite(previous_end):
                desired_start = previous_end + nodesep
            else:
                desired_start = 0.0

            # Overlap prevention
            if math.isfinite(previous_end):
                desired_start = max(desired_start, previous_end + nodesep)

            cursor = desired_start
            for entry, extent in zip(group, extents):
                cross_centers[entry.node_id] = cursor + extent / 2
                cursor += extent + nodesep
            previous_end = cursor - nodesep

            idx = group_end

    def _store_positions(
        self,
        cross_centers: dict[str, float],
        rank_centers: dict[str, float],
        horizontal: bool,
    ) -> None:
        """Map (rank, cross) to (x, y) and translate the drawing to the origin."""
        raw: dict[str, LayoutPosition] = {}
        for node_id in self._graph.nodes:
            cross = cross_centers[node_id]
            rank = rank_centers[node_id]
            raw[node_id] = LayoutPosition(x=rank, y=cross) if horizontal else LayoutPosition(x=cross, y=rank)

        min_x = min(pos.x - self._graph.nodes[n]["width"] / 2 for n, pos in raw.items())
        min_y = min(pos.y - self._graph.nodes[n]["height"] / 2 for n, pos in raw.items())

        self._positions = {
            node_id: LayoutPosition(x=round(pos.x - min_x, 2), y=round(pos.y - min_y, 2))
            for node_id, pos in raw.items()
        }


# ---------------------------------------------------------------------------
# Adapter
# ---------------------------------------------------------------------------

def layout_graph(
    nodes: Sequence[GraphNode],
    edges: Sequence[GraphEdge],
    direction: str = "TB",
) -> list[GraphNode]:
    """Position ``nodes`` with a layered layout in ``direction``.

    Every node gets the same box size.  The returned nodes are new
    objects whose ``position`` is the box's top-left corner and whose
    ``connector_sides`` match the direction; labels, sources and emphasis
    are carried over unchanged.

    Raises:
        ValueError: If ``direction`` is not "TB" or "LR".
    """
    graph = LayeredGraph()
    graph.set_graph({"rankdir": direction})

    for node in nodes:
        graph.set_node(node.id, {"width": NODE_WIDTH, "height": NODE_HEIGHT})
    for edge in edges:
        graph.set_edge(edge.source, edge.target)

    graph.layout()

    sides = CONNECTOR_SIDES[direction]
    positioned = []
    for node in nodes:
        center = graph.node(node.id)
        positioned.append(node.model_copy(update={
            "position": Position(
                x=center["x"] - NODE_WIDTH / 2,
                y=center["y"] - NODE_HEIGHT / 2,
            ),
            "connector_sides": sides,
            "width": float(NODE_WIDTH),
            "height": float(NODE_HEIGHT),
        }))
    return positioned
