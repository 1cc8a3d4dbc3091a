"""Search highlighting over a compiled graph.

``highlight`` only flips the ``emphasis`` flag; positions, labels and the
node count are left alone, so it can run on the live (possibly hand-dragged)
node list on every keystroke.
"""

from __future__ import annotations
from typing import Optional, Sequence

from .models import GraphNode


def is_blank_query(query: Optional[str]) -> bool:
    """An empty or single-space query means "no filter"."""
    return query is None or query in ("", " ")


def matches(label: str, query: str) -> bool:
    return query.lower() in label.lower()


def highlight(nodes: Sequence[GraphNode], query: Optional[str]) -> list[GraphNode]:
    """Return ``nodes`` with ``emphasis`` set on every label containing ``query``.

    Matching is a case-insensitive substring test.  A blank query clears
    emphasis on every node.
    """
    blank = is_blank_query(query)
    result = []
    for node in nodes:
        emphasis = not blank and matches(node.label, query)
        if node.emphasis == emphasis:
            result.append(node)
        else:
            result.append(node.model_copy(update={"emphasis": emphasis}))
    return result
