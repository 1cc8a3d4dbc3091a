"""
Data models for OrgChart-MCP — the organization ontology.

An organization is a strict tree of two entity kinds:

    OrgUnit   — a container (company, department, sub-department)
    ├── OrgUnit ...
    └── Member     — a leaf (a person), never has children

Every entity has an ``id`` that is unique across the whole tree; units and
members share the same identifier namespace.  Entities are immutable:
the mutation functions in ``mutations.py`` build a new tree instead of
editing one in place.

The kinds form a tagged variant.  Each model carries a ``kind`` literal so
code can discriminate with ``isinstance`` (or ``entity.kind``) rather than
by checking which collections happen to be present.  The persisted document
keeps the presence-typed shape: a unit has ``units`` and ``members``, a
member has neither (``kind`` is never written out).

The graph side of the module holds the derived, disposable projection of a
tree: ``GraphNode`` and ``GraphEdge``.  They are recomputed from the tree
after every structural change and are never patched in place.
"""

from __future__ import annotations
from typing import Literal, Union
from pydantic import AliasChoices, BaseModel, ConfigDict, Field


LayoutDirection = Literal["TB", "LR"]
DIRECTIONS: tuple[str, ...] = ("TB", "LR")


# ---------------------------------------------------------------------------
# Member (leaf)
# ---------------------------------------------------------------------------

class Member(BaseModel):
    """A member — a person, the leaf of the hierarchy.

    Fields
    ------
    ``title`` is the job title and ``tenure`` a free-text length of service
    ("3 years").  Older documents used ``position`` and ``experience`` for
    these; both spellings are accepted on input.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    kind: Literal["member"] = Field(default="member", exclude=True)
    id: str
    name: str = ""
    title: str = Field(default="", validation_alias=AliasChoices("title", "position"))
    tenure: str = Field(default="", validation_alias=AliasChoices("tenure", "experience"))


# ---------------------------------------------------------------------------
# OrgUnit (container)
# ---------------------------------------------------------------------------

class OrgUnit(BaseModel):
    """A unit — a container holding sub-units and members.

    The root of every organization is an ``OrgUnit`` with no parent.
    ``units`` always precede ``members`` when the tree is walked, which is
    what makes compiled graphs (and therefore layouts) reproducible.

    Older documents used ``departments`` and ``employees`` for the two
    collections; both spellings are accepted on input.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    kind: Literal["unit"] = Field(default="unit", exclude=True)
    id: str
    name: str = ""
    units: tuple[OrgUnit, ...] = Field(
        default=(), validation_alias=AliasChoices("units", "departments"),
    )
    members: tuple[Member, ...] = Field(
        default=(), validation_alias=AliasChoices("members", "employees"),
    )

    def children(self) -> tuple[Entity, ...]:
        """Return the direct children in walk order (units, then members)."""
        return (*self.units, *self.members)


Entity = Union[OrgUnit, Member]

OrgUnit.model_rebuild()

# Text fields a user may edit on each kind.  Ids, kinds and child
# collections are structural and only change through the mutation engine.
EDITABLE_FIELDS: dict[str, tuple[str, ...]] = {
    "unit": ("name",),
    "member": ("name", "title", "tenure"),
}


# ---------------------------------------------------------------------------
# Graph projection
# ---------------------------------------------------------------------------

class Position(BaseModel):
    """Top-left corner of a node box in canvas coordinates."""
    model_config = ConfigDict(frozen=True)

    x: float = 0.0
    y: float = 0.0


class ConnectorSides(BaseModel):
    """Which side of the box incoming and outgoing edges attach to.

    ``target`` is where an edge *ending* at this node enters, ``source`` is
    where an edge *starting* at this node leaves.
    """
    model_config = ConfigDict(frozen=True)

    target: Literal["top", "left"] = "top"
    source: Literal["bottom", "right"] = "bottom"


class GraphNode(BaseModel):
    """A node of the compiled graph — one per entity.

    ``source`` is a back-reference to the entity the node was compiled
    from, so a click on the node recovers the full record.  ``emphasis`` is
    the transient search-match flag.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    label: str
    source: Entity
    position: Position = Field(default_factory=Position)
    connector_sides: ConnectorSides = Field(default_factory=ConnectorSides)
    emphasis: bool = False
    width: float = 172.0
    height: float = 36.0

    @property
    def is_unit(self) -> bool:
        return isinstance(self.source, OrgUnit)


class GraphEdge(BaseModel):
    """A parent → child edge of the compiled graph."""
    model_config = ConfigDict(frozen=True)

    id: str
    source: str
    target: str
