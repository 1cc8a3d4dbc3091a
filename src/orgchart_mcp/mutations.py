"""
Mutation engine for OrgChart-MCP.

Structural edits on an organization tree.  Entities are immutable, so
every function takes the current root and returns a new root, rebuilding
only the path from the root down to the edited unit (copy-on-write).
Untouched subtrees are shared between the old and the new tree.

A call that cannot apply — no parent, a parent that cannot hold children,
an id that is not in the tree, a field that is not editable — is a guarded
no-op: it returns the *same* root object, so callers can detect "nothing
changed" with an identity check.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterator, Optional

from .ids import IdSource, new_id
from .models import EDITABLE_FIELDS, Entity, Member, OrgUnit

logger = logging.getLogger(__name__)


DEFAULT_UNIT_NAME = "New department"
DEFAULT_MEMBER_NAME = "New employee"
DEFAULT_MEMBER_TITLE = "Position"
DEFAULT_MEMBER_TENURE = "0 years"


# ---------------------------------------------------------------------------
# Lookup
# ---------------------------------------------------------------------------

def iter_entities(root: OrgUnit) -> Iterator[Entity]:
    """Yield every entity in pre-order (unit, its units, then its members)."""
    stack: list[Entity] = [root]
    while stack:
        entity = stack.pop()
        yield entity
        if isinstance(entity, OrgUnit):
            stack.extend(reversed(entity.children()))


def find_entity(root: OrgUnit, entity_id: Optional[str]) -> Optional[Entity]:
    """Look up an entity anywhere in the tree by id."""
    if entity_id is None:
        return None
    for entity in iter_entities(root):
        if entity.id == entity_id:
            return entity
    return None


# ---------------------------------------------------------------------------
# Path rebuilding
# ---------------------------------------------------------------------------

def _replace(unit: OrgUnit, entity_id: str, transform: Callable[[Entity], Entity]) -> OrgUnit:
    """Apply ``transform`` to the entity with ``entity_id`` and rebuild the path.

    Returns ``unit`` itself when the id is not found or the transform
    returned its input unchanged.
    """
    if unit.id == entity_id:
        return transform(unit)

    for idx, child in enumerate(unit.units):
        updated = _replace(child, entity_id, transform)
        if updated is not child:
            units = unit.units[:idx] + (updated,) + unit.units[idx + 1:]
            return unit.model_copy(update={"units": units})

    for idx, member in enumerate(unit.members):
        if member.id == entity_id:
            updated = transform(member)
            if updated is member:
                return unit
            members = unit.members[:idx] + (updated,) + unit.members[idx + 1:]
            return unit.model_copy(update={"members": members})

    return unit


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------

def add_unit(root: OrgUnit, parent: Optional[Entity], ids: IdSource = new_id) -> OrgUnit:
    """Append a new, empty unit to ``parent.units``.

    No-op unless ``parent`` is a unit that exists in ``root``.
    """
    if not isinstance(parent, OrgUnit):
        logger.debug("add_unit ignored: parent is not a unit")
        return root

    def append(entity: Entity) -> Entity:
        if not isinstance(entity, OrgUnit):
            return entity
        child = OrgUnit(id=ids(), name=DEFAULT_UNIT_NAME)
        return entity.model_copy(update={"units": entity.units + (child,)})

    updated = _replace(root, parent.id, append)
    if updated is root:
        logger.debug(f"add_unit ignored: unit '{parent.id}' not in tree")
    return updated


def add_member(root: OrgUnit, parent: Optional[Entity], ids: IdSource = new_id) -> OrgUnit:
    """Append a new member with default fields to ``parent.members``.

    No-op unless ``parent`` is a unit that exists in ``root``.
    """
    if not isinstance(parent, OrgUnit):
        logger.debug("add_member ignored: parent is not a unit")
        return root

    def append(entity: Entity) -> Entity:
        if not isinstance(entity, OrgUnit):
            return entity
        child = Member(
            id=ids(),
            name=DEFAULT_MEMBER_NAME,
            title=DEFAULT_MEMBER_TITLE,
            tenure=DEFAULT_MEMBER_TENURE,
        )
        return entity.model_copy(update={"members": entity.members + (child,)})

    updated = _replace(root, parent.id, append)
    if updated is root:
        logger.debug(f"add_member ignored: unit '{parent.id}' not in tree")
    return updated


def _delete(unit: OrgUnit, target_id: str) -> OrgUnit:
    for idx, child in enumerate(unit.units):
        if child.id == target_id:
            return unit.model_copy(update={"units": unit.units[:idx] + unit.units[idx + 1:]})

    for idx, child in enumerate(unit.units):
        updated = _delete(child, target_id)
        if updated is not child:
            units = unit.units[:idx] + (updated,) + unit.units[idx + 1:]
            return unit.model_copy(update={"units": units})

    for idx, member in enumerate(unit.members):
        if member.id == target_id:
            return unit.model_copy(update={"members": unit.members[:idx] + unit.members[idx + 1:]})

    return unit


def delete_entity(root: OrgUnit, target_id: Optional[str]) -> OrgUnit:
    """Remove the entity with ``target_id`` (and its subtree) from the tree.

    At each unit the direct child units are checked first, then each child
    unit is searched recursively, and only then the unit's own members.
    At most one entity is removed.  The root itself cannot be deleted.
    """
    if target_id is None:
        return root
    updated = _delete(root, target_id)
    if updated is root:
        logger.debug(f"delete ignored: '{target_id}' not found below the root")
    else:
        logger.info(f"Deleted entity '{target_id}'")
    return updated


def edit_field(root: OrgUnit, entity: Optional[Entity], field: str, value: Any) -> OrgUnit:
    """Set one text field of ``entity`` and return the rebuilt tree.

    Only the entity's editable text fields can be set (``name`` on units;
    ``name``, ``title`` and ``tenure`` on members).  Anything else is a
    no-op.
    """
    if entity is None:
        logger.debug("edit ignored: nothing selected")
        return root
    if field not in EDITABLE_FIELDS[entity.kind]:
        logger.debug(f"edit ignored: '{field}' is not editable on a {entity.kind}")
        return root

    text = "" if value is None else str(value)

    def assign(target: Entity) -> Entity:
        if target.kind != entity.kind:
            return target
        return target.model_copy(update={field: text})

    return _replace(root, entity.id, assign)
