"""Structure document import/export for OrgChart-MCP.

The persisted document is a single JSON object mirroring the ``OrgUnit``
schema: every unit carries ``units`` and ``members``, every member carries
``title`` and ``tenure`` and no collections.  There is no version field.

Example:
    {"id": "...", "name": "Example Co",
     "units": [{"id": "...", "name": "Engineering", "units": [], "members": []}],
     "members": [{"id": "...", "name": "CEO", "title": "CEO", "tenure": "10 years"}]}

Imported documents never keep their ids: every unit and member gets a
fresh id from the identifier source, so a loaded tree cannot collide with
anything already in memory.  YAML documents with the same shape are also
accepted, and the legacy key names ``departments``/``employees`` and
``position``/``experience`` are understood.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from .ids import IdSource, new_id
from .models import Member, OrgUnit

logger = logging.getLogger(__name__)

SAVE_FILENAME = "structure.json"

UNIT_KEYS = ("units", "departments")
MEMBER_KEYS = ("members", "employees")


class DocumentError(ValueError):
    """A structure document could not be imported."""


class ParseError(DocumentError):
    """The document is not well-formed JSON/YAML."""


class ShapeError(DocumentError):
    """The document parsed but does not have the structure shape."""


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------

def to_data(root: OrgUnit) -> dict:
    """Return the document as plain Python data.

    Built level by level rather than with one ``model_dump`` of the root,
    which would run into pydantic's nesting limit on deep trees.
    """
    data = root.model_dump(mode="json", exclude={"units", "members"})
    stack = [(root, data)]
    while stack:
        unit, out = stack.pop()
        out["units"] = []
        for child in unit.units:
            child_data = child.model_dump(mode="json", exclude={"units", "members"})
            out["units"].append(child_data)
            stack.append((child, child_data))
        out["members"] = [member.model_dump(mode="json") for member in unit.members]
    return data


def export_document(root: OrgUnit) -> str:
    """Serialize the full tree to a compact JSON document.

    Raises:
        DocumentError: If the tree is nested too deeply for the encoder.
    """
    try:
        return json.dumps(to_data(root), ensure_ascii=False)
    except RecursionError as e:
        raise DocumentError("Structure is nested too deeply to serialize") from e


def export_yaml(root: OrgUnit) -> str:
    """Serialize the full tree to YAML (same shape as the JSON document)."""
    try:
        return yaml.dump(to_data(root), default_flow_style=False, sort_keys=False, allow_unicode=True)
    except RecursionError as e:
        raise DocumentError("Structure is nested too deeply to serialize") from e


# ---------------------------------------------------------------------------
# Import
# ---------------------------------------------------------------------------

def load_data(text: str, fmt: str = "json") -> object:
    """Parse document text into plain data.

    Raises:
        ParseError: If the text is empty, not well-formed, or nested too
            deeply for the parser.
    """
    if not text or not text.strip():
        raise ParseError("Empty document")
    try:
        if fmt == "json":
            return json.loads(text)
        if fmt == "yaml":
            return yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ParseError(f"Malformed {fmt.upper()} document: {e}") from e
    except RecursionError as e:
        raise ParseError(f"{fmt.upper()} document is nested too deeply") from e
    raise ValueError(f"Unknown document format '{fmt}'. Valid formats: json, yaml")


def _collection(data: dict, keys: tuple[str, ...], path: str) -> list:
    """Fetch a child collection; a missing collection counts as empty."""
    for key in keys:
        if key in data:
            value = data[key]
            if value is None:
                return []
            if not isinstance(value, list):
                raise ShapeError(f"{path}.{key}: expected a list, got {type(value).__name__}")
            return value
    return []


def _check_object(data: object, path: str) -> dict:
    if not isinstance(data, dict):
        raise ShapeError(f"{path}: expected an object, got {type(data).__name__}")
    return data


def _build_member(data: object, ids: IdSource, path: str) -> Member:
    member = dict(_check_object(data, path))
    member["id"] = ids()
    try:
        return Member.model_validate(member)
    except ValidationError as e:
        raise ShapeError(f"{path}: invalid member: {e}") from e


def _build_unit(record: dict) -> OrgUnit:
    fields = dict(record["fields"])
    fields.update(
        id=record["id"],
        units=tuple(child["model"] for child in record["units"]),
        members=tuple(record["members"]),
    )
    try:
        return OrgUnit.model_validate(fields)
    except ValidationError as e:
        raise ShapeError(f"{record['path']}: invalid unit: {e}") from e


def import_data(data: object, ids: IdSource = new_id) -> OrgUnit:
    """Build a tree from parsed document data, regenerating every id.

    Ids are handed out in walk order: a unit, then its units (each with
    its whole subtree), then its members.  The document is walked with an
    explicit stack and each unit is validated on its own, from children
    that are already models, so nesting depth is not limited by the
    interpreter's recursion limit or by pydantic's.

    Raises:
        ShapeError: If the data does not have the structure shape.
    """
    records: list[dict] = []
    root_record: dict = {"units": []}
    stack: list[tuple] = [("unit", data, "$", root_record)]

    while stack:
        task = stack.pop()
        if task[0] == "members":
            _, record, members, path = task
            record["members"] = [
                _build_member(child, ids, f"{path}.members[{i}]")
                for i, child in enumerate(members)
            ]
            continue

        _, raw, path, parent = task
        raw = _check_object(raw, path)
        units = _collection(raw, UNIT_KEYS, path)
        members = _collection(raw, MEMBER_KEYS, path)
        record = {
            "path": path,
            "fields": {k: v for k, v in raw.items() if k not in UNIT_KEYS + MEMBER_KEYS + ("id",)},
            "id": ids(),
            "units": [],
            "members": [],
        }
        parent["units"].append(record)
        records.append(record)

        # Members are numbered after the whole unit subtree, so they pop last.
        stack.append(("members", record, members, path))
        for i in reversed(range(len(units))):
            stack.append(("unit", units[i], f"{path}.units[{i}]", record))

    # Pre-order puts every child after its parent; build from the leaves up.
    for record in reversed(records):
        record["model"] = _build_unit(record)
    return root_record["units"][0]["model"]


def import_document(text: str, ids: IdSource = new_id, fmt: str = "json") -> OrgUnit:
    """Parse a structure document and return a freshly identified tree.

    Raises:
        ParseError: If the text is not well-formed JSON/YAML.
        ShapeError: If it parses but is not a structure document.
    """
    root = import_data(load_data(text, fmt), ids)
    logger.info(f"Imported structure '{root.name}'")
    return root


def format_for_path(path: str | Path) -> str:
    return "yaml" if Path(path).suffix.lower() in (".yaml", ".yml") else "json"


def parse_file(path: str | Path, ids: IdSource = new_id) -> OrgUnit:
    """Import a structure document from a ``.json``/``.yaml``/``.yml`` file."""
    content = Path(path).read_text(encoding="utf-8")
    return import_document(content, ids=ids, fmt=format_for_path(path))
