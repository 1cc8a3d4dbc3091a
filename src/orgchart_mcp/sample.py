"""The example organization a new session starts with."""

from __future__ import annotations

from .document import import_data
from .ids import IdSource, new_id
from .models import OrgUnit

SAMPLE_STRUCTURE: dict = {
    "name": "Example Company",
    "units": [
        {
            "name": "Department A",
            "units": [
                {
                    "name": "Sub-department A1",
                    "units": [],
                    "members": [
                        {"name": "Employee A1-1", "title": "Manager", "tenure": "3 years"},
                    ],
                },
            ],
            "members": [
                {"name": "Employee A-1", "title": "Director", "tenure": "10 years"},
            ],
        },
        {
            "name": "Department B",
            "units": [],
            "members": [
                {"name": "Employee B-1", "title": "Manager", "tenure": "5 years"},
            ],
        },
    ],
    "members": [
        {"name": "CEO", "title": "Chief Executive Officer", "tenure": "15 years"},
    ],
}


def sample_structure(ids: IdSource = new_id) -> OrgUnit:
    """Build the example organization with fresh ids."""
    return import_data(SAMPLE_STRUCTURE, ids)
