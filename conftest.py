"""Shared fixtures for the OrgChart-MCP tests."""

import pytest

from orgchart_mcp.ids import SequentialIds
from orgchart_mcp.models import Member, OrgUnit
from orgchart_mcp.sample import sample_structure


@pytest.fixture
def ids():
    return SequentialIds("new-")


@pytest.fixture
def company() -> OrgUnit:
    """Co ─┬─ Eng (unit, empty)
           └─ CEO (member)
    """
    return OrgUnit(
        id="co",
        name="Co",
        units=(OrgUnit(id="eng", name="Eng"),),
        members=(Member(id="ceo", name="CEO", title="CEO", tenure="10y"),),
    )


@pytest.fixture
def sample() -> OrgUnit:
    """The eight-entity example organization with ids s-1 .. s-8."""
    return sample_structure(SequentialIds("s-"))


@pytest.fixture
def nested_document():
    """Build a JSON document whose units form a single chain ``depth`` levels deep."""
    def build(depth: int) -> str:
        return '{"name": "level", "units": [' * depth + '{"name": "leaf"}' + "]}" * depth
    return build
