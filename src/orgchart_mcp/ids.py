"""Identifier source for OrgChart-MCP.

Every entity id is minted here.  Functions that create entities accept an
``IdSource`` (any zero-argument callable returning a fresh string) and
default to ``new_id``.
"""

from __future__ import annotations

import itertools
import uuid
from typing import Callable

IdSource = Callable[[], str]


def new_id() -> str:
    """Return a fresh random UUID4 string."""
    return str(uuid.uuid4())


class SequentialIds:
    """Deterministic id source: ``<prefix>1``, ``<prefix>2``, ...

    Useful wherever reproducible ids matter (fixtures, sample documents).
    """

    def __init__(self, prefix: str = "id-", start: int = 1):
        self.prefix = prefix
        self._counter = itertools.count(start)

    def __call__(self) -> str:
        return f"{self.prefix}{next(self._counter)}"
