from __future__ import annotations

import itertools
from collections import defaultdict
from collections.abc import Callable
from uuid import uuid4

# Takes a short prefix ("n", "e", "session", ...) and returns a fresh id.
IdFactory = Callable[[str], str]


def uuid_ids(prefix: str) -> str:
    return f"{prefix}_{uuid4().hex}"


def sequential_ids(start: int = 1) -> IdFactory:
    """
    Deterministic ids, one counter per prefix: n1, n2, e1, ...
    Meant for tests and for editors that want readable ids.
    """
    counters: defaultdict[str, itertools.count] = defaultdict(
        lambda: itertools.count(start)
    )

    def _next(prefix: str) -> str:
        return f"{prefix}{next(counters[prefix])}"

    return _next
