"""Lack-of-cohesion (LCOM) strategies.

All strategies return a value in ``[0, 1]``: 0 is fully cohesive, 1 means
no two methods work on the same state. Classes with fewer than two methods
are cohesive by definition.

- ``pairwise``: fraction of method pairs sharing no field (standard CK)
- ``henderson_sellers``: LCOM* = (mean field accessors - m) / (1 - m)
- ``lcom4``: connected components of the method graph, where methods are
  linked by a shared field or a direct call, scaled to (C - 1) / (m - 1)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from itertools import combinations

from ..core.exceptions import ConfigError


class CohesionStrategy(ABC):
    """Computes LCOM from a class's methods and their field accesses."""

    name: str

    @abstractmethod
    def compute(
        self,
        methods: Sequence[str],
        field_access: Mapping[str, set[str]],
        method_calls: Mapping[str, set[str]] | None = None,
    ) -> float:
        """Return LCOM in ``[0, 1]``.

        Args:
            methods: Ids of the class's own methods
            field_access: Method id -> ids of own fields it touches
            method_calls: Method id -> ids of own methods it calls
        """


class PairwiseLCOM(CohesionStrategy):
    name = "pairwise"

    def compute(self, methods, field_access, method_calls=None) -> float:
        if len(methods) < 2:
            return 0.0
        pairs = 0
        disjoint = 0
        for a, b in combinations(methods, 2):
            pairs += 1
            if not (field_access.get(a, set()) & field_access.get(b, set())):
                disjoint += 1
        return disjoint / pairs


class HendersonSellersLCOM(CohesionStrategy):
    name = "henderson_sellers"

    def compute(self, methods, field_access, method_calls=None) -> float:
        m = len(methods)
        fields = set().union(*(field_access.get(meth, set()) for meth in methods)) if methods else set()
        if m < 2 or not fields:
            return 0.0
        accessors = [sum(1 for meth in methods if f in field_access.get(meth, set())) for f in fields]
        mean = sum(accessors) / len(fields)
        value = (mean - m) / (1 - m)
        return min(1.0, max(0.0, value))


class UnionFind:
    """Disjoint sets over hashable items."""

    def __init__(self, items: Sequence[str]):
        self.parent = {item: item for item in items}

    def find(self, item: str) -> str:
        root = item
        while self.parent[root] != root:
            root = self.parent[root]
        # Path compression
        while self.parent[item] != root:
            self.parent[item], item = root, self.parent[item]
        return root

    def union(self, a: str, b: str) -> None:
        ra, rb = self.find(a), self.find(b)
        if ra != rb:
            self.parent[rb] = ra

    def count(self) -> int:
        return len({self.find(item) for item in self.parent})


class LCOM4(CohesionStrategy):
    name = "lcom4"

    def compute(self, methods, field_access, method_calls=None) -> float:
        m = len(methods)
        if m < 2:
            return 0.0
        own = set(methods)
        uf = UnionFind(list(methods))

        by_field: dict[str, str] = {}
        for meth in methods:
            for f in field_access.get(meth, set()):
                if f in by_field:
                    uf.union(by_field[f], meth)
                else:
                    by_field[f] = meth
        for meth, callees in (method_calls or {}).items():
            if meth not in own:
                continue
            for callee in callees:
                if callee in own:
                    uf.union(meth, callee)

        return (uf.count() - 1) / (m - 1)


_STRATEGIES: dict[str, type[CohesionStrategy]] = {
    PairwiseLCOM.name: PairwiseLCOM,
    HendersonSellersLCOM.name: HendersonSellersLCOM,
    LCOM4.name: LCOM4,
}


def get_cohesion_strategy(name: str) -> CohesionStrategy:
    """Instantiate a strategy by name.

    Raises:
        ConfigError: If the name is unknown
    """
    try:
        return _STRATEGIES[name]()
    except KeyError:
        raise ConfigError(
            f"Unknown LCOM strategy {name!r} (expected one of: {', '.join(_STRATEGIES)})"
        ) from None
