"""Bounded cycle detection over a directed dependency graph."""

from __future__ import annotations

from collections.abc import Mapping


def find_cycles(
    graph: Mapping[str, set[str]],
    max_length: int,
    limit: int | None = None,
) -> list[list[str]]:
    """Enumerate elementary cycles of at most ``max_length`` nodes.

    Each cycle is reported once, rotated to start at its smallest node.
    Nodes are explored in sorted order so the result is deterministic.

    Args:
        graph: Node -> successors; self loops are ignored
        max_length: Longer cycles are not reported
        limit: Stop after this many cycles

    Examples:
        >>> find_cycles({"a": {"b"}, "b": {"c"}, "c": {"a"}}, max_length=8)
        [['a', 'b', 'c']]
    """
    cycles: list[list[str]] = []
    nodes = sorted(set(graph) | {t for targets in graph.values() for t in targets})

    for start in nodes:
        # Only walk through nodes ordered after start: every cycle is then
        # found exactly once, from its smallest member
        stack: list[tuple[str, list[str]]] = [
            (start, sorted(t for t in graph.get(start, ()) if t >= start))
        ]
        path = [start]
        on_path = {start}

        while stack:
            node, pending = stack[-1]
            if not pending:
                stack.pop()
                on_path.discard(path.pop())
                continue
            nxt = pending.pop(0)
            if nxt == start:
                if len(path) > 1:
                    cycles.append(list(path))
                    if limit is not None and len(cycles) >= limit:
                        return cycles
                continue
            if nxt in on_path or len(path) >= max_length:
                continue
            path.append(nxt)
            on_path.add(nxt)
            stack.append((nxt, sorted(t for t in graph.get(nxt, ()) if t >= start)))

    return cycles
