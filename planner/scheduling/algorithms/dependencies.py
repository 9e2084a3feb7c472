"""
Dependency-aware ordering of scored tasks.
"""

from typing import Dict, List, Set, Tuple

from ...models import TaskScore


def _reachable(start: str, graph: Dict[str, Set[str]]) -> Set[str]:
    seen: Set[str] = set()
    stack = list(graph.get(start, ()))
    while stack:
        node = stack.pop()
        if node in seen:
            continue
        seen.add(node)
        stack.extend(graph.get(node, ()))
    return seen


def _cycle_members(node: str, graph: Dict[str, Set[str]]) -> Set[str]:
    """Nodes sharing a cycle with `node`; empty when it is not on one."""
    forward = _reachable(node, graph)
    if node not in forward:
        return set()
    return {other for other in forward if node in _reachable(other, graph)}


def order_by_dependencies(scored: List[TaskScore]) -> Tuple[List[TaskScore], Dict[str, List[str]]]:
    """
    Kahn-style ordering: repeatedly take the best-scored task whose
    dependencies within this list have all been taken. Dependencies on tasks
    outside the list are ignored here.

    Returns the ordering and, for every task caught in a dependency cycle, the
    sorted ids of its cycle. Cycle members are left out of the ordering; tasks
    that merely depend on them still appear, after the cycle is broken.
    """
    ids = {s.task.id for s in scored}
    graph = {s.task.id: {d for d in s.task.dependencies if d in ids} for s in scored}

    ordered: List[TaskScore] = []
    cycles: Dict[str, List[str]] = {}
    done: Set[str] = set()
    remaining = list(scored)

    while remaining:
        ready = next((s for s in remaining if graph[s.task.id] <= done), None)
        if ready is not None:
            ordered.append(ready)
            done.add(ready.task.id)
            remaining.remove(ready)
            continue

        # Everything left is blocked: peel off cycle members and carry on
        blocked = {s.task.id for s in remaining}
        sub_graph = {node: graph[node] & blocked for node in blocked}
        for s in list(remaining):
            members = _cycle_members(s.task.id, sub_graph)
            if members:
                cycles[s.task.id] = sorted(members)
                done.add(s.task.id)
                remaining.remove(s)

    return ordered, cycles
