"""Bounded node selection for large graphs."""

from __future__ import annotations

from typing import Iterable, Sequence

from .model import Edge, Node

NODE_RENDER_LIMIT = 100

PRIORITY_AGENT_STATUSES = frozenset({"working"})
PRIORITY_TASK_STATUSES = frozenset({"in_progress", "planning"})


def is_priority(node: Node) -> bool:
    """Active nodes are always rendered."""
    if node.kind == "agent":
        return node.status in PRIORITY_AGENT_STATUSES
    return node.status in PRIORITY_TASK_STATUSES


def select_visible_nodes(nodes: Sequence[Node], threshold: int = NODE_RENDER_LIMIT) -> Sequence[Node]:
    """Return at most ``threshold`` nodes, plus any overflow of priority nodes.

    Graphs at or under the threshold are returned as-is (same object).
    Otherwise every priority node is kept and the remaining budget is filled
    with other nodes in their existing order.
    """
    if len(nodes) <= threshold:
        return nodes

    priority = [n for n in nodes if is_priority(n)]
    others = [n for n in nodes if not is_priority(n)]
    budget = max(0, threshold - len(priority))
    return priority + others[:budget]


def filter_edges(edges: Iterable[Edge], nodes: Iterable[Node]) -> list[Edge]:
    """Keep edges whose endpoints are both among ``nodes``."""
    present = {n.id for n in nodes}
    return [e for e in edges if e.source in present and e.target in present]
