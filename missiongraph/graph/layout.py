"""Deterministic layered (hierarchical) layout.

Pipeline:
1. Break cycles by reversing depth-first back edges (for ranking only)
2. Rank nodes by longest path from the roots
3. Split edges spanning several ranks with virtual nodes
4. Order each layer with barycenter sweeps, keeping the fewest-crossing order
5. Map (layer, order) to coordinates using the separation options

Identical ordered input always yields identical positions. Cyclic, dangling
and duplicate edges never raise.
"""

from __future__ import annotations

import heapq
from bisect import bisect_right, insort
from dataclasses import dataclass, replace
from typing import Hashable, Iterable, Literal, Sequence

from .model import Edge, Node, Position

Direction = Literal["TB", "LR"]

DIRECTIONS: tuple[str, ...] = ("TB", "LR")


@dataclass(frozen=True)
class LayoutOptions:
    direction: str = "TB"
    node_width: float = 220.0
    node_height: float = 140.0
    rank_separation: float = 80.0
    node_separation: float = 40.0
    agent_height_bonus: float = 20.0  # agent cards render taller than task cards
    ordering_passes: int = 4

    def __post_init__(self) -> None:
        if self.direction not in DIRECTIONS:
            raise ValueError(f"direction must be one of: {', '.join(DIRECTIONS)}")
        if self.node_width <= 0 or self.node_height <= 0:
            raise ValueError("node_width and node_height must be positive")
        if self.rank_separation < 0 or self.node_separation < 0:
            raise ValueError("separations must not be negative")
        if self.agent_height_bonus < 0:
            raise ValueError("agent_height_bonus must not be negative")
        if self.ordering_passes < 0:
            raise ValueError("ordering_passes must not be negative")

    def node_size(self, node: Node) -> tuple[float, float]:
        """Return (width, height) of a node box."""
        if node.kind == "agent":
            return self.node_width, self.node_height + self.agent_height_bonus
        return self.node_width, self.node_height


DEFAULT_OPTIONS = LayoutOptions()


def apply_layout(
    nodes: Sequence[Node],
    edges: Iterable[Edge],
    options: LayoutOptions | None = None,
) -> list[Node]:
    """Assign a position to every node.

    Returns new nodes in input order; data and pinned flags are untouched.
    Positions are the top-left corner of each node box.
    """
    if not nodes:
        return list(nodes)

    opts = options or DEFAULT_OPTIONS
    index: dict[str, int] = {}
    for i, node in enumerate(nodes):
        index.setdefault(node.id, i)

    links = _clean_links(((e.source, e.target) for e in edges), index)
    dag = _break_cycles(len(nodes), links)
    ranks = _longest_path_ranks(len(nodes), dag)
    layers, layer_links = _split_long_edges(ranks, dag)
    layers = _order_layers(layers, layer_links, opts.ordering_passes)

    real_layers = [[v for v in layer if v < len(nodes)] for layer in layers]
    positions = _assign_coordinates(real_layers, nodes, opts)

    return [replace(node, position=positions[i]) for i, node in enumerate(nodes)]


def count_crossings(layers: Sequence[Sequence[Hashable]], links: Iterable[tuple[Hashable, Hashable]]) -> int:
    """Count edge crossings between consecutive layers.

    Links that do not join two consecutive layers are ignored.
    """
    where: dict[Hashable, tuple[int, int]] = {}
    for r, layer in enumerate(layers):
        for pos, v in enumerate(layer):
            where[v] = (r, pos)

    per_gap: dict[int, list[tuple[int, int]]] = {}
    for src, dst in links:
        if src not in where or dst not in where:
            continue
        (ra, pa), (rb, pb) = where[src], where[dst]
        if rb == ra + 1:
            per_gap.setdefault(ra, []).append((pa, pb))
        elif ra == rb + 1:
            per_gap.setdefault(rb, []).append((pb, pa))

    return sum(_inversions(pairs) for pairs in per_gap.values())


def _inversions(pairs: list[tuple[int, int]]) -> int:
    total = 0
    seen: list[int] = []
    for _, b in sorted(pairs):
        total += len(seen) - bisect_right(seen, b)
        insort(seen, b)
    return total


def _clean_links(pairs: Iterable[tuple[str, str]], index: dict[str, int]) -> list[tuple[int, int]]:
    """Map edges to node indices; drop dangling, self and duplicate links."""
    links: list[tuple[int, int]] = []
    seen: set[tuple[int, int]] = set()
    for src, dst in pairs:
        u = index.get(src)
        v = index.get(dst)
        if u is None or v is None or u == v:
            continue
        if (u, v) in seen:
            continue
        seen.add((u, v))
        links.append((u, v))
    return links


def _break_cycles(n: int, links: list[tuple[int, int]]) -> list[tuple[int, int]]:
    """Reverse depth-first back edges so the link set becomes acyclic."""
    succ: list[list[tuple[int, int]]] = [[] for _ in range(n)]
    for k, (u, v) in enumerate(links):
        succ[u].append((v, k))

    state = [0] * n  # 0 = new, 1 = on stack, 2 = finished
    back: set[int] = set()
    for root in range(n):
        if state[root]:
            continue
        state[root] = 1
        stack = [(root, iter(succ[root]))]
        while stack:
            u, it = stack[-1]
            for v, k in it:
                if state[v] == 1:
                    back.add(k)
                elif state[v] == 0:
                    state[v] = 1
                    stack.append((v, iter(succ[v])))
                    break
            else:
                state[u] = 2
                stack.pop()

    dag: list[tuple[int, int]] = []
    seen: set[tuple[int, int]] = set()
    for k, (u, v) in enumerate(links):
        link = (v, u) if k in back else (u, v)
        if link not in seen:
            seen.add(link)
            dag.append(link)
    return dag


def _longest_path_ranks(n: int, dag: list[tuple[int, int]]) -> list[int]:
    succ: list[list[int]] = [[] for _ in range(n)]
    in_degree = [0] * n
    for u, v in dag:
        succ[u].append(v)
        in_degree[v] += 1

    ranks = [0] * n
    ready = [v for v in range(n) if in_degree[v] == 0]
    heapq.heapify(ready)
    while ready:
        u = heapq.heappop(ready)
        for v in succ[u]:
            ranks[v] = max(ranks[v], ranks[u] + 1)
            in_degree[v] -= 1
            if in_degree[v] == 0:
                heapq.heappush(ready, v)
    return ranks


def _split_long_edges(
    ranks: list[int], dag: list[tuple[int, int]]
) -> tuple[list[list[int]], list[tuple[int, int]]]:
    """Group nodes into layers, inserting virtual nodes on long edges.

    Virtual node ids start at ``len(ranks)``.
    """
    n = len(ranks)
    depth = max(ranks) + 1
    layers: list[list[int]] = [[] for _ in range(depth)]
    for v in range(n):
        layers[ranks[v]].append(v)

    layer_links: list[tuple[int, int]] = []
    next_id = n
    for u, v in dag:
        prev = u
        for r in range(ranks[u] + 1, ranks[v]):
            layers[r].append(next_id)
            layer_links.append((prev, next_id))
            prev = next_id
            next_id += 1
        layer_links.append((prev, v))
    return layers, layer_links


def _order_layers(
    layers: list[list[int]], layer_links: list[tuple[int, int]], passes: int
) -> list[list[int]]:
    above: dict[int, list[int]] = {}
    below: dict[int, list[int]] = {}
    for u, v in layer_links:
        below.setdefault(u, []).append(v)
        above.setdefault(v, []).append(u)

    current = [list(layer) for layer in layers]
    best = [list(layer) for layer in current]
    best_crossings = count_crossings(best, layer_links)

    for i in range(passes):
        if best_crossings == 0:
            break
        if i % 2 == 0:
            for r in range(1, len(current)):
                current[r] = _barycenter_sort(current[r], current[r - 1], above)
        else:
            for r in range(len(current) - 2, -1, -1):
                current[r] = _barycenter_sort(current[r], current[r + 1], below)
        crossings = count_crossings(current, layer_links)
        if crossings < best_crossings:
            best = [list(layer) for layer in current]
            best_crossings = crossings
    return best


def _barycenter_sort(layer: list[int], fixed: list[int], neighbors: dict[int, list[int]]) -> list[int]:
    """Reorder ``layer`` by the mean position of its neighbors in ``fixed``.

    Nodes without neighbors keep their current slot as their key.
    """
    fixed_pos = {v: p for p, v in enumerate(fixed)}
    keyed: list[tuple[float, int, int]] = []
    for pos, v in enumerate(layer):
        adjacent = [fixed_pos[w] for w in neighbors.get(v, ()) if w in fixed_pos]
        key = sum(adjacent) / len(adjacent) if adjacent else float(pos)
        keyed.append((key, pos, v))
    keyed.sort()
    return [v for _, _, v in keyed]


def _assign_coordinates(layers: list[list[int]], nodes: Sequence[Node], opts: LayoutOptions) -> list[Position]:
    horizontal = opts.direction == "LR"
    sizes = [opts.node_size(node) for node in nodes]

    def cross_size(v: int) -> float:
        w, h = sizes[v]
        return h if horizontal else w

    def rank_size(v: int) -> float:
        w, h = sizes[v]
        return w if horizontal else h

    spans = [
        sum(cross_size(v) for v in layer) + opts.node_separation * max(0, len(layer) - 1) for layer in layers
    ]
    widest = max(spans, default=0.0)

    positions: list[Position] = [Position() for _ in nodes]
    rank_offset = 0.0
    for layer, span in zip(layers, spans):
        thickness = max((rank_size(v) for v in layer), default=0.0)
        rank_center = rank_offset + thickness / 2
        cursor = (widest - span) / 2
        for v in layer:
            size = cross_size(v)
            cross_center = cursor + size / 2
            w, h = sizes[v]
            if horizontal:
                positions[v] = Position(x=rank_center - w / 2, y=cross_center - h / 2)
            else:
                positions[v] = Position(x=cross_center - w / 2, y=rank_center - h / 2)
            cursor += size + opts.node_separation
        rank_offset += thickness + opts.rank_separation
    return positions
