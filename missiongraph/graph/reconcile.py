"""Reconciliation of new snapshots against the rendered graph.

The controller is the single owner of what is currently on screen. Each new
snapshot either triggers a full relayout (topology or view changed) or a
data-only merge that keeps every node where it is.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Iterable, Literal

from .layout import LayoutOptions, apply_layout
from .model import Edge, GraphSnapshot, Node, Position, PositionRecord
from .views import DEFAULT_VIEW, ViewState, apply_view

logger = logging.getLogger(__name__)

Outcome = Literal["relayout", "merge"]
ControllerMode = Literal["initial", "laid_out"]


@dataclass(frozen=True)
class ReconcileResult:
    outcome: Outcome
    nodes: tuple[Node, ...]
    edges: tuple[Edge, ...]


class ReconciliationController:
    """Decides between full relayout and data-only merge per snapshot.

    Pins (user-dragged coordinates) override computed positions whenever the
    default view is active. Timeline and grouping views supersede pins while
    selected; the pins stay recorded and apply again on return.
    """

    def __init__(self, *, workspace_id: str = "", layout_options: LayoutOptions | None = None):
        self.workspace_id = workspace_id
        self.layout_options = layout_options or LayoutOptions()
        self.mode: ControllerMode = "initial"
        self.rendered_nodes: tuple[Node, ...] = ()
        self.rendered_edges: tuple[Edge, ...] = ()
        self.last_node_ids: frozenset[str] = frozenset()
        self.last_view: ViewState = DEFAULT_VIEW
        self._pins: dict[str, Position] = {}

    @property
    def pins(self) -> dict[str, Position]:
        return dict(self._pins)

    def reset(self, *, workspace_id: str | None = None) -> None:
        """Forget the rendered state (workspace switch)."""
        if workspace_id is not None:
            self.workspace_id = workspace_id
        self.mode = "initial"
        self.rendered_nodes = ()
        self.rendered_edges = ()
        self.last_node_ids = frozenset()
        self.last_view = DEFAULT_VIEW
        self._pins.clear()

    def seed_pins(self, records: Iterable[PositionRecord]) -> int:
        """Load persisted positions; only pinned records are honored."""
        count = 0
        for record in records:
            if not record.pinned:
                continue
            if self.workspace_id and record.workspace_id != self.workspace_id:
                continue
            self._pins[record.graph_node_id] = Position(x=record.x, y=record.y)
            count += 1
        return count

    def apply(self, snapshot: GraphSnapshot, view: ViewState = DEFAULT_VIEW) -> ReconcileResult:
        node_ids = snapshot.node_ids
        if self.mode == "initial":
            reason = "first snapshot"
        elif node_ids != self.last_node_ids:
            reason = "node set changed"
        elif view != self.last_view:
            reason = "view changed"
        else:
            return self._merge(snapshot)

        logger.debug(f"Full relayout ({reason}): {len(snapshot.nodes)} nodes, {len(snapshot.edges)} edges")
        return self._relayout(snapshot.nodes, snapshot.edges, view)

    def relayout(self, view: ViewState | None = None) -> ReconcileResult:
        """Force a full relayout of the currently rendered graph."""
        return self._relayout(self.rendered_nodes, self.rendered_edges, view or self.last_view)

    def move_node(self, node_id: str, x: float, y: float) -> bool:
        """Record a user drag: move the rendered node and pin it there.

        Only drags in the default view become pins. In timeline or grouping
        views the node moves on screen until the next relayout; its pin (if
        any) is left as it was.

        Returns False if the node is not rendered.
        """
        position = Position(x=x, y=y)
        pin = self.last_view.is_default
        moved = False
        nodes = []
        for node in self.rendered_nodes:
            if node.id == node_id:
                node = replace(node, position=position, pinned=node.pinned or pin)
                moved = True
            nodes.append(node)
        if moved:
            self.rendered_nodes = tuple(nodes)
            if pin:
                self._pins[node_id] = position
        return moved

    def _relayout(self, nodes: Iterable[Node], edges: Iterable[Edge], view: ViewState) -> ReconcileResult:
        edge_list = tuple(edges)
        laid_out = apply_layout(list(nodes), edge_list, self.layout_options)
        if view.is_default:
            laid_out = [self._pin(node) for node in laid_out]
        else:
            laid_out = apply_view(laid_out, view, workspace_id=self.workspace_id)

        self.rendered_nodes = tuple(laid_out)
        self.rendered_edges = edge_list
        self.last_node_ids = frozenset(n.id for n in laid_out)
        self.last_view = view
        self.mode = "laid_out"
        return ReconcileResult(outcome="relayout", nodes=self.rendered_nodes, edges=self.rendered_edges)

    def _pin(self, node: Node) -> Node:
        pinned_at = self._pins.get(node.id)
        if pinned_at is None:
            return node
        return replace(node, position=pinned_at, pinned=True)

    def _merge(self, snapshot: GraphSnapshot) -> ReconcileResult:
        fresh = {n.id: n for n in snapshot.nodes}
        merged: list[Node] = []
        for node in self.rendered_nodes:
            update = fresh.get(node.id)
            if update is None:
                continue
            merged.append(replace(node, data=update.data))

        self.rendered_nodes = tuple(merged)
        self.rendered_edges = tuple(snapshot.edges)
        self.last_node_ids = frozenset(n.id for n in merged)
        return ReconcileResult(outcome="merge", nodes=self.rendered_nodes, edges=self.rendered_edges)
