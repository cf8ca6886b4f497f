"""One live graph view: entities in, render frames and commands out.

The session is the event-loop side of the engine. Every data or view change
runs synchronously:

    entities -> build_snapshot -> reconcile (layout + view) -> virtualize -> frame

Drag-stops go to the reconciler (pin) and to the debounced position writer.
Dependency fetches are ticketed so a response for a workspace the user has
already left is ignored.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Iterable, Mapping, Sequence

from .config import GraphConfig
from .graph.builder import build_snapshot
from .graph.interaction import (
    Command,
    CreateDependency,
    DeleteEdge,
    InteractionController,
    Relayout,
    SetGroupBy,
    SetViewMode,
)
from .graph.model import Edge, Node, PositionRecord, parse_node_id
from .graph.positions import DragStop, PositionPersistence
from .graph.reconcile import ReconcileResult, ReconciliationController
from .graph.virtualize import filter_edges, select_visible_nodes
from .models import Agent, Dependency, Session, Task
from .store import GraphStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FetchTicket:
    """Identifies one dependency fetch; stale tickets are ignored."""

    workspace_id: str
    generation: int


@dataclass(frozen=True)
class RenderFrame:
    """What the renderer draws: the full graph plus the virtualized subset."""

    outcome: str  # relayout | merge
    nodes: tuple[Node, ...]
    edges: tuple[Edge, ...]
    visible_nodes: tuple[Node, ...]
    visible_edges: tuple[Edge, ...]

    @property
    def is_virtualized(self) -> bool:
        return len(self.visible_nodes) < len(self.nodes)


EMPTY_FRAME = RenderFrame(outcome="relayout", nodes=(), edges=(), visible_nodes=(), visible_edges=())


class GraphSession:
    """Wires the graph pipeline for one view instance."""

    def __init__(
        self,
        store: GraphStore,
        *,
        config: GraphConfig | None = None,
        on_command: Callable[[Command], None] | None = None,
        on_render: Callable[[RenderFrame], None] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.store = store
        self.config = config or GraphConfig()
        self._on_command = on_command
        self._on_render = on_render
        self._clock = clock

        self.workspace_id: str | None = None
        self.agents: list[Agent] = []
        self.tasks: list[Task] = []
        self.sessions: dict[str, Session | None] = {}
        self.dependencies: list[Dependency] = []

        self.interaction = InteractionController(self._handle_command)
        self.reconciler = ReconciliationController(layout_options=self.config.layout)
        self.persistence: PositionPersistence | None = None
        self.frame: RenderFrame = EMPTY_FRAME
        self._generation = 0

    # -- workspace lifecycle --------------------------------------------------

    def enter_workspace(self, workspace_id: str) -> FetchTicket:
        """Switch to a workspace and start its dependency fetch.

        Staged drags of the previous workspace are flushed first; in-flight
        dependency fetches for it become stale.
        """
        if self.persistence is not None:
            self.persistence.flush()

        self.workspace_id = workspace_id
        self.dependencies = []
        self.frame = EMPTY_FRAME
        self.reconciler.reset(workspace_id=workspace_id)
        self.interaction.close_menu()
        self.interaction.cancel_connection()
        self.persistence = PositionPersistence(
            workspace_id,
            self._save_positions,
            delay=self.config.flush_delay,
            clock=self._clock,
        )

        try:
            seeded = self.reconciler.seed_pins(self.store.load_positions(workspace_id))
            logger.debug(f"Seeded {seeded} pinned position(s) for workspace {workspace_id}")
        except Exception as e:
            logger.warning(f"Failed to load node positions for workspace {workspace_id}: {e}")

        return self.start_dependency_fetch()

    def start_dependency_fetch(self) -> FetchTicket:
        """Issue a ticket for a dependency fetch of the current workspace."""
        if self.workspace_id is None:
            raise RuntimeError("No workspace entered")
        self._generation += 1
        return FetchTicket(workspace_id=self.workspace_id, generation=self._generation)

    def is_current(self, ticket: FetchTicket) -> bool:
        return ticket.workspace_id == self.workspace_id and ticket.generation == self._generation

    def deliver_dependencies(self, ticket: FetchTicket, dependencies: Iterable[Dependency]) -> bool:
        """Accept a fetch result unless the ticket is stale. Rebuilds on accept."""
        if not self.is_current(ticket):
            logger.debug(f"Ignoring stale dependency response for workspace {ticket.workspace_id}")
            return False
        self.dependencies = list(dependencies)
        self.rebuild()
        return True

    def refresh_dependencies(self) -> bool:
        """Fetch dependencies synchronously; keep the old list on failure."""
        ticket = self.start_dependency_fetch()
        try:
            dependencies = self.store.list_dependencies(ticket.workspace_id)
        except Exception as e:
            logger.warning(f"Failed to fetch dependencies for workspace {ticket.workspace_id}: {e}")
            return False
        return self.deliver_dependencies(ticket, dependencies)

    # -- data changes ---------------------------------------------------------

    def update(
        self,
        *,
        agents: Iterable[Agent] | None = None,
        tasks: Iterable[Task] | None = None,
        sessions: Mapping[str, Session | None] | None = None,
    ) -> RenderFrame:
        """Replace any of the live entity sets and rebuild."""
        if agents is not None:
            self.agents = list(agents)
        if tasks is not None:
            self.tasks = list(tasks)
        if sessions is not None:
            self.sessions = dict(sessions)
        return self.rebuild()

    def rebuild(self) -> RenderFrame:
        """Run the pipeline for the current data and view state.

        On any failure the last successfully rendered frame stays in place.
        """
        if self.workspace_id is None:
            raise RuntimeError("No workspace entered")
        try:
            snapshot = build_snapshot(
                self.agents,
                self.tasks,
                self.dependencies,
                self.sessions,
                workspace_id=self.workspace_id,
            )
            result = self.reconciler.apply(snapshot, self.interaction.view)
        except Exception as e:
            logger.warning(f"Graph rebuild failed for workspace {self.workspace_id}, keeping last frame: {e}")
            return self.frame
        return self._publish(result)

    def relayout(self) -> RenderFrame:
        try:
            result = self.reconciler.relayout(self.interaction.view)
        except Exception as e:
            logger.warning(f"Relayout failed for workspace {self.workspace_id}, keeping last frame: {e}")
            return self.frame
        return self._publish(result)

    def _publish(self, result: ReconcileResult) -> RenderFrame:
        visible = select_visible_nodes(result.nodes, self.config.virtualization_threshold)
        visible_edges = result.edges if visible is result.nodes else tuple(filter_edges(result.edges, visible))
        self.frame = RenderFrame(
            outcome=result.outcome,
            nodes=result.nodes,
            edges=result.edges,
            visible_nodes=tuple(visible),
            visible_edges=tuple(visible_edges),
        )
        if self._on_render is not None:
            self._on_render(self.frame)
        return self.frame

    # -- drags and timers -----------------------------------------------------

    def drag_stop(self, node_id: str, x: float, y: float) -> bool:
        """Pin a dragged node and stage its position for the debounced write.

        Drags made in timeline or grouping views only move the node on screen;
        those coordinates belong to that arrangement and are not persisted.
        """
        if self.persistence is None:
            raise RuntimeError("No workspace entered")
        kind, entity_id = parse_node_id(node_id)
        if not self.reconciler.move_node(node_id, x, y):
            logger.debug(f"Drag-stop for unknown node {node_id}")
            return False
        if self.reconciler.last_view.is_default:
            self.persistence.record_drag_stop(DragStop(node_id=entity_id, kind=kind, x=x, y=y))
        self._refresh_frame_positions()
        return True

    def _refresh_frame_positions(self) -> None:
        nodes = self.reconciler.rendered_nodes
        by_id = {n.id: n for n in nodes}
        self.frame = RenderFrame(
            outcome=self.frame.outcome,
            nodes=nodes,
            edges=self.frame.edges,
            visible_nodes=tuple(by_id.get(n.id, n) for n in self.frame.visible_nodes),
            visible_edges=self.frame.visible_edges,
        )

    def tick(self) -> int:
        """Drive the position debounce timer; call periodically."""
        if self.persistence is None:
            return 0
        return self.persistence.tick()

    def close(self) -> None:
        """Flush staged positions (view teardown)."""
        if self.persistence is not None:
            self.persistence.flush()

    def _save_positions(self, records: Sequence[PositionRecord]) -> None:
        self.store.save_positions(records)

    # -- commands -------------------------------------------------------------

    def _handle_command(self, command: Command) -> None:
        if isinstance(command, CreateDependency):
            self._create_dependency(command)
        elif isinstance(command, DeleteEdge):
            self._delete_edge(command)
        elif isinstance(command, Relayout):
            if self.workspace_id is not None:
                self.relayout()
        elif isinstance(command, (SetViewMode, SetGroupBy)):
            if self.workspace_id is not None:
                self.rebuild()

        if self._on_command is not None:
            self._on_command(command)

    def _create_dependency(self, command: CreateDependency) -> None:
        try:
            self.store.create_dependency(
                command.source_task_id,
                command.target_task_id,
                command.dependency_type,
            )
        except Exception as e:
            logger.warning(
                f"Failed to create dependency {command.source_task_id} -> {command.target_task_id}: {e}"
            )
            return
        self.refresh_dependencies()

    def _delete_edge(self, command: DeleteEdge) -> None:
        # Only stored dependencies can be removed from here; other edge kinds
        # are derived from task/session data owned by the host.
        if not command.edge_id.startswith("dep-"):
            return
        try:
            self.store.delete_dependency(command.edge_id[len("dep-"):])
        except Exception as e:
            logger.warning(f"Failed to delete dependency edge {command.edge_id}: {e}")
            return
        self.refresh_dependencies()
