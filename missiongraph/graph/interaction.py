"""Gesture handling: context menus, connection drags, clicks and shortcuts.

The controller never touches graph state. It only emits commands through
the ``on_command`` callback; the host (and the session) act on them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Callable, Literal, TypeVar, Union

from .model import parse_node_id
from .views import DEFAULT_VIEW, ViewState

logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Commands
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class Select:
    entity_id: str
    kind: str  # agent | task


@dataclass(frozen=True)
class CreateDependency:
    source_task_id: str
    target_task_id: str
    dependency_type: str = "blocks"


@dataclass(frozen=True)
class DeleteEdge:
    edge_id: str


@dataclass(frozen=True)
class SetGroupBy:
    group_by: str


@dataclass(frozen=True)
class SetViewMode:
    mode: str


@dataclass(frozen=True)
class FitView:
    pass


@dataclass(frozen=True)
class Relayout:
    pass


@dataclass(frozen=True)
class Zoom:
    direction: Literal["in", "out"]


@dataclass(frozen=True)
class ResetZoom:
    pass


Command = Union[Select, CreateDependency, DeleteEdge, SetGroupBy, SetViewMode, FitView, Relayout, Zoom, ResetZoom]

CommandSink = Callable[[Command], None]

_C = TypeVar("_C", Select, CreateDependency, DeleteEdge, SetGroupBy, SetViewMode, FitView, Relayout, Zoom, ResetZoom)


# -----------------------------------------------------------------------------
# Context menu
# -----------------------------------------------------------------------------

MenuTarget = Literal["node", "edge", "pane"]


@dataclass(frozen=True)
class MenuItem:
    action: str
    label: str
    danger: bool = False


@dataclass(frozen=True)
class ContextMenu:
    x: float
    y: float
    target: MenuTarget
    items: tuple[MenuItem, ...]
    node_id: str | None = None
    node_kind: str | None = None
    edge_id: str | None = None


def menu_items_for(target: str, *, node_kind: str | None = None, has_edge: bool = False) -> tuple[MenuItem, ...]:
    """Menu entries available for a right-click target."""
    if target == "node":
        if node_kind == "task":
            return (
                MenuItem("view_details", "View Task Details"),
                MenuItem("add_dependency", "Add Dependency From Here"),
            )
        if node_kind == "agent":
            return (MenuItem("view_details", "View Agent Details"),)
        return ()
    if target == "edge":
        return (MenuItem("remove_connection", "Remove Connection", danger=True),) if has_edge else ()
    if target == "pane":
        return (
            MenuItem("group_by_workspace", "Group by Workspace"),
            MenuItem("group_by_role", "Group by Role"),
        )
    raise ValueError(f"Unknown menu target: {target}")


SHORTCUTS_HELP = "\n".join(
    [
        "F - Fit view",
        "L - Auto layout",
        "G - Toggle timeline view",
        "+ - Zoom in",
        "- - Zoom out",
        "0 - Reset zoom",
    ]
)


class InteractionController:
    """Translates renderer gestures into commands."""

    def __init__(self, on_command: CommandSink | None = None, *, view: ViewState = DEFAULT_VIEW):
        self._on_command = on_command
        self.view = view
        self.menu: ContextMenu | None = None
        self.connection_source: str | None = None

    def _emit(self, command: _C) -> _C:
        if self._on_command is not None:
            self._on_command(command)
        return command

    # -- clicks ---------------------------------------------------------------

    def click_node(self, node_id: str) -> Select:
        kind, entity_id = parse_node_id(node_id)
        return self._emit(Select(entity_id=entity_id, kind=kind))

    # -- context menu ---------------------------------------------------------

    def open_context_menu(
        self,
        target: MenuTarget,
        x: float,
        y: float,
        *,
        node_id: str | None = None,
        edge_id: str | None = None,
    ) -> ContextMenu | None:
        """Open the menu for a right-click; returns None when nothing applies."""
        node_kind = parse_node_id(node_id)[0] if target == "node" and node_id else None
        items = menu_items_for(target, node_kind=node_kind, has_edge=bool(edge_id))
        if not items:
            self.menu = None
            return None
        self.menu = ContextMenu(
            x=x,
            y=y,
            target=target,
            items=items,
            node_id=node_id,
            node_kind=node_kind,
            edge_id=edge_id,
        )
        return self.menu

    def close_menu(self) -> None:
        self.menu = None

    def choose(self, action: str) -> Command | None:
        """Run a menu item of the open menu and close it."""
        menu = self.menu
        if menu is None or action not in {item.action for item in menu.items}:
            return None
        self.menu = None

        if action == "view_details" and menu.node_id:
            return self.click_node(menu.node_id)
        if action == "add_dependency" and menu.node_id:
            self.start_connection(menu.node_id)
            return None
        if action == "remove_connection" and menu.edge_id:
            return self._emit(DeleteEdge(edge_id=menu.edge_id))
        if action == "group_by_workspace":
            return self.set_group_by("workspace")
        if action == "group_by_role":
            return self.set_group_by("role")
        return None

    # -- connection drags -----------------------------------------------------

    def start_connection(self, node_id: str) -> None:
        self.connection_source = node_id

    def cancel_connection(self) -> None:
        self.connection_source = None

    def complete_connection(self, target_node_id: str) -> CreateDependency | None:
        """Finish a connection drag; only task -> other task creates anything."""
        source = self.connection_source
        self.connection_source = None
        if source is None:
            return None
        source_kind, source_id = parse_node_id(source)
        target_kind, target_id = parse_node_id(target_node_id)
        if source_kind != "task" or target_kind != "task" or source_id == target_id:
            logger.debug(f"Ignored connection {source} -> {target_node_id}")
            return None
        return self._emit(CreateDependency(source_task_id=source_id, target_task_id=target_id))

    def connect(self, source_node_id: str, target_node_id: str) -> CreateDependency | None:
        """Handle a completed connection gesture reported in one event."""
        self.start_connection(source_node_id)
        return self.complete_connection(target_node_id)

    # -- view state -----------------------------------------------------------

    def set_group_by(self, group_by: str) -> SetGroupBy | None:
        if group_by == self.view.group_by:
            return None
        self.view = replace(self.view, group_by=group_by)
        return self._emit(SetGroupBy(group_by=group_by))

    def set_view_mode(self, mode: str) -> SetViewMode | None:
        if mode == self.view.mode:
            return None
        self.view = replace(self.view, mode=mode)
        return self._emit(SetViewMode(mode=mode))

    # -- keyboard -------------------------------------------------------------

    def handle_key(self, key: str, *, text_input_focused: bool = False) -> Command | None:
        """Map a single key press to a command.

        Keys typed into an input field are never intercepted.
        """
        if text_input_focused:
            return None
        if key == "Escape":
            self.close_menu()
            self.cancel_connection()
            return None

        pressed = key.lower()
        if pressed == "f":
            return self._emit(FitView())
        if pressed == "l":
            return self._emit(Relayout())
        if pressed == "g":
            return self.set_view_mode("default" if self.view.mode == "timeline" else "timeline")
        if pressed in ("+", "="):
            return self._emit(Zoom(direction="in"))
        if pressed == "-":
            return self._emit(Zoom(direction="out"))
        if pressed == "0":
            return self._emit(ResetZoom())
        if pressed == "?":
            logger.info(f"Graph shortcuts:\n{SHORTCUTS_HELP}")
        return None
