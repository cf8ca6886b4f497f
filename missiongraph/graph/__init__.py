"""Graph synchronization and layout engine."""

from .builder import build_snapshot
from .interaction import (
    Command,
    ContextMenu,
    CreateDependency,
    DeleteEdge,
    FitView,
    InteractionController,
    MenuItem,
    Relayout,
    ResetZoom,
    Select,
    SetGroupBy,
    SetViewMode,
    Zoom,
)
from .layout import LayoutOptions, apply_layout, count_crossings
from .model import (
    AgentNodeData,
    Edge,
    GraphSnapshot,
    Node,
    Position,
    PositionRecord,
    TaskNodeData,
    node_id,
    parse_node_id,
)
from .positions import DragStop, PositionPersistence
from .reconcile import ReconcileResult, ReconciliationController
from .views import ViewState, apply_grouping, apply_timeline, apply_view
from .virtualize import NODE_RENDER_LIMIT, filter_edges, select_visible_nodes

__all__ = [
    # Model
    "AgentNodeData",
    "Edge",
    "GraphSnapshot",
    "Node",
    "Position",
    "PositionRecord",
    "TaskNodeData",
    "node_id",
    "parse_node_id",
    # Pipeline
    "build_snapshot",
    "LayoutOptions",
    "apply_layout",
    "count_crossings",
    "ViewState",
    "apply_grouping",
    "apply_timeline",
    "apply_view",
    "ReconcileResult",
    "ReconciliationController",
    "DragStop",
    "PositionPersistence",
    "NODE_RENDER_LIMIT",
    "filter_edges",
    "select_visible_nodes",
    # Interaction
    "Command",
    "ContextMenu",
    "CreateDependency",
    "DeleteEdge",
    "FitView",
    "InteractionController",
    "MenuItem",
    "Relayout",
    "ResetZoom",
    "Select",
    "SetGroupBy",
    "SetViewMode",
    "Zoom",
]
