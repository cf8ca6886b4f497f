"""View-mode position overrides applied after layout.

Both transforms are pure: they only rewrite positions and return new nodes,
so running them again on the same laid-out input gives the same result.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Literal, Sequence

from .model import Node, Position

ViewMode = Literal["default", "timeline"]
GroupBy = Literal["none", "workspace", "role"]

VIEW_MODES: tuple[str, ...] = ("default", "timeline")
GROUP_KEYS: tuple[str, ...] = ("none", "workspace", "role")

TIMELINE_AGENT_ROW_Y = 0.0
TIMELINE_TASK_ROW_Y = 300.0
TIMELINE_COLUMN_WIDTH = 260.0

GROUP_SPACING = 800.0
TASK_BUCKET = "tasks"
UNASSIGNED_ROLE = "unassigned"


@dataclass(frozen=True)
class ViewState:
    """Active view mode and grouping. Any change forces a full relayout."""

    mode: str = "default"
    group_by: str = "none"

    def __post_init__(self) -> None:
        if self.mode not in VIEW_MODES:
            raise ValueError(f"mode must be one of: {', '.join(VIEW_MODES)}")
        if self.group_by not in GROUP_KEYS:
            raise ValueError(f"group_by must be one of: {', '.join(GROUP_KEYS)}")

    @property
    def is_default(self) -> bool:
        return self.mode == "default" and self.group_by == "none"


DEFAULT_VIEW = ViewState()


def apply_timeline(nodes: Sequence[Node]) -> list[Node]:
    """Lay agents out in one row and tasks in a second row by creation time."""
    agents = [n for n in nodes if n.kind == "agent"]
    tasks = [n for n in nodes if n.kind == "task"]
    # sorted() is stable, so equal timestamps keep input order
    tasks_by_time = sorted(tasks, key=_created_key)

    placed: dict[str, Position] = {}
    for i, node in enumerate(agents):
        placed[node.id] = Position(x=i * TIMELINE_COLUMN_WIDTH, y=TIMELINE_AGENT_ROW_Y)
    for i, node in enumerate(tasks_by_time):
        placed[node.id] = Position(x=i * TIMELINE_COLUMN_WIDTH, y=TIMELINE_TASK_ROW_Y)

    return [replace(n, position=placed[n.id]) if n.id in placed else n for n in nodes]


def apply_grouping(nodes: Sequence[Node], group_by: str, *, workspace_id: str = "") -> list[Node]:
    """Shift each bucket of nodes right by ``k * GROUP_SPACING``.

    Buckets are ordered by sorted key so the arrangement does not depend on
    which node happened to come first. For role grouping, named roles come
    first, then agents without a role, then the task bucket.
    """
    if group_by not in GROUP_KEYS:
        raise ValueError(f"group_by must be one of: {', '.join(GROUP_KEYS)}")
    if group_by == "none" or not nodes:
        return list(nodes)

    keys = [_bucket_key(n, group_by, workspace_id) for n in nodes]
    offsets = {key: k * GROUP_SPACING for k, key in enumerate(sorted(set(keys)))}

    return [
        replace(n, position=Position(x=n.position.x + offsets[key], y=n.position.y))
        for n, key in zip(nodes, keys)
    ]


def apply_view(nodes: Sequence[Node], view: ViewState, *, workspace_id: str = "") -> list[Node]:
    """Apply the timeline override (if active), then grouping."""
    result = list(nodes)
    if view.mode == "timeline":
        result = apply_timeline(result)
    return apply_grouping(result, view.group_by, workspace_id=workspace_id)


def _bucket_key(node: Node, group_by: str, workspace_id: str) -> tuple[int, str]:
    if group_by == "workspace":
        # only one workspace is rendered at a time
        return (0, workspace_id)
    if node.kind != "agent":
        return (2, TASK_BUCKET)
    role = node.data.agent.role  # type: ignore[union-attr]
    # tiers keep role names from colliding with the fixed labels
    return (0, role) if role else (1, UNASSIGNED_ROLE)


def _created_key(node: Node) -> tuple[int, datetime]:
    raw = node.data.task.created_at if node.kind == "task" else ""  # type: ignore[union-attr]
    try:
        stamp = datetime.fromisoformat(raw.replace("Z", "+00:00").replace(" ", "T"))
    except ValueError:
        return (1, datetime.min.replace(tzinfo=timezone.utc))
    if stamp.tzinfo is None:
        stamp = stamp.replace(tzinfo=timezone.utc)
    return (0, stamp)
