"""Data models for workspace entities.

These mirror the payloads served by the mission-control storage API
(snake_case keys). The graph engine only reads them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

# Valid task statuses
TaskStatus = Literal[
    "planning",
    "inbox",
    "assigned",
    "in_progress",
    "testing",
    "review",
    "done",
]

TaskPriority = Literal["urgent", "high", "normal", "low"]

AgentStatus = Literal["standby", "working", "offline"]

DependencyType = Literal["blocks", "relates_to", "subtask_of"]

DEPENDENCY_TYPES: tuple[str, ...] = ("blocks", "relates_to", "subtask_of")


def _opt_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass(frozen=True)
class Agent:
    """An agent registered in a workspace."""

    id: str
    workspace_id: str
    name: str
    role: str = ""
    status: str = "standby"
    avatar_emoji: str = ""
    model: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Agent:
        return cls(
            id=str(data["id"]),
            workspace_id=str(data.get("workspace_id", "")),
            name=str(data.get("name", "")),
            role=str(data.get("role") or ""),
            status=str(data.get("status") or "standby"),
            avatar_emoji=str(data.get("avatar_emoji") or ""),
            model=_opt_str(data.get("model")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "workspace_id": self.workspace_id,
            "name": self.name,
            "role": self.role,
            "status": self.status,
            "avatar_emoji": self.avatar_emoji,
            "model": self.model,
        }


@dataclass(frozen=True)
class Task:
    """A task on the workspace board."""

    id: str
    workspace_id: str
    title: str
    status: str = "inbox"
    priority: str = "normal"
    assigned_agent_id: str | None = None
    parent_task_id: str | None = None
    created_at: str = ""  # ISO-8601

    @property
    def is_done(self) -> bool:
        return self.status == "done"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Task:
        return cls(
            id=str(data["id"]),
            workspace_id=str(data.get("workspace_id", "")),
            title=str(data.get("title", "")),
            status=str(data.get("status") or "inbox"),
            priority=str(data.get("priority") or "normal"),
            assigned_agent_id=_opt_str(data.get("assigned_agent_id")),
            parent_task_id=_opt_str(data.get("parent_task_id")),
            created_at=str(data.get("created_at") or ""),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "workspace_id": self.workspace_id,
            "title": self.title,
            "status": self.status,
            "priority": self.priority,
            "assigned_agent_id": self.assigned_agent_id,
            "parent_task_id": self.parent_task_id,
            "created_at": self.created_at,
        }


@dataclass(frozen=True)
class Dependency:
    """A persisted directed relation between two tasks."""

    id: str
    source_task_id: str
    target_task_id: str
    dependency_type: str = "blocks"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Dependency:
        dep_type = str(data.get("dependency_type") or "blocks")
        if dep_type not in DEPENDENCY_TYPES:
            raise ValueError(f"Unknown dependency type: {dep_type}")
        return cls(
            id=str(data["id"]),
            source_task_id=str(data["source_task_id"]),
            target_task_id=str(data["target_task_id"]),
            dependency_type=dep_type,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "source_task_id": self.source_task_id,
            "target_task_id": self.target_task_id,
            "dependency_type": self.dependency_type,
        }


@dataclass(frozen=True)
class Session:
    """The live runtime session attached to an agent."""

    agent_id: str
    session_type: str = "primary"  # primary | subagent
    task_id: str | None = None

    @property
    def is_subagent(self) -> bool:
        return self.session_type == "subagent"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Session:
        return cls(
            agent_id=str(data["agent_id"]),
            session_type=str(data.get("session_type") or "primary"),
            task_id=_opt_str(data.get("task_id")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "agent_id": self.agent_id,
            "session_type": self.session_type,
            "task_id": self.task_id,
        }
