"""Graph model types shared by the builder, layout and reconciliation."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Union

from ..models import Agent, Task

NodeKind = Literal["agent", "task"]
EdgeKind = Literal["assignment", "dependency", "subagent"]

NODE_KINDS: tuple[str, ...] = ("agent", "task")


def node_id(kind: str, entity_id: str) -> str:
    """Namespace an entity id by kind (``agent-<id>`` / ``task-<id>``)."""
    if kind not in NODE_KINDS:
        raise ValueError(f"Unknown node kind: {kind}")
    return f"{kind}-{entity_id}"


def parse_node_id(value: str) -> tuple[str, str]:
    """Split a node id into ``(kind, entity_id)``."""
    kind, sep, entity_id = value.partition("-")
    if not sep or kind not in NODE_KINDS or not entity_id:
        raise ValueError(f"Not a graph node id: {value!r}")
    return kind, entity_id


@dataclass(frozen=True)
class Position:
    x: float = 0.0
    y: float = 0.0


ORIGIN = Position()


@dataclass(frozen=True)
class AgentNodeData:
    """Payload of an agent node."""

    agent: Agent
    task_count: int = 0  # non-done tasks assigned to the agent
    subagent_count: int = 0

    kind: NodeKind = field(default="agent", init=False)

    @property
    def status(self) -> str:
        return self.agent.status


@dataclass(frozen=True)
class TaskNodeData:
    """Payload of a task node."""

    task: Task
    deliverable_count: int = 0
    total_deliverables: int = 0

    kind: NodeKind = field(default="task", init=False)

    @property
    def status(self) -> str:
        return self.task.status


NodeData = Union[AgentNodeData, TaskNodeData]


@dataclass(frozen=True)
class Node:
    """A renderable agent or task node.

    ``data`` is a tagged union; its ``kind`` must match the node's kind.
    """

    id: str
    kind: NodeKind
    data: NodeData
    position: Position = ORIGIN
    pinned: bool = False

    def __post_init__(self) -> None:
        if self.kind not in NODE_KINDS:
            raise ValueError(f"Unknown node kind: {self.kind}")
        if self.data.kind != self.kind:
            raise ValueError(f"Node {self.id} is a {self.kind} node but carries {self.data.kind} data")

    @property
    def entity_id(self) -> str:
        return parse_node_id(self.id)[1]

    @property
    def status(self) -> str:
        return self.data.status


@dataclass(frozen=True)
class Edge:
    """A directed connection between two nodes."""

    id: str
    source: str
    target: str
    kind: EdgeKind
    dependency_type: str | None = None  # only for dependency edges


@dataclass(frozen=True)
class GraphSnapshot:
    """All nodes and edges derived from the source data at one instant."""

    nodes: tuple[Node, ...] = ()
    edges: tuple[Edge, ...] = ()

    @property
    def node_ids(self) -> frozenset[str]:
        return frozenset(n.id for n in self.nodes)

    def to_dict(self) -> dict[str, Any]:
        return {
            "nodes": [
                {
                    "id": n.id,
                    "kind": n.kind,
                    "x": n.position.x,
                    "y": n.position.y,
                    "pinned": n.pinned,
                }
                for n in self.nodes
            ],
            "edges": [
                {
                    "id": e.id,
                    "source": e.source,
                    "target": e.target,
                    "kind": e.kind,
                    "dependency_type": e.dependency_type,
                }
                for e in self.edges
            ],
        }


@dataclass(frozen=True)
class PositionRecord:
    """A durable user-set node position.

    ``node_id`` is the entity id without the kind prefix.
    """

    workspace_id: str
    node_type: str  # agent | task | group
    node_id: str
    x: float
    y: float
    pinned: bool = True
    updated_at: str | None = None

    @property
    def key(self) -> tuple[str, str, str]:
        return (self.workspace_id, self.node_type, self.node_id)

    @property
    def graph_node_id(self) -> str:
        return f"{self.node_type}-{self.node_id}"

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "workspace_id": self.workspace_id,
            "node_type": self.node_type,
            "node_id": self.node_id,
            "x": self.x,
            "y": self.y,
            "pinned": self.pinned,
        }
        if self.updated_at:
            d["updated_at"] = self.updated_at
        return d

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PositionRecord:
        return cls(
            workspace_id=str(data["workspace_id"]),
            node_type=str(data["node_type"]),
            node_id=str(data["node_id"]),
            x=float(data.get("x", 0.0)),
            y=float(data.get("y", 0.0)),
            pinned=bool(data.get("pinned", False)),
            updated_at=data.get("updated_at"),
        )
