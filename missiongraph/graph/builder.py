"""Graph model construction from live workspace entities."""

from __future__ import annotations

import logging
from collections import Counter
from typing import Iterable, Mapping

from ..models import Agent, Dependency, Session, Task
from .model import AgentNodeData, Edge, GraphSnapshot, Node, TaskNodeData, node_id

logger = logging.getLogger(__name__)


def build_snapshot(
    agents: Iterable[Agent],
    tasks: Iterable[Task],
    dependencies: Iterable[Dependency] = (),
    sessions: Mapping[str, Session | None] | None = None,
    *,
    workspace_id: str | None = None,
) -> GraphSnapshot:
    """Build the node/edge snapshot for one workspace.

    Nodes keep input order (agents first, then tasks). Edges whose endpoints
    are not both in the node set are dropped. No cycle validation happens
    here; dependency cycles are legal.

    Args:
        agents: Agents of the workspace
        tasks: Tasks of the workspace
        dependencies: Stored task dependencies
        sessions: agent id -> live session (or None)
        workspace_id: If given, entities of other workspaces are ignored
    """
    sessions = sessions or {}
    ws_agents = [a for a in agents if workspace_id is None or a.workspace_id == workspace_id]
    ws_tasks = [t for t in tasks if workspace_id is None or t.workspace_id == workspace_id]

    open_task_counts: Counter[str] = Counter(
        t.assigned_agent_id for t in ws_tasks if t.assigned_agent_id and not t.is_done
    )
    subagent_counts: Counter[str] = Counter(
        agent_id for agent_id, session in sessions.items() if session is not None and session.is_subagent
    )

    nodes: list[Node] = []
    for agent in ws_agents:
        nodes.append(
            Node(
                id=node_id("agent", agent.id),
                kind="agent",
                data=AgentNodeData(
                    agent=agent,
                    task_count=open_task_counts.get(agent.id, 0),
                    subagent_count=subagent_counts.get(agent.id, 0),
                ),
            )
        )
    for task in ws_tasks:
        nodes.append(Node(id=node_id("task", task.id), kind="task", data=TaskNodeData(task=task)))

    candidates: list[Edge] = []

    # agent -> task
    for task in ws_tasks:
        if task.assigned_agent_id:
            candidates.append(
                Edge(
                    id=f"assign-{task.assigned_agent_id}-{task.id}",
                    source=node_id("agent", task.assigned_agent_id),
                    target=node_id("task", task.id),
                    kind="assignment",
                )
            )

    # task -> task
    for dep in dependencies:
        candidates.append(
            Edge(
                id=f"dep-{dep.id}",
                source=node_id("task", dep.source_task_id),
                target=node_id("task", dep.target_task_id),
                kind="dependency",
                dependency_type=dep.dependency_type,
            )
        )

    # Subagent spawn is inferred from a shared task: the agent assigned to the
    # session's task is treated as the parent. Unrelated agents sharing a task
    # get linked too.
    tasks_by_id = {t.id: t for t in ws_tasks}
    for agent_id, session in sessions.items():
        if session is None or not session.is_subagent or not session.task_id:
            continue
        parent_task = tasks_by_id.get(session.task_id)
        if parent_task is None or not parent_task.assigned_agent_id:
            continue
        if parent_task.assigned_agent_id == agent_id:
            continue
        candidates.append(
            Edge(
                id=f"subagent-{parent_task.assigned_agent_id}-{agent_id}",
                source=node_id("agent", parent_task.assigned_agent_id),
                target=node_id("agent", agent_id),
                kind="subagent",
            )
        )

    # parent task -> child task
    for task in ws_tasks:
        if task.parent_task_id:
            candidates.append(
                Edge(
                    id=f"subtask-{task.parent_task_id}-{task.id}",
                    source=node_id("task", task.parent_task_id),
                    target=node_id("task", task.id),
                    kind="dependency",
                    dependency_type="subtask_of",
                )
            )

    return GraphSnapshot(nodes=tuple(nodes), edges=tuple(_valid_edges(candidates, {n.id for n in nodes})))


def _valid_edges(candidates: list[Edge], present: set[str]) -> list[Edge]:
    """Drop dangling and duplicate edges, keeping first occurrence order."""
    kept: list[Edge] = []
    seen: set[str] = set()
    dropped = 0
    for edge in candidates:
        if edge.source not in present or edge.target not in present:
            dropped += 1
            continue
        if edge.id in seen:
            continue
        seen.add(edge.id)
        kept.append(edge)
    if dropped:
        logger.debug(f"Dropped {dropped} edge(s) referencing nodes outside the graph")
    return kept
