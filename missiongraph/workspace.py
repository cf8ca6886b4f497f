"""Workspace data files (JSON or YAML) for the CLI.

A workspace file holds the entity lists the graph is built from::

    workspace_id: ws-1
    agents: [{id: a1, name: Planner, role: lead, status: working}]
    tasks: [{id: t1, title: Spec, status: in_progress, assigned_agent_id: a1}]
    dependencies: [{id: d1, source_task_id: t1, target_task_id: t2}]
    sessions: {a2: {session_type: subagent, task_id: t1}}
    positions: [{node_type: task, node_id: t1, x: 10, y: 20, pinned: true}]
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .graph.model import PositionRecord
from .models import Agent, Dependency, Session, Task

logger = logging.getLogger(__name__)

YAML_SUFFIXES = {".yml", ".yaml"}


@dataclass
class WorkspaceData:
    """Entities of one workspace as loaded from disk."""

    workspace_id: str
    agents: list[Agent] = field(default_factory=list)
    tasks: list[Task] = field(default_factory=list)
    dependencies: list[Dependency] = field(default_factory=list)
    sessions: dict[str, Session | None] = field(default_factory=dict)
    positions: list[PositionRecord] = field(default_factory=list)

    @property
    def task_workspaces(self) -> dict[str, str]:
        return {t.id: t.workspace_id for t in self.tasks}


def _rows(data: dict[str, Any], key: str) -> list[dict[str, Any]]:
    value = data.get(key) or []
    if not isinstance(value, list):
        raise ValueError(f"'{key}' must be a list")
    return [row for row in value if isinstance(row, dict)]


def parse_workspace(data: dict[str, Any]) -> WorkspaceData:
    """Build workspace data from a decoded document.

    Rows that fail to parse are skipped with a warning; the rest still load.
    """
    workspace_id = str(data.get("workspace_id") or "default")
    ws = WorkspaceData(workspace_id=workspace_id)

    def defaulted(row: dict[str, Any]) -> dict[str, Any]:
        return {"workspace_id": workspace_id, **row}

    for row in _rows(data, "agents"):
        try:
            ws.agents.append(Agent.from_dict(defaulted(row)))
        except (KeyError, ValueError) as e:
            logger.warning(f"Skipping agent row {row!r}: {e}")
    for row in _rows(data, "tasks"):
        try:
            ws.tasks.append(Task.from_dict(defaulted(row)))
        except (KeyError, ValueError) as e:
            logger.warning(f"Skipping task row {row!r}: {e}")
    for row in _rows(data, "dependencies"):
        try:
            ws.dependencies.append(Dependency.from_dict(row))
        except (KeyError, ValueError) as e:
            logger.warning(f"Skipping dependency row {row!r}: {e}")
    for row in _rows(data, "positions"):
        try:
            ws.positions.append(PositionRecord.from_dict(defaulted(row)))
        except (KeyError, ValueError, TypeError) as e:
            logger.warning(f"Skipping position row {row!r}: {e}")

    sessions = data.get("sessions") or {}
    if not isinstance(sessions, dict):
        raise ValueError("'sessions' must be a mapping of agent id to session")
    for agent_id, raw in sessions.items():
        if raw is None:
            ws.sessions[str(agent_id)] = None
        elif isinstance(raw, dict):
            ws.sessions[str(agent_id)] = Session.from_dict({"agent_id": agent_id, **raw})

    return ws


def load_workspace(path: Path) -> WorkspaceData:
    """Load a workspace file; the format is chosen by file suffix."""
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() in YAML_SUFFIXES:
        data = yaml.safe_load(text) or {}
    else:
        data = json.loads(text) if text.strip() else {}
    if not isinstance(data, dict):
        raise ValueError(f"{path} does not contain a workspace mapping")
    return parse_workspace(data)
