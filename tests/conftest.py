"""Pytest configuration and fixtures."""

from __future__ import annotations

import pytest

from missiongraph.models import Agent, Dependency, Session, Task
from missiongraph.store import MemoryGraphStore

WORKSPACE = "ws-1"


def make_agent(agent_id: str, *, status: str = "standby", role: str = "", workspace_id: str = WORKSPACE) -> Agent:
    return Agent(id=agent_id, workspace_id=workspace_id, name=agent_id.upper(), role=role, status=status)


def make_task(
    task_id: str,
    *,
    status: str = "inbox",
    assigned: str | None = None,
    parent: str | None = None,
    created_at: str = "",
    workspace_id: str = WORKSPACE,
) -> Task:
    return Task(
        id=task_id,
        workspace_id=workspace_id,
        title=f"Task {task_id}",
        status=status,
        assigned_agent_id=assigned,
        parent_task_id=parent,
        created_at=created_at,
    )


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 100.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def scenario_agents() -> list[Agent]:
    return [make_agent("A1"), make_agent("A2", status="working")]


@pytest.fixture
def scenario_tasks() -> list[Task]:
    return [
        make_task("T1", status="in_progress", assigned="A2", created_at="2024-01-01T10:00:00Z"),
        make_task("T2", created_at="2024-01-01T09:00:00Z"),
        make_task("T3", parent="T1", created_at="2024-01-02T08:00:00Z"),
    ]


@pytest.fixture
def scenario_sessions() -> dict[str, Session | None]:
    return {"A1": None, "A2": Session(agent_id="A2")}


@pytest.fixture
def memory_store(scenario_tasks: list[Task]) -> MemoryGraphStore:
    return MemoryGraphStore(task_workspaces={t.id: t.workspace_id for t in scenario_tasks})


@pytest.fixture
def blocking_dependency() -> Dependency:
    return Dependency(id="D1", source_task_id="T2", target_task_id="T3")
