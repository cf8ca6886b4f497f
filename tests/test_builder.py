"""Tests for graph model construction."""

from __future__ import annotations

import pytest

from missiongraph.graph.builder import build_snapshot
from missiongraph.graph.model import Node, TaskNodeData, node_id, parse_node_id
from missiongraph.models import Dependency, Session

from conftest import make_agent, make_task


def test_scenario_nodes_and_edges(scenario_agents, scenario_tasks, scenario_sessions) -> None:
    snap = build_snapshot(scenario_agents, scenario_tasks, (), scenario_sessions, workspace_id="ws-1")

    assert [n.id for n in snap.nodes] == ["agent-A1", "agent-A2", "task-T1", "task-T2", "task-T3"]
    assert [e.id for e in snap.edges] == ["assign-A2-T1", "subtask-T1-T3"]

    subtask = snap.edges[1]
    assert subtask.kind == "dependency"
    assert subtask.dependency_type == "subtask_of"
    assert (subtask.source, subtask.target) == ("task-T1", "task-T3")


def test_agent_task_count_excludes_done_tasks() -> None:
    agents = [make_agent("A1")]
    tasks = [
        make_task("T1", assigned="A1"),
        make_task("T2", assigned="A1", status="done"),
        make_task("T3", assigned="A1", status="review"),
    ]
    snap = build_snapshot(agents, tasks)

    agent = snap.nodes[0]
    assert agent.data.task_count == 2
    # done tasks still get an assignment edge
    assert "assign-A1-T2" in {e.id for e in snap.edges}


def test_dependency_edges_carry_type() -> None:
    tasks = [make_task("T1"), make_task("T2")]
    deps = [Dependency(id="D1", source_task_id="T1", target_task_id="T2", dependency_type="relates_to")]
    snap = build_snapshot([], tasks, deps)

    (edge,) = snap.edges
    assert edge.id == "dep-D1"
    assert edge.kind == "dependency"
    assert edge.dependency_type == "relates_to"


def test_dangling_edges_are_dropped() -> None:
    tasks = [make_task("T1", assigned="ghost"), make_task("T2", parent="missing")]
    deps = [Dependency(id="D1", source_task_id="T1", target_task_id="nope")]
    snap = build_snapshot([], tasks, deps)

    assert snap.edges == ()
    for edge in snap.edges:
        assert edge.source in snap.node_ids and edge.target in snap.node_ids


def test_cyclic_dependencies_are_kept() -> None:
    tasks = [make_task("T1"), make_task("T2")]
    deps = [
        Dependency(id="D1", source_task_id="T1", target_task_id="T2"),
        Dependency(id="D2", source_task_id="T2", target_task_id="T1"),
    ]
    snap = build_snapshot([], tasks, deps)
    assert {e.id for e in snap.edges} == {"dep-D1", "dep-D2"}


def test_subagent_edge_from_task_owner() -> None:
    agents = [make_agent("A1"), make_agent("A2")]
    tasks = [make_task("T1", assigned="A1")]
    sessions = {"A2": Session(agent_id="A2", session_type="subagent", task_id="T1")}
    snap = build_snapshot(agents, tasks, (), sessions)

    sub = [e for e in snap.edges if e.kind == "subagent"]
    assert [(e.id, e.source, e.target) for e in sub] == [("subagent-A1-A2", "agent-A1", "agent-A2")]
    assert snap.nodes[0].data.subagent_count == 0
    assert snap.nodes[1].data.subagent_count == 1


def test_subagent_session_on_own_task_adds_no_edge() -> None:
    agents = [make_agent("A1")]
    tasks = [make_task("T1", assigned="A1")]
    sessions = {"A1": Session(agent_id="A1", session_type="subagent", task_id="T1")}
    snap = build_snapshot(agents, tasks, (), sessions)
    assert [e.kind for e in snap.edges] == ["assignment"]


def test_other_workspace_entities_are_ignored() -> None:
    agents = [make_agent("A1"), make_agent("A9", workspace_id="ws-2")]
    tasks = [make_task("T1", assigned="A9"), make_task("T9", workspace_id="ws-2")]
    snap = build_snapshot(agents, tasks, workspace_id="ws-1")

    assert snap.node_ids == {"agent-A1", "task-T1"}
    assert snap.edges == ()


def test_duplicate_edges_collapse() -> None:
    tasks = [make_task("T1"), make_task("T2")]
    dep = Dependency(id="D1", source_task_id="T1", target_task_id="T2")
    snap = build_snapshot([], tasks, [dep, dep])
    assert len(snap.edges) == 1


def test_empty_input_builds_empty_snapshot() -> None:
    snap = build_snapshot([], [])
    assert snap.nodes == ()
    assert snap.edges == ()


# -----------------------------------------------------------------------------
# Node ids
# -----------------------------------------------------------------------------


def test_node_id_roundtrip_keeps_dashes_in_entity_id() -> None:
    assert node_id("task", "abc-123") == "task-abc-123"
    assert parse_node_id("task-abc-123") == ("task", "abc-123")


@pytest.mark.parametrize("value", ["abc", "group-1", "task-", ""])
def test_parse_node_id_rejects_garbage(value: str) -> None:
    with pytest.raises(ValueError):
        parse_node_id(value)


def test_node_rejects_mismatched_data_kind() -> None:
    with pytest.raises(ValueError):
        Node(id="agent-T1", kind="agent", data=TaskNodeData(task=make_task("T1")))
