"""Tests for the command line interface."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest
from click.testing import CliRunner

from missiongraph.cli import cli
from missiongraph.commands.layout_cmd import memory_store_for, open_session, run_layout
from missiongraph.commands.watch_cmd import apply_revision, describe_frame
from missiongraph.config import GraphConfig
from missiongraph.graph.model import Position
from missiongraph.session import EMPTY_FRAME
from missiongraph.workspace import load_workspace

SCENARIO = """\
workspace_id: ws-1
agents:
  - {id: A1, name: Idle}
  - {id: A2, name: Busy, status: working}
tasks:
  - {id: T1, title: Build, status: in_progress, assigned_agent_id: A2, created_at: "2024-01-01T10:00:00Z"}
  - {id: T2, title: Review, created_at: "2024-01-01T09:00:00Z"}
  - {id: T3, title: Subtask, parent_task_id: T1, created_at: "2024-01-02T08:00:00Z"}
dependencies:
  - {id: D1, source_task_id: T2, target_task_id: T3}
positions:
  - {node_type: task, node_id: T2, x: 900, y: 900, pinned: true}
"""


@pytest.fixture(autouse=True)
def restore_root_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def workspace_file(tmp_path: Path, monkeypatch) -> Path:
    monkeypatch.chdir(tmp_path)
    path = tmp_path / "workspace.yml"
    path.write_text(SCENARIO, encoding="utf-8")
    return path


def _nodes(payload: dict) -> dict[str, dict]:
    return {n["id"]: n for n in payload["nodes"]}


def test_layout_json(workspace_file: Path) -> None:
    result = CliRunner().invoke(cli, ["layout", str(workspace_file), "--format", "json"])
    assert result.exit_code == 0, result.output

    payload = json.loads(result.stdout)
    assert payload["workspace_id"] == "ws-1"
    assert payload["outcome"] == "relayout"
    assert payload["virtualized"] is False

    nodes = _nodes(payload)
    assert set(nodes) == {"agent-A1", "agent-A2", "task-T1", "task-T2", "task-T3"}
    assert (nodes["task-T2"]["x"], nodes["task-T2"]["y"], nodes["task-T2"]["pinned"]) == (900.0, 900.0, True)
    assert {e["id"] for e in payload["edges"]} == {"assign-A2-T1", "dep-D1", "subtask-T1-T3"}


def test_layout_timeline_ignores_pins(workspace_file: Path) -> None:
    result = CliRunner().invoke(cli, ["layout", str(workspace_file), "--format", "json", "--mode", "timeline"])
    assert result.exit_code == 0, result.output

    nodes = _nodes(json.loads(result.stdout))
    assert (nodes["task-T2"]["x"], nodes["task-T2"]["y"]) == (0.0, 300.0)


def test_layout_table(workspace_file: Path) -> None:
    result = CliRunner().invoke(cli, ["layout", str(workspace_file)])
    assert result.exit_code == 0, result.output
    assert "Graph layout: ws-1" in result.stdout
    assert "task-T3" in result.stdout


def test_layout_uses_config_file(workspace_file: Path, tmp_path: Path) -> None:
    (tmp_path / "missiongraph.toml").write_text("[virtualization]\nthreshold = 2\n", encoding="utf-8")
    result = CliRunner().invoke(cli, ["layout", str(workspace_file), "--format", "json"])
    assert result.exit_code == 0, result.output

    payload = json.loads(result.stdout)
    assert payload["virtualized"] is True
    visible = {n["id"] for n in payload["nodes"] if n["visible"]}
    assert visible == {"agent-A2", "task-T1"}


def test_invalid_config_is_reported(workspace_file: Path, tmp_path: Path) -> None:
    bad = tmp_path / "bad.toml"
    bad.write_text('[layout]\ndirection = "up"\n', encoding="utf-8")
    result = CliRunner().invoke(cli, ["--config", str(bad), "layout", str(workspace_file)])

    assert result.exit_code != 0
    assert "Invalid config" in result.output


def test_run_layout_writes_out_file(workspace_file: Path, tmp_path: Path) -> None:
    out = tmp_path / "layout.json"
    exit_code = run_layout(workspace_file, config=GraphConfig(), fmt="json", direction="LR", out=out)

    assert exit_code == 0
    payload = json.loads(out.read_text(encoding="utf-8"))
    assert len(payload["nodes"]) == 5


def test_describe_frame_summaries() -> None:
    assert describe_frame(EMPTY_FRAME, None) == "full relayout (0 nodes, 0 edges)"


# -----------------------------------------------------------------------------
# Watch revisions
# -----------------------------------------------------------------------------


def _watched(path: Path):
    ws = load_workspace(path)
    store = memory_store_for(ws)
    session = open_session(ws, GraphConfig(), store)
    session.refresh_dependencies()
    return session, store


def test_revision_applies_edited_positions(workspace_file: Path) -> None:
    session, store = _watched(workspace_file)
    edited = SCENARIO.replace("x: 900, y: 900", "x: 50, y: 60")
    edited += "  - {node_type: task, node_id: T1, x: 7, y: 8, pinned: true}\n"
    workspace_file.write_text(edited, encoding="utf-8")

    frame = apply_revision(session, store, load_workspace(workspace_file))

    positions = {n.id: n.position for n in frame.nodes}
    assert positions["task-T2"] == Position(50.0, 60.0)
    assert positions["task-T1"] == Position(7.0, 8.0)
    assert {(r.node_id, r.x, r.y) for r in store.load_positions("ws-1")} == {("T1", 7.0, 8.0), ("T2", 50.0, 60.0)}


def test_revision_into_new_workspace_uses_its_positions(workspace_file: Path) -> None:
    session, store = _watched(workspace_file)
    workspace_file.write_text(SCENARIO.replace("workspace_id: ws-1", "workspace_id: ws-2"), encoding="utf-8")

    frame = apply_revision(session, store, load_workspace(workspace_file))

    assert session.workspace_id == "ws-2"
    assert {n.id: n.position for n in frame.nodes}["task-T2"] == Position(900.0, 900.0)


def test_revision_without_position_changes_merges(workspace_file: Path) -> None:
    session, store = _watched(workspace_file)
    workspace_file.write_text(SCENARIO.replace("title: Build", "title: Build it"), encoding="utf-8")

    frame = apply_revision(session, store, load_workspace(workspace_file))

    assert frame.outcome == "merge"
    assert {n.id: n.position for n in frame.nodes}["task-T2"] == Position(900.0, 900.0)
