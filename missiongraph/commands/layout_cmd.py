"""Layout command - compute node positions for a workspace file."""

from __future__ import annotations

import json
from dataclasses import replace
from pathlib import Path

from rich.console import Console
from rich.table import Table

from ..config import GraphConfig
from ..graph.views import ViewState
from ..session import GraphSession, RenderFrame
from ..store import MemoryGraphStore
from ..workspace import WorkspaceData, load_workspace


def memory_store_for(ws: WorkspaceData) -> MemoryGraphStore:
    """An in-memory store seeded with the file's positions and dependencies."""
    return MemoryGraphStore(
        positions=ws.positions,
        dependencies=ws.dependencies,
        task_workspaces=ws.task_workspaces,
    )


def open_session(ws: WorkspaceData, config: GraphConfig, store: MemoryGraphStore | None = None) -> GraphSession:
    """Create a session for the file's workspace with its entities loaded."""
    if store is None:
        store = memory_store_for(ws)
    session = GraphSession(store, config=config)
    session.enter_workspace(ws.workspace_id)
    session.agents = list(ws.agents)
    session.tasks = list(ws.tasks)
    session.sessions = dict(ws.sessions)
    return session


def run_layout(
    workspace_file: Path,
    *,
    config: GraphConfig,
    mode: str = "default",
    group_by: str = "none",
    direction: str | None = None,
    fmt: str = "table",
    out: Path | None = None,
) -> int:
    """Lay out a workspace file and print node positions."""
    console = Console(stderr=True)

    if direction:
        config = replace(config, layout=replace(config.layout, direction=direction))

    ws = load_workspace(workspace_file)
    session = open_session(ws, config)
    session.interaction.view = ViewState(mode=mode, group_by=group_by)
    if not session.refresh_dependencies():
        session.rebuild()
    frame = session.frame

    if fmt == "json":
        text = json.dumps(_frame_payload(frame, ws.workspace_id), indent=2, sort_keys=True) + "\n"
        if out:
            out.write_text(text, encoding="utf-8")
            console.print(f"Wrote layout to {out}", style="green")
        else:
            print(text, end="")
        return 0

    if out:
        rich_console = Console(record=True, width=120)
        _print_table(frame, ws.workspace_id, console=rich_console)
        out.write_text(rich_console.export_text(), encoding="utf-8")
        console.print(f"Wrote layout to {out}", style="green")
    else:
        _print_table(frame, ws.workspace_id, console=Console())
    return 0


def _frame_payload(frame: RenderFrame, workspace_id: str) -> dict:
    visible = {n.id for n in frame.visible_nodes}
    return {
        "workspace_id": workspace_id,
        "outcome": frame.outcome,
        "virtualized": frame.is_virtualized,
        "nodes": [
            {
                "id": n.id,
                "kind": n.kind,
                "status": n.status,
                "x": round(n.position.x, 2),
                "y": round(n.position.y, 2),
                "pinned": n.pinned,
                "visible": n.id in visible,
            }
            for n in frame.nodes
        ],
        "edges": [
            {
                "id": e.id,
                "source": e.source,
                "target": e.target,
                "kind": e.kind,
                "dependency_type": e.dependency_type,
            }
            for e in frame.edges
        ],
    }


def _print_table(frame: RenderFrame, workspace_id: str, *, console: Console) -> None:
    table = Table(title=f"Graph layout: {workspace_id}")
    table.add_column("Node")
    table.add_column("Kind")
    table.add_column("Status")
    table.add_column("X", justify="right")
    table.add_column("Y", justify="right")
    table.add_column("Pinned")

    for n in frame.nodes:
        table.add_row(
            n.id,
            n.kind,
            n.status,
            f"{n.position.x:.1f}",
            f"{n.position.y:.1f}",
            "yes" if n.pinned else "",
        )
    console.print(table)
    console.print(
        f"[dim]{len(frame.nodes)} nodes, {len(frame.edges)} edges"
        + (f", {len(frame.visible_nodes)} rendered (virtualized)" if frame.is_virtualized else "")
        + "[/dim]"
    )
