"""Watch command - keep a graph in sync with an edited workspace file."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path

from rich.console import Console

from ..config import GraphConfig
from ..session import GraphSession, RenderFrame
from ..store import MemoryGraphStore
from ..watcher import run_watch_loop
from ..workspace import WorkspaceData, load_workspace
from .layout_cmd import memory_store_for, open_session

logger = logging.getLogger(__name__)


def describe_frame(frame: RenderFrame, previous: RenderFrame | None) -> str:
    """One-line summary of what a rebuild did."""
    if frame.outcome == "merge":
        before = {n.id: n.data for n in previous.nodes} if previous else {}
        changed = sum(1 for n in frame.nodes if before.get(n.id) != n.data)
        return f"merged data ({changed} node(s) updated, positions kept)"
    return f"full relayout ({len(frame.nodes)} nodes, {len(frame.edges)} edges)"


def apply_revision(session: GraphSession, store: MemoryGraphStore, ws: WorkspaceData) -> RenderFrame:
    """Feed a reloaded workspace file into a running session.

    Positions from the file are written to the store before anything is
    rebuilt, so edited or added pins take effect on this revision.
    """
    store.save_positions(ws.positions)
    if ws.workspace_id != session.workspace_id:
        session.enter_workspace(ws.workspace_id)
        pins_changed = False
    else:
        before = session.reconciler.pins
        session.reconciler.seed_pins(ws.positions)
        pins_changed = session.reconciler.pins != before

    session.agents = list(ws.agents)
    session.tasks = list(ws.tasks)
    session.sessions = dict(ws.sessions)
    store.replace_dependencies(ws.dependencies, task_workspaces=ws.task_workspaces)
    if not session.refresh_dependencies():
        session.rebuild()

    # a merge keeps rendered positions, so new pins need a relayout
    if pins_changed and session.frame.outcome == "merge":
        session.relayout()
    return session.frame


def run_watch(workspace_file: Path, *, config: GraphConfig) -> None:
    """
    Watch a workspace file and reconcile every saved revision.

    This is a blocking command that runs until interrupted (Ctrl+C).
    """
    console = Console(stderr=True)

    ws = load_workspace(workspace_file)
    store = memory_store_for(ws)
    session: GraphSession = open_session(ws, config, store)
    if not session.refresh_dependencies():
        session.rebuild()

    console.print(f"[bold]Watching[/bold] {workspace_file}")
    console.print(f"  Workspace: {ws.workspace_id}")
    console.print(f"  {describe_frame(session.frame, None)}")
    console.print()
    console.print("[dim]Press Ctrl+C to stop watching[/dim]")
    console.print()

    revisions = 0

    def on_change(path: Path) -> None:
        nonlocal revisions
        try:
            fresh = load_workspace(path)
        except Exception as e:
            # keep showing the last good revision
            logger.warning(f"Failed to reload {path}: {e}")
            console.print(f"[yellow]Could not reload {path.name}: {e}[/yellow]")
            return

        revisions += 1
        previous = session.frame
        apply_revision(session, store, fresh)

        timestamp = datetime.now().strftime("%H:%M:%S")
        console.print(f"[dim]{timestamp}[/dim] {describe_frame(session.frame, previous)}")

    try:
        run_watch_loop(workspace_file, on_change, on_tick=session.tick)
    except KeyboardInterrupt:
        pass
    finally:
        session.close()
        console.print()
        console.print(f"[bold]Stopped.[/bold] Reconciled {revisions} revision(s).")

