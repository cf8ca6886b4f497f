"""
File watcher that turns edits of a workspace file into graph updates.

This module provides:
- Watchdog-based monitoring of a single workspace data file
- Debounced change emission (editors write files in bursts)
- A blocking loop that feeds each new revision to a callback
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Callable

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

logger = logging.getLogger(__name__)


class WorkspaceFileHandler(FileSystemEventHandler):
    """
    Collects change events for one file and reports them debounced.

    Key behaviors:
    - Ignores every path except the watched file (including moves onto it)
    - Coalesces rapid modifications into one change
    - Reports deletion only when the file is still missing at flush time
    """

    DEBOUNCE_SECONDS = 0.5

    def __init__(
        self,
        path: Path,
        on_change: Callable[[Path], None],
        *,
        debounce: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        super().__init__()
        self.path = path.resolve()
        self.on_change = on_change
        self.debounce = self.DEBOUNCE_SECONDS if debounce is None else debounce
        self._clock = clock
        self._pending_since: float | None = None

    def _is_target(self, raw: str | bytes) -> bool:
        path = raw.decode() if isinstance(raw, bytes) else raw
        return Path(path).resolve() == self.path

    def _touch(self) -> None:
        self._pending_since = self._clock()

    @property
    def pending(self) -> bool:
        return self._pending_since is not None

    def flush_pending(self) -> bool:
        """Emit the pending change if it has settled. Returns True if emitted."""
        if self._pending_since is None:
            return False
        if self._clock() - self._pending_since < self.debounce:
            return False
        self._pending_since = None

        if not self.path.exists():
            logger.info(f"Workspace file removed: {self.path}")
            return False
        self.on_change(self.path)
        return True

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory and self._is_target(event.src_path):
            self._touch()

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory and self._is_target(event.src_path):
            self._touch()

    def on_deleted(self, event: FileSystemEvent) -> None:
        if not event.is_directory and self._is_target(event.src_path):
            self._touch()

    def on_moved(self, event: FileSystemEvent) -> None:
        # atomic saves write a temp file and move it over the target
        if not event.is_directory and self._is_target(event.dest_path):
            self._touch()


def watch_file(path: Path, on_change: Callable[[Path], None]) -> tuple[Observer, WorkspaceFileHandler]:
    """
    Start watching a workspace file.

    Returns:
        Tuple of (observer, handler) - caller should call observer.stop() to stop watching
    """
    handler = WorkspaceFileHandler(path, on_change)
    observer = Observer()
    observer.schedule(handler, str(handler.path.parent), recursive=False)
    observer.start()
    return observer, handler


def run_watch_loop(
    path: Path,
    on_change: Callable[[Path], None],
    *,
    on_tick: Callable[[], None] | None = None,
    interval: float = 0.25,
) -> None:
    """
    Run the watch loop until interrupted.

    Flushes settled file changes and calls ``on_tick`` every ``interval``
    seconds (used to drive the position write-back timer).
    """
    observer, handler = watch_file(path, on_change)
    try:
        while True:
            time.sleep(interval)
            handler.flush_pending()
            if on_tick is not None:
                on_tick()
    except KeyboardInterrupt:
        observer.stop()

    observer.join()
