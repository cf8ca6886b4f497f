"""Debounced write-back of user-dragged node positions.

Key behaviors:
- Drag-stop events are staged per node; the last one inside the window wins
- Every event re-arms a single debounce deadline
- When the deadline passes, all staged positions go out in one batch
- Writes are fire-and-forget: failures are logged and dropped, never retried
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Sequence

from .model import PositionRecord

logger = logging.getLogger(__name__)

PositionWriter = Callable[[Sequence[PositionRecord]], None]


@dataclass(frozen=True)
class DragStop:
    """A finished node drag as reported by the renderer."""

    node_id: str  # entity id, without kind prefix
    kind: str  # agent | task
    x: float
    y: float


class PositionPersistence:
    """Per-view debounce buffer for position writes.

    There is no background thread: the host calls :meth:`tick` from its event
    loop (or a periodic timer) and the flush happens when the deadline passed.
    """

    DEFAULT_DELAY = 0.3

    def __init__(
        self,
        workspace_id: str,
        writer: PositionWriter,
        *,
        delay: float = DEFAULT_DELAY,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            workspace_id: Workspace the staged positions belong to
            writer: Batched upsert, e.g. ``store.save_positions``
            delay: Debounce window in seconds
            clock: Monotonic time source
        """
        if delay < 0:
            raise ValueError("delay must not be negative")
        self.workspace_id = workspace_id
        self.delay = delay
        self._writer = writer
        self._clock = clock
        self._pending: dict[str, DragStop] = {}
        self._deadline: float | None = None
        self.flush_count = 0
        self.failure_count = 0

    @property
    def pending(self) -> dict[str, DragStop]:
        return dict(self._pending)

    @property
    def armed(self) -> bool:
        return self._deadline is not None

    @property
    def deadline(self) -> float | None:
        return self._deadline

    def record_drag_stop(self, event: DragStop) -> None:
        """Stage a drag-stop and (re)arm the debounce deadline."""
        self._pending[event.node_id] = event
        self._deadline = self._clock() + self.delay

    def tick(self) -> int:
        """Flush if the debounce deadline has passed. Returns records written."""
        if self._deadline is None or self._clock() < self._deadline:
            return 0
        return self.flush()

    def flush(self) -> int:
        """Write every staged position now as one batch and clear the buffer."""
        self._deadline = None
        if not self._pending:
            return 0

        updated_at = datetime.now(timezone.utc).isoformat()
        records = [
            PositionRecord(
                workspace_id=self.workspace_id,
                node_type=event.kind,
                node_id=event.node_id,
                x=event.x,
                y=event.y,
                pinned=True,
                updated_at=updated_at,
            )
            for event in self._pending.values()
        ]
        self._pending.clear()

        self.flush_count += 1
        try:
            self._writer(records)
        except Exception as e:
            self.failure_count += 1
            logger.warning(f"Failed to save {len(records)} node position(s) for workspace {self.workspace_id}: {e}")
        return len(records)

    def cancel(self) -> None:
        """Discard staged positions without writing them."""
        self._pending.clear()
        self._deadline = None
