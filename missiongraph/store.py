"""Position and dependency stores.

Two implementations of the same contracts:
- ``MemoryGraphStore``: in-process, used by the CLI and tests
- ``HttpGraphStore``: JSON over the mission-control HTTP API

Positions are upserted by (workspace_id, node_type, node_id), last write wins.
"""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass
from typing import Any, Iterable, Protocol, Sequence, runtime_checkable
from urllib.error import HTTPError, URLError
from urllib.parse import quote, urlencode
from urllib.request import Request, urlopen

from .graph.model import PositionRecord
from .models import DEPENDENCY_TYPES, Dependency


class StoreError(RuntimeError):
    """A store request failed (transport, HTTP status or payload)."""


@runtime_checkable
class PositionStore(Protocol):
    def load_positions(self, workspace_id: str) -> list[PositionRecord]: ...

    def save_positions(self, records: Sequence[PositionRecord]) -> None: ...


@runtime_checkable
class DependencyStore(Protocol):
    def list_dependencies(self, workspace_id: str) -> list[Dependency]: ...

    def create_dependency(
        self, source_task_id: str, target_task_id: str, dependency_type: str = "blocks"
    ) -> Dependency: ...

    def delete_dependency(self, dependency_id: str) -> None: ...


@runtime_checkable
class GraphStore(PositionStore, DependencyStore, Protocol):
    """A store serving both positions and dependencies."""


class MemoryGraphStore:
    """In-memory position and dependency store.

    Dependencies are scoped to a workspace through ``task_workspaces``
    (task id -> workspace id); unknown tasks are listed for every workspace.
    """

    def __init__(
        self,
        *,
        positions: Iterable[PositionRecord] = (),
        dependencies: Iterable[Dependency] = (),
        task_workspaces: dict[str, str] | None = None,
    ):
        self._positions: dict[tuple[str, str, str], PositionRecord] = {}
        self._dependencies: dict[str, Dependency] = {}
        self.task_workspaces = dict(task_workspaces or {})
        self.save_calls = 0
        self.save_positions(list(positions))
        self.save_calls = 0
        for dep in dependencies:
            self._dependencies[dep.id] = dep

    def load_positions(self, workspace_id: str) -> list[PositionRecord]:
        return [r for key, r in sorted(self._positions.items()) if key[0] == workspace_id]

    def save_positions(self, records: Sequence[PositionRecord]) -> None:
        self.save_calls += 1
        for record in records:
            self._positions[record.key] = record

    def list_dependencies(self, workspace_id: str) -> list[Dependency]:
        return [
            d
            for d in self._dependencies.values()
            if self.task_workspaces.get(d.source_task_id, workspace_id) == workspace_id
        ]

    def create_dependency(
        self, source_task_id: str, target_task_id: str, dependency_type: str = "blocks"
    ) -> Dependency:
        if dependency_type not in DEPENDENCY_TYPES:
            raise StoreError(f"Unknown dependency type: {dependency_type}")
        if source_task_id == target_task_id:
            raise StoreError("A task cannot depend on itself")
        for existing in self._dependencies.values():
            if existing.source_task_id == source_task_id and existing.target_task_id == target_task_id:
                raise StoreError(f"Dependency {source_task_id} -> {target_task_id} already exists")
        dep = Dependency(
            id=uuid.uuid4().hex,
            source_task_id=source_task_id,
            target_task_id=target_task_id,
            dependency_type=dependency_type,
        )
        self._dependencies[dep.id] = dep
        return dep

    def delete_dependency(self, dependency_id: str) -> None:
        if self._dependencies.pop(dependency_id, None) is None:
            raise StoreError(f"Dependency not found: {dependency_id}")

    def replace_dependencies(
        self, dependencies: Iterable[Dependency], *, task_workspaces: dict[str, str] | None = None
    ) -> None:
        """Swap the whole dependency set (e.g. after reloading a data file)."""
        self._dependencies = {d.id: d for d in dependencies}
        if task_workspaces is not None:
            self.task_workspaces.update(task_workspaces)


@dataclass(frozen=True)
class HttpStoreConfig:
    base_url: str
    timeout_s: float = 10.0


class HttpGraphStore:
    """Minimal JSON client for the graph position and dependency endpoints."""

    POSITIONS_PATH = "/api/graph/positions"
    DEPENDENCIES_PATH = "/api/tasks/dependencies"

    def __init__(self, cfg: HttpStoreConfig) -> None:
        self._cfg = cfg
        self._base = cfg.base_url.rstrip("/")

    def _request(self, method: str, path: str, body: Any = None) -> Any:
        data = json.dumps(body).encode("utf-8") if body is not None else None
        req = Request(
            f"{self._base}{path}",
            data=data,
            method=method,
            headers={
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
        )
        try:
            with urlopen(req, timeout=self._cfg.timeout_s) as resp:
                raw = resp.read().decode("utf-8")
        except HTTPError as e:
            raise StoreError(f"HTTP error {e.code} on {method} {path}: {e.reason}") from e
        except URLError as e:
            raise StoreError(f"Connection error on {method} {path}: {e.reason}") from e

        if not raw.strip():
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise StoreError(f"Invalid JSON from {method} {path}: {e}") from e

    def load_positions(self, workspace_id: str) -> list[PositionRecord]:
        payload = self._request("GET", f"{self.POSITIONS_PATH}?{urlencode({'workspace_id': workspace_id})}")
        rows = payload.get("positions", []) if isinstance(payload, dict) else payload or []
        return [PositionRecord.from_dict(row) for row in rows if isinstance(row, dict)]

    def save_positions(self, records: Sequence[PositionRecord]) -> None:
        self._request("PUT", self.POSITIONS_PATH, {"positions": [r.to_dict() for r in records]})

    def list_dependencies(self, workspace_id: str) -> list[Dependency]:
        payload = self._request("GET", f"{self.DEPENDENCIES_PATH}?{urlencode({'workspace_id': workspace_id})}")
        rows = payload if isinstance(payload, list) else []
        return [Dependency.from_dict(row) for row in rows if isinstance(row, dict)]

    def create_dependency(
        self, source_task_id: str, target_task_id: str, dependency_type: str = "blocks"
    ) -> Dependency:
        payload = self._request(
            "POST",
            self.DEPENDENCIES_PATH,
            {
                "source_task_id": source_task_id,
                "target_task_id": target_task_id,
                "dependency_type": dependency_type,
            },
        )
        if not isinstance(payload, dict):
            raise StoreError("Dependency creation returned no record")
        return Dependency.from_dict(payload)

    def delete_dependency(self, dependency_id: str) -> None:
        self._request("DELETE", f"{self.DEPENDENCIES_PATH}/{quote(dependency_id, safe='')}")
