"""Tests for position and dependency stores."""

from __future__ import annotations

import io
import json
from urllib.error import URLError

import pytest

import missiongraph.store as store_mod
from missiongraph.graph.model import PositionRecord
from missiongraph.models import Dependency
from missiongraph.store import GraphStore, HttpGraphStore, HttpStoreConfig, MemoryGraphStore, StoreError


# -----------------------------------------------------------------------------
# Memory store
# -----------------------------------------------------------------------------


def test_memory_store_satisfies_protocol() -> None:
    assert isinstance(MemoryGraphStore(), GraphStore)
    assert isinstance(HttpGraphStore(HttpStoreConfig("http://localhost")), GraphStore)


def test_positions_upsert_last_write_wins() -> None:
    store = MemoryGraphStore(positions=[PositionRecord("ws-1", "task", "T1", 1.0, 1.0)])
    assert store.save_calls == 0

    store.save_positions(
        [
            PositionRecord("ws-1", "task", "T1", 5.0, 6.0),
            PositionRecord("ws-2", "task", "T1", 9.0, 9.0),
        ]
    )

    (record,) = store.load_positions("ws-1")
    assert (record.x, record.y) == (5.0, 6.0)
    assert len(store.load_positions("ws-2")) == 1
    assert store.save_calls == 1


def test_dependencies_scoped_by_task_workspace() -> None:
    store = MemoryGraphStore(
        dependencies=[
            Dependency("D1", "T1", "T2"),
            Dependency("D2", "X1", "X2"),
            Dependency("D3", "U1", "U2"),
        ],
        task_workspaces={"T1": "ws-1", "X1": "ws-2"},
    )
    # tasks without a known workspace are listed everywhere
    assert sorted(d.id for d in store.list_dependencies("ws-1")) == ["D1", "D3"]
    assert sorted(d.id for d in store.list_dependencies("ws-2")) == ["D2", "D3"]


def test_create_dependency_validates() -> None:
    store = MemoryGraphStore()
    dep = store.create_dependency("T1", "T2")
    assert dep.dependency_type == "blocks"
    assert dep.id

    with pytest.raises(StoreError):
        store.create_dependency("T1", "T2")
    with pytest.raises(StoreError):
        store.create_dependency("T1", "T1")
    with pytest.raises(StoreError):
        store.create_dependency("T1", "T3", "depends_on")

    # reverse direction is a different dependency
    store.create_dependency("T2", "T1", "relates_to")
    assert len(store.list_dependencies("ws-1")) == 2


def test_delete_dependency() -> None:
    store = MemoryGraphStore(dependencies=[Dependency("D1", "T1", "T2")])
    store.delete_dependency("D1")
    assert store.list_dependencies("ws-1") == []
    with pytest.raises(StoreError):
        store.delete_dependency("D1")


def test_replace_dependencies() -> None:
    store = MemoryGraphStore(dependencies=[Dependency("D1", "T1", "T2")], task_workspaces={"T1": "ws-1"})
    store.replace_dependencies([Dependency("D2", "T5", "T6")], task_workspaces={"T5": "ws-2"})

    assert store.list_dependencies("ws-1") == []
    assert [d.id for d in store.list_dependencies("ws-2")] == ["D2"]


# -----------------------------------------------------------------------------
# HTTP store
# -----------------------------------------------------------------------------


class FakeResponse(io.BytesIO):
    def __enter__(self):
        return self

    def __exit__(self, *exc) -> None:
        self.close()


@pytest.fixture
def http_calls(monkeypatch) -> list:
    """Capture outgoing requests; respond with the queued payloads."""
    sent: list = []
    responses: list = []

    def fake_urlopen(req, timeout=None):
        sent.append((req.get_method(), req.full_url, req.data, timeout))
        payload = responses.pop(0) if responses else None
        body = b"" if payload is None else json.dumps(payload).encode("utf-8")
        return FakeResponse(body)

    monkeypatch.setattr(store_mod, "urlopen", fake_urlopen)
    return [sent, responses]


def test_http_load_and_save_positions(http_calls) -> None:
    sent, responses = http_calls
    store = HttpGraphStore(HttpStoreConfig("http://mc.local/", timeout_s=3))
    responses.append(
        {"positions": [{"workspace_id": "ws-1", "node_type": "task", "node_id": "T1", "x": 1, "y": 2, "pinned": True}]}
    )

    (record,) = store.load_positions("ws-1")
    assert record == PositionRecord("ws-1", "task", "T1", 1.0, 2.0, pinned=True)
    assert sent[0][:2] == ("GET", "http://mc.local/api/graph/positions?workspace_id=ws-1")
    assert sent[0][3] == 3

    store.save_positions([record])
    method, url, data, _ = sent[1]
    assert (method, url) == ("PUT", "http://mc.local/api/graph/positions")
    assert json.loads(data) == {"positions": [record.to_dict()]}


def test_http_dependency_calls(http_calls) -> None:
    sent, responses = http_calls
    store = HttpGraphStore(HttpStoreConfig("http://mc.local"))

    responses.append([{"id": "D1", "source_task_id": "T1", "target_task_id": "T2", "dependency_type": "blocks"}])
    assert store.list_dependencies("ws-1") == [Dependency("D1", "T1", "T2")]

    responses.append({"id": "D2", "source_task_id": "T2", "target_task_id": "T3"})
    assert store.create_dependency("T2", "T3").id == "D2"
    assert json.loads(sent[1][2])["source_task_id"] == "T2"

    store.delete_dependency("D2")
    assert sent[2][:2] == ("DELETE", "http://mc.local/api/tasks/dependencies/D2")


def test_http_connection_error_becomes_store_error(monkeypatch) -> None:
    def refuse(req, timeout=None):
        raise URLError("connection refused")

    monkeypatch.setattr(store_mod, "urlopen", refuse)
    store = HttpGraphStore(HttpStoreConfig("http://mc.local"))
    with pytest.raises(StoreError, match="Connection error"):
        store.list_dependencies("ws-1")


def test_http_create_without_record_raises(http_calls) -> None:
    store = HttpGraphStore(HttpStoreConfig("http://mc.local"))
    with pytest.raises(StoreError):
        store.create_dependency("T1", "T2")
