"""Configuration loading from ``missiongraph.toml``.

Example::

    [layout]
    direction = "LR"
    node_width = 200

    [virtualization]
    threshold = 150

    [persistence]
    flush_delay = 0.5

    [store]
    url = "http://localhost:3000"
    timeout_s = 5
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .graph.layout import LayoutOptions
from .graph.positions import PositionPersistence
from .graph.virtualize import NODE_RENDER_LIMIT

CONFIG_FILENAME = "missiongraph.toml"

_LAYOUT_FLOATS = (
    "node_width",
    "node_height",
    "rank_separation",
    "node_separation",
    "agent_height_bonus",
)


@dataclass(frozen=True)
class GraphConfig:
    layout: LayoutOptions = field(default_factory=LayoutOptions)
    virtualization_threshold: int = NODE_RENDER_LIMIT
    flush_delay: float = PositionPersistence.DEFAULT_DELAY
    store_url: str | None = None
    store_timeout_s: float = 10.0


def _coerce_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _number(table: dict[str, Any], key: str, default: float) -> float:
    value = table.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{key} must be a number")
    return float(value)


def parse_config(data: dict[str, Any]) -> GraphConfig:
    """Build a config from already-parsed TOML data."""
    layout_raw = _coerce_dict(data.get("layout"))
    defaults = LayoutOptions()
    layout_kwargs: dict[str, Any] = {
        key: _number(layout_raw, key, getattr(defaults, key)) for key in _LAYOUT_FLOATS
    }
    layout_kwargs["direction"] = str(layout_raw.get("direction", defaults.direction)).strip().upper()
    layout_kwargs["ordering_passes"] = int(_number(layout_raw, "ordering_passes", defaults.ordering_passes))
    layout = LayoutOptions(**layout_kwargs)

    virt_raw = _coerce_dict(data.get("virtualization"))
    threshold = int(_number(virt_raw, "threshold", NODE_RENDER_LIMIT))
    if threshold <= 0:
        raise ValueError("virtualization.threshold must be a positive integer")

    persist_raw = _coerce_dict(data.get("persistence"))
    flush_delay = _number(persist_raw, "flush_delay", PositionPersistence.DEFAULT_DELAY)
    if flush_delay < 0:
        raise ValueError("persistence.flush_delay must not be negative")

    store_raw = _coerce_dict(data.get("store"))
    url = store_raw.get("url")
    store_url = url.strip() if isinstance(url, str) and url.strip() else None
    store_timeout_s = _number(store_raw, "timeout_s", 10.0)
    if store_timeout_s <= 0:
        raise ValueError("store.timeout_s must be positive")

    return GraphConfig(
        layout=layout,
        virtualization_threshold=threshold,
        flush_delay=flush_delay,
        store_url=store_url,
        store_timeout_s=store_timeout_s,
    )


def load_config(path: Path) -> GraphConfig:
    """Load configuration from a TOML file."""
    data = tomllib.loads(path.read_text(encoding="utf-8"))
    return parse_config(data)


def find_config(start: Path) -> Path | None:
    """Find ``missiongraph.toml`` by walking up from ``start``."""
    cur = start.resolve()
    for p in (cur, *cur.parents):
        candidate = p / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None
