"""missiongraph - live agent/task graph synchronization and layout engine."""

__version__ = "0.1.0"
