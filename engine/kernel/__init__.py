"""
Workspace Kernel — event sourcing for collaborative workspaces.

Components:
  events     — construction of well-formed events
  payloads   — one typed record per event type
  reducer    — (state, event) → state  (pure, deterministic)
  snapshots  — when and how to compact a log into a snapshot
  loader     — snapshot + newer events → current state (the read path)
  store      — storage protocol; postgres_storage implements it on asyncpg
"""

from engine.kernel.events import create_event
from engine.kernel.loader import load_event_log, load_workspace_state
from engine.kernel.reducer import apply_event, empty_state, replay, validate_events, validate_state
from engine.kernel.snapshots import SnapshotConfig, SnapshotManager
from engine.kernel.store import InMemoryWorkspaceStore, WorkspaceStore
from engine.kernel.types import Item, Layout, Snapshot, WorkspaceEvent, WorkspaceState

__all__ = [
    "create_event",
    "apply_event",
    "replay",
    "empty_state",
    "validate_events",
    "validate_state",
    "load_workspace_state",
    "load_event_log",
    "SnapshotConfig",
    "SnapshotManager",
    "WorkspaceStore",
    "InMemoryWorkspaceStore",
    "Item",
    "Layout",
    "Snapshot",
    "WorkspaceEvent",
    "WorkspaceState",
]
