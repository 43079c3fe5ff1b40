"""
Workspace Kernel — State Loader

The read path. Current state = latest snapshot + replay of every event
newer than it. Nothing else should treat a raw event list or a stored
snapshot as "the" state.
"""

from __future__ import annotations

import logging

from engine.kernel.reducer import empty_state, replay
from engine.kernel.snapshots import fetch_events_paged
from engine.kernel.store import WorkspaceStore
from engine.kernel.types import EventLog, WorkspaceState

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 1000


async def load_workspace_state(
    store: WorkspaceStore,
    workspace_id: str,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> WorkspaceState:
    """
    Load the current state of a workspace.

    Never raises. If storage fails, returns an empty state tagged with the
    workspace id, so the workspace renders as empty instead of erroring.
    """
    try:
        latest = await store.get_latest_snapshot(workspace_id)
        base_state = latest.state if latest is not None else None
        from_version = latest.version if latest is not None else 0

        events = await fetch_events_paged(store, workspace_id, from_version, page_size)
        return replay(events, workspace_id, base_state)
    except Exception:
        logger.exception("loader: failed to load workspace %s, falling back to empty state", workspace_id)
        return empty_state(workspace_id)


async def load_event_log(
    store: WorkspaceStore,
    workspace_id: str,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> EventLog:
    """
    Fetch the latest snapshot plus the events after it, unreplayed.

    For clients that replay locally. `version` is the highest event version,
    or the snapshot's version when nothing is newer. Storage errors propagate.
    """
    latest = await store.get_latest_snapshot(workspace_id)
    from_version = latest.version if latest is not None else 0

    events = await fetch_events_paged(store, workspace_id, from_version, page_size)
    version = max((e.version for e in events), default=from_version)

    return EventLog(workspace_id=workspace_id, events=events, version=version, snapshot=latest)
