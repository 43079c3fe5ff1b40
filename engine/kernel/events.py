"""
Workspace Kernel — Event Construction

Factory functions for creating well-formed events.
create_event() is what mutation handlers call before appending;
make_event() builds already-versioned events concisely for tests and fixtures.
"""

from __future__ import annotations

import uuid
from typing import Any

from engine.kernel.types import EVENT_TYPES, WorkspaceEvent, now_ms


def new_event_id() -> str:
    """Globally unique event id."""
    return str(uuid.uuid4())


def create_event(
    type: str,
    payload: dict[str, Any],
    user_id: str,
    user_name: str | None = None,
) -> WorkspaceEvent:
    """
    Build a new, unversioned event for the given mutation.

    Raises ValueError for an unknown event type, a non-dict payload or an
    empty user id. The event store assigns `version` at append time.
    """
    if type not in EVENT_TYPES:
        raise ValueError(f"Unknown event type: {type}")
    if not isinstance(payload, dict):
        raise ValueError(f"Payload for {type} must be a dict, got {payload.__class__.__name__}")
    if not user_id:
        raise ValueError("user_id is required")

    return WorkspaceEvent(
        type=type,
        payload=payload,
        timestamp=now_ms(),
        user_id=user_id,
        user_name=user_name or None,
        id=new_event_id(),
    )


def make_event(
    version: int,
    type: str,
    payload: dict[str, Any],
    *,
    user_id: str = "user_test",
    user_name: str | None = None,
    timestamp: int | None = None,
    event_id: str | None = None,
) -> WorkspaceEvent:
    """
    Build a complete, versioned event from minimal inputs.

    version is required — it determines both the event id and its position
    in the log. The timestamp defaults to a fixed base plus the version so
    that fixtures are deterministic. Unknown types are allowed on purpose.
    """
    return WorkspaceEvent(
        type=type,
        payload=payload,
        timestamp=timestamp if timestamp is not None else 1_700_000_000_000 + version,
        user_id=user_id,
        user_name=user_name,
        id=event_id or f"evt_{version:04d}",
        version=version,
    )
