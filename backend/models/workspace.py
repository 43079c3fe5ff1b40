"""Workspace models returned by the workspace service."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from engine.kernel.snapshots import SnapshotStatus
from engine.kernel.types import EventLog, Snapshot


class AppendEventRequest(BaseModel):
    """What a client sends to record one mutation."""

    model_config = {"extra": "forbid"}

    type: str = Field(min_length=1)
    payload: dict[str, Any]
    user_id: str = Field(min_length=1)
    user_name: str | None = None
    base_version: int | None = Field(default=None, ge=0)


class AppendEventResponse(BaseModel):
    """
    Result of an append.

    On conflict nothing was written; current_events holds what the client
    is missing after its base version, so it can rebase and retry.
    """

    version: int
    conflict: bool = False
    event_id: str | None = None
    current_events: list[dict[str, Any]] = Field(default_factory=list)


class SnapshotInfo(BaseModel):
    """One entry of a workspace's version history."""

    id: str | None = None
    version: int
    event_count: int
    created_at: str | None = None

    @classmethod
    def from_snapshot(cls, snapshot: Snapshot) -> SnapshotInfo:
        return cls(
            id=snapshot.id,
            version=snapshot.version,
            event_count=snapshot.event_count,
            created_at=snapshot.created_at,
        )


class EventLogResponse(BaseModel):
    """Events since the latest snapshot, for clients that replay locally."""

    workspace_id: str
    version: int
    events: list[dict[str, Any]]
    snapshot: dict[str, Any] | None = None
    snapshot_version: int | None = None

    @classmethod
    def from_event_log(cls, log: EventLog) -> EventLogResponse:
        return cls(
            workspace_id=log.workspace_id,
            version=log.version,
            events=[e.to_dict() for e in log.events],
            snapshot=log.snapshot.state.to_dict() if log.snapshot else None,
            snapshot_version=log.snapshot.version if log.snapshot else None,
        )


class SnapshotStatusResponse(BaseModel):
    needs_snapshot: bool
    current_version: int
    last_snapshot_version: int
    events_since_snapshot: int

    @classmethod
    def from_status(cls, status: SnapshotStatus) -> SnapshotStatusResponse:
        return cls(
            needs_snapshot=status.needs_snapshot,
            current_version=status.current_version,
            last_snapshot_version=status.last_snapshot_version,
            events_since_snapshot=status.events_since_snapshot,
        )


class WorkspaceStateResponse(BaseModel):
    """
    Cold load response.

    - state: current reduced state, ready to render
    - state_hash: checksum for reconciliation with a locally replayed state
    """

    workspace_id: str
    state: dict[str, Any]
    state_hash: str
