"""
Pydantic models for the workspace backend.

All data shapes defined here. No imports from db or services.
"""

from backend.models.workspace import (
    AppendEventRequest,
    AppendEventResponse,
    EventLogResponse,
    SnapshotInfo,
    SnapshotStatusResponse,
    WorkspaceStateResponse,
)

__all__ = [
    "AppendEventRequest",
    "AppendEventResponse",
    "EventLogResponse",
    "SnapshotInfo",
    "SnapshotStatusResponse",
    "WorkspaceStateResponse",
]
