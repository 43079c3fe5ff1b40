"""
Workspace Kernel — Storage Protocol

The durable log and the snapshot table live in an external transactional
datastore. The kernel talks to it only through WorkspaceStore.
Implement with Postgres for production (postgres_storage.py), or in-memory
for tests.

Contract for append_event(): versions are assigned by the store, strictly
increasing and gapless per workspace. When expected_version is given and
does not match the current head, nothing is written and the result carries
conflict=True with the current head version.
"""

from __future__ import annotations

import dataclasses
import uuid
from datetime import UTC, datetime

from engine.kernel.types import AppendResult, Snapshot, WorkspaceEvent

DEFAULT_SNAPSHOTS_KEPT = 3


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class StorageError(Exception):
    """The backing store failed to read or write."""

    pass


# ---------------------------------------------------------------------------
# Storage protocol
# ---------------------------------------------------------------------------


class WorkspaceStore:
    """
    Abstract storage interface for event logs and snapshots.
    Every method is an IO boundary and may raise.
    """

    async def append_event(
        self,
        workspace_id: str,
        event: WorkspaceEvent,
        expected_version: int | None = None,
    ) -> AppendResult:
        """Persist an event with the next version for its workspace."""
        raise NotImplementedError

    async def list_events(
        self,
        workspace_id: str,
        after_version: int = 0,
        limit: int | None = None,
    ) -> list[WorkspaceEvent]:
        """Events with version > after_version, ascending by version."""
        raise NotImplementedError

    async def get_current_version(self, workspace_id: str) -> int:
        """Highest event version for the workspace, 0 if it has no events."""
        raise NotImplementedError

    async def get_latest_snapshot(self, workspace_id: str) -> Snapshot | None:
        """Snapshot with the highest version, or None."""
        raise NotImplementedError

    async def put_snapshot(self, workspace_id: str, snapshot: Snapshot) -> str:
        """Upsert a snapshot on (workspace_id, version). Returns its id."""
        raise NotImplementedError

    async def prune_snapshots(self, workspace_id: str, keep: int = DEFAULT_SNAPSHOTS_KEPT) -> int:
        """Delete all but the `keep` newest snapshots. Returns rows removed."""
        raise NotImplementedError

    async def list_snapshots(self, workspace_id: str) -> list[Snapshot]:
        """All snapshots for the workspace, newest first."""
        raise NotImplementedError


class InMemoryWorkspaceStore(WorkspaceStore):
    """
    In-memory storage for testing.

    Single event loop, no awaits inside the critical sections, so each call
    is atomic with respect to other coroutines.
    """

    def __init__(self) -> None:
        self.events: dict[str, list[WorkspaceEvent]] = {}
        self.snapshots: dict[str, dict[int, Snapshot]] = {}
        self._event_ids: dict[str, set[str]] = {}

    async def append_event(
        self,
        workspace_id: str,
        event: WorkspaceEvent,
        expected_version: int | None = None,
    ) -> AppendResult:
        log = self.events.setdefault(workspace_id, [])
        current = log[-1].version if log else 0
        if expected_version is not None and expected_version != current:
            return AppendResult(version=current, conflict=True)
        seen = self._event_ids.setdefault(workspace_id, set())
        if event.id in seen:
            raise StorageError(f"Duplicate event id {event.id}")

        version = current + 1
        log.append(dataclasses.replace(event, version=version))
        seen.add(event.id)
        return AppendResult(version=version)

    async def list_events(
        self,
        workspace_id: str,
        after_version: int = 0,
        limit: int | None = None,
    ) -> list[WorkspaceEvent]:
        newer = [e for e in self.events.get(workspace_id, []) if e.version > after_version]
        return newer if limit is None else newer[:limit]

    async def get_current_version(self, workspace_id: str) -> int:
        log = self.events.get(workspace_id)
        return log[-1].version if log else 0

    async def get_latest_snapshot(self, workspace_id: str) -> Snapshot | None:
        by_version = self.snapshots.get(workspace_id)
        if not by_version:
            return None
        return by_version[max(by_version)]

    async def put_snapshot(self, workspace_id: str, snapshot: Snapshot) -> str:
        by_version = self.snapshots.setdefault(workspace_id, {})
        existing = by_version.get(snapshot.version)
        snapshot_id = existing.id if existing is not None and existing.id else str(uuid.uuid4())
        by_version[snapshot.version] = dataclasses.replace(
            snapshot,
            workspace_id=workspace_id,
            id=snapshot_id,
            created_at=datetime.now(UTC).isoformat(),
        )
        return snapshot_id

    async def prune_snapshots(self, workspace_id: str, keep: int = DEFAULT_SNAPSHOTS_KEPT) -> int:
        by_version = self.snapshots.get(workspace_id, {})
        stale = sorted(by_version, reverse=True)[keep:]
        for version in stale:
            del by_version[version]
        return len(stale)

    async def list_snapshots(self, workspace_id: str) -> list[Snapshot]:
        by_version = self.snapshots.get(workspace_id, {})
        return [by_version[v] for v in sorted(by_version, reverse=True)]
