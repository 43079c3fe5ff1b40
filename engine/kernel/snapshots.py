"""
Workspace Kernel — Snapshot Policy

Decides when a workspace's log has grown enough since its last snapshot,
and compacts it: replay the unsnapshotted events on top of the latest
snapshot and persist the result as a new one.

Compaction is an optimization. Reads are always correct from the raw log
alone, so nothing here is allowed to fail a caller's mutation: errors are
logged and reported as SnapshotResult(success=False).

Concurrent compactions of the same workspace are safe without locking.
Each one writes a snapshot that satisfies the snapshot invariant, and two
writes at the same version collapse into one row.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from engine.kernel.reducer import replay
from engine.kernel.store import DEFAULT_SNAPSHOTS_KEPT, WorkspaceStore
from engine.kernel.types import Snapshot, WorkspaceEvent, WorkspaceState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SnapshotConfig:
    """Compaction tuning."""

    events_per_snapshot: int = 50
    max_snapshots_per_workspace: int = DEFAULT_SNAPSHOTS_KEPT
    page_size: int = 1000

    def __post_init__(self):
        if self.events_per_snapshot < 1:
            raise ValueError(f"events_per_snapshot must be at least 1, got {self.events_per_snapshot}")
        if self.max_snapshots_per_workspace < 1:
            raise ValueError(f"max_snapshots_per_workspace must be at least 1, got {self.max_snapshots_per_workspace}")
        if self.page_size < 1:
            raise ValueError(f"page_size must be at least 1, got {self.page_size}")


@dataclass(frozen=True)
class SnapshotStatus:
    needs_snapshot: bool
    current_version: int
    last_snapshot_version: int
    events_since_snapshot: int


@dataclass(frozen=True)
class SnapshotResult:
    success: bool
    version: int | None = None
    error: str | None = None


async def fetch_events_paged(
    store: WorkspaceStore,
    workspace_id: str,
    after_version: int,
    page_size: int,
) -> list[WorkspaceEvent]:
    """
    Fetch every event newer than after_version, page by page.

    Keyset pagination on version: each page starts after the last version
    seen, so concurrent appends never shift a page.
    """
    events: list[WorkspaceEvent] = []
    last_seen = after_version
    while True:
        page = await store.list_events(workspace_id, after_version=last_seen, limit=page_size)
        if not page:
            return events
        events.extend(page)
        if len(page) < page_size:
            return events
        last_seen = page[-1].version


class SnapshotManager:
    """
    Compaction for workspace event logs.
    Coordinates the store and the reducer; holds no per-workspace state.
    """

    def __init__(self, store: WorkspaceStore, config: SnapshotConfig | None = None):
        self._store = store
        self.config = config or SnapshotConfig()

    # -- status --

    async def check_needs_snapshot(self, workspace_id: str, threshold: int | None = None) -> SnapshotStatus:
        """
        Compare the log head with the latest snapshot.

        needs_snapshot is True once events_since_snapshot reaches the
        threshold (default config.events_per_snapshot).
        """
        if threshold is None:
            threshold = self.config.events_per_snapshot

        current = await self._store.get_current_version(workspace_id)
        latest = await self._store.get_latest_snapshot(workspace_id)
        last_snapshot_version = latest.version if latest is not None else 0
        since = current - last_snapshot_version

        return SnapshotStatus(
            needs_snapshot=since >= threshold,
            current_version=current,
            last_snapshot_version=last_snapshot_version,
            events_since_snapshot=since,
        )

    # -- compaction --

    async def create_snapshot(self, workspace_id: str) -> SnapshotResult:
        """
        Replay events since the latest snapshot and persist a new one.

        Returns the new snapshot's version. With no new events this is a
        no-op that returns the existing version and writes nothing.
        Never raises.
        """
        try:
            latest = await self._store.get_latest_snapshot(workspace_id)
            base_state: WorkspaceState | None = None
            base_version = 0
            base_count = 0
            if latest is not None:
                base_state = latest.state
                base_version = latest.version
                base_count = latest.event_count

            events = await fetch_events_paged(self._store, workspace_id, base_version, self.config.page_size)
            if not events:
                return SnapshotResult(success=True, version=base_version)

            state = replay(events, workspace_id, base_state)
            max_version = max(e.version for e in events)

            snapshot_id = await self._store.put_snapshot(
                workspace_id,
                Snapshot(
                    workspace_id=workspace_id,
                    version=max_version,
                    state=state,
                    event_count=base_count + len(events),
                ),
            )
            if not snapshot_id:
                logger.error("snapshot: store returned no id for workspace %s", workspace_id)
                return SnapshotResult(success=False, error="Snapshot write returned no id")

            pruned = await self._store.prune_snapshots(workspace_id, keep=self.config.max_snapshots_per_workspace)
            logger.info(
                "snapshot: workspace %s compacted at version %d (%d new events, %d pruned)",
                workspace_id,
                max_version,
                len(events),
                pruned,
            )
            return SnapshotResult(success=True, version=max_version)
        except Exception as e:
            logger.exception("snapshot: failed to create snapshot for workspace %s", workspace_id)
            return SnapshotResult(success=False, error=str(e))

    async def check_and_create_snapshot(self, workspace_id: str) -> None:
        """
        Compact if the threshold is reached.

        Called after every append. Never raises: a failure here must not
        reach the caller's mutation response.
        """
        try:
            status = await self.check_needs_snapshot(workspace_id)
            if not status.needs_snapshot:
                return
            result = await self.create_snapshot(workspace_id)
            if not result.success:
                logger.error("snapshot: compaction failed for workspace %s: %s", workspace_id, result.error)
        except Exception:
            logger.exception("snapshot: error checking workspace %s", workspace_id)

    # -- history / integrity --

    async def list_snapshots(self, workspace_id: str) -> list[Snapshot]:
        """Version history, newest first."""
        return await self._store.list_snapshots(workspace_id)

    async def verify_snapshot(self, workspace_id: str) -> tuple[bool, list[str]]:
        """
        Check the latest snapshot against a from-scratch replay.

        Replays every event up to the snapshot's version and compares the
        result with the stored state. No snapshot means nothing to verify.
        """
        latest = await self._store.get_latest_snapshot(workspace_id)
        if latest is None:
            return True, []

        events = await fetch_events_paged(self._store, workspace_id, 0, self.config.page_size)
        covered = [e for e in events if e.version <= latest.version]

        problems: list[str] = []
        if len(covered) != latest.event_count:
            problems.append(f"Snapshot covers {latest.event_count} events, log has {len(covered)} up to v{latest.version}")
        if replay(covered, workspace_id) != latest.state:
            problems.append(f"Snapshot v{latest.version} does not match event replay")
        return not problems, problems
