"""
Workspace service — the mutation and read paths for one process.

append() validates and records one event, then schedules compaction in the
background. Compaction runs after the append has returned its version and
can never change that outcome.
"""

from __future__ import annotations

import asyncio
import logging

from backend.models.workspace import (
    AppendEventRequest,
    AppendEventResponse,
    EventLogResponse,
    SnapshotInfo,
    SnapshotStatusResponse,
    WorkspaceStateResponse,
)
from backend.utils.state_hash import hash_state
from engine.kernel.events import create_event
from engine.kernel.import_validation import validate_imported_json
from engine.kernel.loader import load_event_log, load_workspace_state
from engine.kernel.payloads import validate_payload
from engine.kernel.snapshots import SnapshotManager, SnapshotResult, fetch_events_paged
from engine.kernel.store import WorkspaceStore
from engine.kernel.types import WORKSPACE_SNAPSHOT

logger = logging.getLogger(__name__)


class InvalidEventError(ValueError):
    """An event was rejected before reaching the log."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__("; ".join(errors))


class WorkspaceService:
    """Append, load and compact workspaces against one store."""

    def __init__(self, store: WorkspaceStore, manager: SnapshotManager | None = None):
        self.store = store
        self.manager = manager or SnapshotManager(store)
        self._pending: set[asyncio.Task] = set()

    # -- writes --

    async def append(self, workspace_id: str, req: AppendEventRequest) -> AppendEventResponse:
        """
        Record one mutation.

        With req.base_version set, the append only succeeds if the log is
        still at that version; otherwise the response carries conflict=True
        and the events after base_version.

        Raises:
            InvalidEventError: unknown type or malformed payload
        """
        errors = validate_payload(req.type, req.payload)
        if errors:
            raise InvalidEventError(errors)
        try:
            event = create_event(req.type, req.payload, req.user_id, req.user_name)
        except ValueError as e:
            raise InvalidEventError([str(e)]) from e

        result = await self.store.append_event(workspace_id, event, expected_version=req.base_version)
        if result.conflict:
            missing = await fetch_events_paged(
                self.store,
                workspace_id,
                req.base_version or 0,
                self.manager.config.page_size,
            )
            logger.info(
                "workspace: append conflict on %s (base v%s, head v%d)",
                workspace_id,
                req.base_version,
                result.version,
            )
            return AppendEventResponse(
                version=result.version,
                conflict=True,
                current_events=[e.to_dict() for e in missing],
            )

        self.schedule_compaction(workspace_id)
        return AppendEventResponse(version=result.version, event_id=event.id)

    async def import_state(
        self,
        workspace_id: str,
        text: str,
        user_id: str,
        user_name: str | None = None,
        base_version: int | None = None,
    ) -> AppendEventResponse:
        """
        Seed a workspace from an exported JSON document.

        Appends one WORKSPACE_SNAPSHOT event carrying the validated state.
        """
        result = validate_imported_json(text)
        if not result.is_valid or result.state is None:
            raise InvalidEventError([result.error or "Invalid import"])

        payload = result.state.to_dict()
        payload.pop("workspaceId", None)
        req = AppendEventRequest(
            type=WORKSPACE_SNAPSHOT,
            payload=payload,
            user_id=user_id,
            user_name=user_name,
            base_version=base_version,
        )
        return await self.append(workspace_id, req)

    # -- compaction --

    def schedule_compaction(self, workspace_id: str) -> None:
        """Run the threshold check in the background. Fire and forget."""
        task = asyncio.create_task(self.manager.check_and_create_snapshot(workspace_id))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def drain(self) -> None:
        """Wait for every scheduled compaction. Called at shutdown."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)

    async def create_snapshot(self, workspace_id: str) -> SnapshotResult:
        """Compact now, regardless of the threshold."""
        return await self.manager.create_snapshot(workspace_id)

    async def snapshot_status(self, workspace_id: str) -> SnapshotStatusResponse:
        status = await self.manager.check_needs_snapshot(workspace_id)
        return SnapshotStatusResponse.from_status(status)

    async def list_snapshots(self, workspace_id: str) -> list[SnapshotInfo]:
        snapshots = await self.manager.list_snapshots(workspace_id)
        return [SnapshotInfo.from_snapshot(s) for s in snapshots]

    # -- reads --

    async def load_state(self, workspace_id: str) -> WorkspaceStateResponse:
        """Current state. Storage failures yield an empty workspace."""
        state = await load_workspace_state(self.store, workspace_id, self.manager.config.page_size)
        return WorkspaceStateResponse(
            workspace_id=workspace_id,
            state=state.to_dict(),
            state_hash=hash_state(state),
        )

    async def get_event_log(self, workspace_id: str) -> EventLogResponse:
        """Latest snapshot plus newer events. Storage errors propagate."""
        log = await load_event_log(self.store, workspace_id, self.manager.config.page_size)
        return EventLogResponse.from_event_log(log)
