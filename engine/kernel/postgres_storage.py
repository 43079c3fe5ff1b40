"""
PostgresWorkspaceStore — WorkspaceStore on Postgres via asyncpg.

Uses three tables:
- workspace_heads: one row per workspace holding its current version.
  Appends lock this row, so versions are allocated one writer at a time.
- workspace_events: the append-only log, unique on (workspace_id, version)
  and on event_id.
- workspace_snapshots: compaction checkpoints, unique on
  (workspace_id, snapshot_version).

The pool must be created with init=init_connection so JSON columns come
back as Python objects.
"""

from __future__ import annotations

import json
from typing import Any

import asyncpg

from engine.kernel.store import DEFAULT_SNAPSHOTS_KEPT, StorageError, WorkspaceStore
from engine.kernel.types import AppendResult, Snapshot, WorkspaceEvent, WorkspaceState

_EVENT_ID_CONSTRAINT = "workspace_events_event_id_key"


async def init_connection(conn: asyncpg.Connection) -> None:
    """
    Initialize each new connection.
    Sets up JSON/JSONB codecs so payloads and states are plain dicts.
    """
    for type_name in ("jsonb", "json"):
        await conn.set_type_codec(
            type_name,
            encoder=json.dumps,
            decoder=json.loads,
            schema="pg_catalog",
        )


def _row_to_event(row: asyncpg.Record) -> WorkspaceEvent:
    """Convert a workspace_events row to a WorkspaceEvent."""
    return WorkspaceEvent(
        type=row["event_type"],
        payload=row["payload"],
        timestamp=row["timestamp"],
        user_id=row["user_id"],
        user_name=row["user_name"] or None,
        id=row["event_id"],
        version=row["version"],
    )


def _row_to_snapshot(row: asyncpg.Record) -> Snapshot:
    """Convert a workspace_snapshots row to a Snapshot."""
    workspace_id = str(row["workspace_id"])
    state: Any = row["state"]
    created_at = row["created_at"]
    return Snapshot(
        workspace_id=workspace_id,
        version=row["snapshot_version"],
        state=WorkspaceState.from_dict(state if isinstance(state, dict) else {}, workspace_id=workspace_id),
        event_count=row["event_count"],
        created_at=created_at.isoformat() if created_at is not None else None,
        id=str(row["id"]),
    )


class PostgresWorkspaceStore(WorkspaceStore):
    """Postgres-based storage for workspace event logs and snapshots."""

    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    async def append_event(
        self,
        workspace_id: str,
        event: WorkspaceEvent,
        expected_version: int | None = None,
    ) -> AppendResult:
        """
        Append with the next version, inside one transaction.

        The head row is created on first use from any events already in the
        log, then locked FOR UPDATE. If the unique (workspace_id, version)
        constraint still fires, another writer got there first and the
        append is reported as a conflict.
        """
        async with self.pool.acquire() as conn:
            try:
                async with conn.transaction():
                    await conn.execute(
                        """
                        INSERT INTO workspace_heads (workspace_id, version)
                        SELECT $1::text, COALESCE(MAX(version), 0)
                        FROM workspace_events WHERE workspace_id = $1
                        ON CONFLICT (workspace_id) DO NOTHING
                        """,
                        workspace_id,
                    )
                    current = await conn.fetchval(
                        "SELECT version FROM workspace_heads WHERE workspace_id = $1 FOR UPDATE",
                        workspace_id,
                    )
                    if expected_version is not None and expected_version != current:
                        return AppendResult(version=current, conflict=True)

                    version = current + 1
                    await conn.execute(
                        """
                        INSERT INTO workspace_events (
                            workspace_id, event_id, event_type, payload,
                            timestamp, user_id, user_name, version
                        ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8)
                        """,
                        workspace_id,
                        event.id,
                        event.type,
                        event.payload,
                        event.timestamp,
                        event.user_id,
                        event.user_name,
                        version,
                    )
                    await conn.execute(
                        "UPDATE workspace_heads SET version = $2, updated_at = now() WHERE workspace_id = $1",
                        workspace_id,
                        version,
                    )
                    return AppendResult(version=version)
            except asyncpg.UniqueViolationError as e:
                if e.constraint_name == _EVENT_ID_CONSTRAINT:
                    raise StorageError(f"Duplicate event id {event.id}") from e
                current = await conn.fetchval(
                    "SELECT COALESCE(MAX(version), 0) FROM workspace_events WHERE workspace_id = $1",
                    workspace_id,
                )
                return AppendResult(version=current, conflict=True)

    async def list_events(
        self,
        workspace_id: str,
        after_version: int = 0,
        limit: int | None = None,
    ) -> list[WorkspaceEvent]:
        """Fetch events newer than after_version, ascending. limit=None means all."""
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                """
                SELECT event_id, event_type, payload, timestamp, user_id, user_name, version
                FROM workspace_events
                WHERE workspace_id = $1 AND version > $2
                ORDER BY version ASC
                LIMIT $3
                """,
                workspace_id,
                after_version,
                limit,
            )
            return [_row_to_event(row) for row in rows]

    async def get_current_version(self, workspace_id: str) -> int:
        async with self.pool.acquire() as conn:
            version = await conn.fetchval(
                "SELECT COALESCE(MAX(version), 0) FROM workspace_events WHERE workspace_id = $1",
                workspace_id,
            )
            return version or 0

    async def get_latest_snapshot(self, workspace_id: str) -> Snapshot | None:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                """
                SELECT id, workspace_id, snapshot_version, state, event_count, created_at
                FROM workspace_snapshots
                WHERE workspace_id = $1
                ORDER BY snapshot_version DESC
                LIMIT 1
                """,
                workspace_id,
            )
            return _row_to_snapshot(row) if row else None

    async def put_snapshot(self, workspace_id: str, snapshot: Snapshot) -> str:
        """Write a snapshot. A second write at the same version replaces the first."""
        async with self.pool.acquire() as conn:
            snapshot_id = await conn.fetchval(
                """
                INSERT INTO workspace_snapshots (workspace_id, snapshot_version, state, event_count)
                VALUES ($1, $2, $3, $4)
                ON CONFLICT (workspace_id, snapshot_version)
                DO UPDATE SET state = EXCLUDED.state, event_count = EXCLUDED.event_count, created_at = now()
                RETURNING id
                """,
                workspace_id,
                snapshot.version,
                snapshot.state.to_dict(),
                snapshot.event_count,
            )
            if snapshot_id is None:
                raise StorageError(f"Snapshot write for workspace {workspace_id} returned no id")
            return str(snapshot_id)

    async def prune_snapshots(self, workspace_id: str, keep: int = DEFAULT_SNAPSHOTS_KEPT) -> int:
        async with self.pool.acquire() as conn:
            result = await conn.execute(
                """
                DELETE FROM workspace_snapshots
                WHERE workspace_id = $1
                  AND id NOT IN (
                      SELECT id FROM workspace_snapshots
                      WHERE workspace_id = $1
                      ORDER BY snapshot_version DESC
                      LIMIT $2
                  )
                """,
                workspace_id,
                keep,
            )
            # asyncpg returns the command tag, e.g. "DELETE 2"
            return int(result.split()[-1])

    async def list_snapshots(self, workspace_id: str) -> list[Snapshot]:
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                """
                SELECT id, workspace_id, snapshot_version, state, event_count, created_at
                FROM workspace_snapshots
                WHERE workspace_id = $1
                ORDER BY snapshot_version DESC
                """,
                workspace_id,
            )
            return [_row_to_snapshot(row) for row in rows]

    async def close(self) -> None:
        """Close the connection pool."""
        await self.pool.close()
