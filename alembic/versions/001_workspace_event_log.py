"""workspace event log, heads and snapshots

Revision ID: 001
Revises:
Create Date: 2026-10-18 09:00:00.000000
"""
from typing import Sequence, Union

from alembic import op


revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # One row per workspace. Appends lock it to allocate the next version.
    op.execute("""
        CREATE TABLE workspace_heads (
            workspace_id TEXT PRIMARY KEY,
            version INTEGER NOT NULL DEFAULT 0,
            updated_at TIMESTAMPTZ DEFAULT now()
        );
    """)

    # Append-only log. Never updated, never deleted by the application.
    op.execute("""
        CREATE TABLE workspace_events (
            id BIGSERIAL PRIMARY KEY,
            workspace_id TEXT NOT NULL,
            event_id TEXT NOT NULL,
            event_type TEXT NOT NULL,
            payload JSONB NOT NULL DEFAULT '{}'::jsonb,
            timestamp BIGINT NOT NULL,
            user_id TEXT NOT NULL,
            user_name TEXT,
            version INTEGER NOT NULL CHECK (version > 0),
            created_at TIMESTAMPTZ DEFAULT now(),
            CONSTRAINT workspace_events_event_id_key UNIQUE (event_id),
            CONSTRAINT workspace_events_workspace_version_key UNIQUE (workspace_id, version)
        );
    """)

    # Compaction checkpoints. state = replay(events with version <= snapshot_version)
    op.execute("""
        CREATE TABLE workspace_snapshots (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            workspace_id TEXT NOT NULL,
            snapshot_version INTEGER NOT NULL,
            state JSONB NOT NULL,
            event_count INTEGER NOT NULL,
            created_at TIMESTAMPTZ DEFAULT now(),
            CONSTRAINT workspace_snapshots_workspace_version_key UNIQUE (workspace_id, snapshot_version)
        );
    """)

    op.execute("""
        CREATE INDEX idx_workspace_snapshots_latest
        ON workspace_snapshots(workspace_id, snapshot_version DESC);
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS workspace_snapshots CASCADE;")
    op.execute("DROP TABLE IF EXISTS workspace_events CASCADE;")
    op.execute("DROP TABLE IF EXISTS workspace_heads CASCADE;")
