"""
Process lifecycle for the workspace backend.

Handles startup and shutdown logic:
- Configure logging
- Initialize database pool and the workspace service
- Drain pending compactions and close the pool on shutdown
"""

from __future__ import annotations

import logging

from backend import config, db
from backend.services.workspace_service import WorkspaceService
from engine.kernel.postgres_storage import PostgresWorkspaceStore
from engine.kernel.snapshots import SnapshotConfig, SnapshotManager

logger = logging.getLogger(__name__)


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(
        level=(level or config.settings.LOG_LEVEL).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def snapshot_config() -> SnapshotConfig:
    return SnapshotConfig(
        events_per_snapshot=config.settings.EVENTS_PER_SNAPSHOT,
        max_snapshots_per_workspace=config.settings.MAX_SNAPSHOTS_PER_WORKSPACE,
        page_size=config.settings.EVENT_PAGE_SIZE,
    )


async def startup() -> WorkspaceService:
    configure_logging()
    pool = await db.init_pool()
    logger.info("runtime: database pool initialized (%s)", config.settings.ENVIRONMENT)

    store = PostgresWorkspaceStore(pool)
    return WorkspaceService(store, SnapshotManager(store, snapshot_config()))


async def shutdown(service: WorkspaceService | None) -> None:
    if service is not None:
        await service.drain()
    await db.close_pool()
    logger.info("runtime: database pool closed")
