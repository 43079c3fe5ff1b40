"""
Pytest configuration and fixtures for the workspace backend tests.
"""

from __future__ import annotations

import os

# Set test environment variables before importing config
os.environ.setdefault("TESTING", "true")

import pytest  # noqa: E402

from backend.services.workspace_service import WorkspaceService  # noqa: E402
from engine.kernel.snapshots import SnapshotConfig, SnapshotManager  # noqa: E402
from engine.kernel.store import InMemoryWorkspaceStore  # noqa: E402


@pytest.fixture
def store():
    return InMemoryWorkspaceStore()


@pytest.fixture
def service(store):
    """Service with a small snapshot threshold so compaction is easy to trigger."""
    return WorkspaceService(store, SnapshotManager(store, SnapshotConfig(events_per_snapshot=5)))
