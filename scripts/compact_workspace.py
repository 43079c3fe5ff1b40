#!/usr/bin/env python3
"""
Inspect and compact one workspace's event log.

Usage:
    python scripts/compact_workspace.py status <workspace_id>
    python scripts/compact_workspace.py compact <workspace_id>
    python scripts/compact_workspace.py verify <workspace_id>
    python scripts/compact_workspace.py history <workspace_id>

Requires DATABASE_URL.
"""

import argparse
import asyncio
import sys

# Add project root to path
sys.path.insert(0, ".")

from backend import runtime
from backend.services.workspace_service import WorkspaceService


async def _status(service: WorkspaceService, workspace_id: str) -> int:
    status = await service.snapshot_status(workspace_id)
    print(f"Workspace:        {workspace_id}")
    print(f"Current version:  {status.current_version}")
    print(f"Last snapshot:    v{status.last_snapshot_version}")
    print(f"Since snapshot:   {status.events_since_snapshot}")
    print(f"Needs snapshot:   {'yes' if status.needs_snapshot else 'no'}")
    return 0


async def _compact(service: WorkspaceService, workspace_id: str) -> int:
    result = await service.create_snapshot(workspace_id)
    if not result.success:
        print(f"Compaction failed: {result.error}")
        return 1
    print(f"Snapshot at v{result.version}")
    return 0


async def _verify(service: WorkspaceService, workspace_id: str) -> int:
    ok, problems = await service.manager.verify_snapshot(workspace_id)
    if ok:
        print("Latest snapshot matches event replay")
        return 0
    for problem in problems:
        print(f"  ✗ {problem}")
    return 1


async def _history(service: WorkspaceService, workspace_id: str) -> int:
    snapshots = await service.list_snapshots(workspace_id)
    if not snapshots:
        print("No snapshots")
    for s in snapshots:
        print(f"v{s.version:<8} events={s.event_count:<8} {s.created_at or ''}")
    return 0


COMMANDS = {
    "status": _status,
    "compact": _compact,
    "verify": _verify,
    "history": _history,
}


async def run(command: str, workspace_id: str) -> int:
    service = await runtime.startup()
    try:
        return await COMMANDS[command](service, workspace_id)
    finally:
        await runtime.shutdown(service)


def main():
    parser = argparse.ArgumentParser(description="Inspect and compact a workspace event log")
    parser.add_argument("command", choices=sorted(COMMANDS), help="What to do")
    parser.add_argument("workspace_id", help="Workspace to operate on")
    args = parser.parse_args()

    sys.exit(asyncio.run(run(args.command, args.workspace_id)))


if __name__ == "__main__":
    main()
