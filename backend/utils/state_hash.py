"""State hashing for client reconciliation."""

import hashlib
import json

from engine.kernel.types import WorkspaceState


def hash_state(state: WorkspaceState) -> str:
    """
    Deterministic hash of a workspace state.

    Computed over the state's JSON form without the workspace id, so a
    client that replayed the same events locally gets the same hash.

    Returns:
        First 16 hex characters of the SHA-256 digest
    """
    d = state.to_dict()
    d.pop("workspaceId", None)
    serialized = json.dumps(d, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(serialized.encode("utf-8")).hexdigest()[:16]
