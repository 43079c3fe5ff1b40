"""
Workspace Kernel — Shared Types

Data classes used across the reducer, snapshot manager, loader and storage.
These are the contracts that bind the kernel together.

All state objects are frozen. The reducer builds new ones; nothing downstream
is allowed to edit a WorkspaceState in place. Every change goes through a new
event.

Wire format: to_dict()/from_dict() use the camelCase keys of the persisted
JSON (event payloads and snapshot state), e.g. folderId, globalTitle, userId.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any

# ---------------------------------------------------------------------------
# Event type registry
# ---------------------------------------------------------------------------

WORKSPACE_CREATED = "WORKSPACE_CREATED"
ITEM_CREATED = "ITEM_CREATED"
ITEM_UPDATED = "ITEM_UPDATED"
ITEM_DELETED = "ITEM_DELETED"
GLOBAL_TITLE_SET = "GLOBAL_TITLE_SET"
GLOBAL_DESCRIPTION_SET = "GLOBAL_DESCRIPTION_SET"
WORKSPACE_SNAPSHOT = "WORKSPACE_SNAPSHOT"
BULK_ITEMS_UPDATED = "BULK_ITEMS_UPDATED"
BULK_ITEMS_CREATED = "BULK_ITEMS_CREATED"
FOLDER_CREATED = "FOLDER_CREATED"
FOLDER_UPDATED = "FOLDER_UPDATED"
FOLDER_DELETED = "FOLDER_DELETED"
ITEM_MOVED_TO_FOLDER = "ITEM_MOVED_TO_FOLDER"
ITEMS_MOVED_TO_FOLDER = "ITEMS_MOVED_TO_FOLDER"
FOLDER_CREATED_WITH_ITEMS = "FOLDER_CREATED_WITH_ITEMS"

EVENT_TYPES: frozenset[str] = frozenset(
    {
        WORKSPACE_CREATED,
        ITEM_CREATED,
        ITEM_UPDATED,
        ITEM_DELETED,
        GLOBAL_TITLE_SET,
        GLOBAL_DESCRIPTION_SET,
        WORKSPACE_SNAPSHOT,
        BULK_ITEMS_UPDATED,
        BULK_ITEMS_CREATED,
        FOLDER_CREATED,
        FOLDER_UPDATED,
        FOLDER_DELETED,
        ITEM_MOVED_TO_FOLDER,
        ITEMS_MOVED_TO_FOLDER,
        FOLDER_CREATED_WITH_ITEMS,
    }
)

ITEM_TYPES: frozenset[str] = frozenset({"note", "pdf", "flashcard", "folder", "youtube", "quiz", "image"})

FOLDER = "folder"

ITEM_SOURCES: frozenset[str] = frozenset({"user", "agent"})


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Layout:
    """Grid placement of an item."""

    x: float
    y: float
    w: float
    h: float

    def to_dict(self) -> dict[str, Any]:
        return {"x": self.x, "y": self.y, "w": self.w, "h": self.h}

    @classmethod
    def from_dict(cls, d: Any) -> Layout | None:
        """
        Read a stored layout.

        Accepts the flat {x, y, w, h} shape and the older responsive shape
        {lg: {...}, xxs: {...}}, which is read as its lg entry.
        Anything else is treated as "no layout".
        """
        if not isinstance(d, dict):
            return None
        if "lg" in d and "x" not in d:
            return cls.from_dict(d.get("lg"))
        try:
            return cls(x=d["x"], y=d["y"], w=d["w"], h=d["h"])
        except KeyError:
            return None


_ITEM_KEYS = {"id", "type", "name", "subtitle", "data", "color", "folderId", "layout", "lastSource"}


@dataclass(frozen=True)
class Item:
    """
    One card on the workspace canvas.

    folder_id is a weak reference: folders do not own their children,
    children point at the folder. Keys this class does not know about are
    kept in `extra` so that stored items survive a snapshot round-trip.
    """

    id: str
    type: str
    name: str = ""
    subtitle: str = ""
    data: dict[str, Any] = field(default_factory=dict)
    color: str | None = None
    folder_id: str | None = None
    layout: Layout | None = None
    last_source: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def is_folder(self) -> bool:
        return self.type == FOLDER

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = dict(self.extra)
        d.update(
            {
                "id": self.id,
                "type": self.type,
                "name": self.name,
                "subtitle": self.subtitle,
                "data": self.data,
            }
        )
        if self.color is not None:
            d["color"] = self.color
        if self.folder_id is not None:
            d["folderId"] = self.folder_id
        if self.layout is not None:
            d["layout"] = self.layout.to_dict()
        if self.last_source is not None:
            d["lastSource"] = self.last_source
        return d

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Item:
        data = d.get("data")
        return cls(
            id=str(d["id"]),
            type=str(d.get("type", "note")),
            name=d.get("name") or "",
            subtitle=d.get("subtitle") or "",
            data=data if isinstance(data, dict) else {},
            color=d.get("color"),
            folder_id=d.get("folderId"),
            layout=Layout.from_dict(d.get("layout")),
            last_source=d.get("lastSource"),
            extra={k: v for k, v in d.items() if k not in _ITEM_KEYS},
        )


@dataclass(frozen=True)
class WorkspaceState:
    """
    The projection of a workspace's event log.

    Never stored on its own: it is always the result of replaying events on
    top of a snapshot (or of an empty state).
    """

    workspace_id: str | None = None
    items: tuple[Item, ...] = ()
    global_title: str = ""
    global_description: str = ""
    items_created: int = 0
    last_action: str | None = None

    def get_item(self, item_id: str) -> Item | None:
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "items": [item.to_dict() for item in self.items],
            "globalTitle": self.global_title,
            "globalDescription": self.global_description,
            "itemsCreated": self.items_created,
        }
        if self.workspace_id is not None:
            d["workspaceId"] = self.workspace_id
        if self.last_action is not None:
            d["lastAction"] = self.last_action
        return d

    @classmethod
    def from_dict(cls, d: dict[str, Any], workspace_id: str | None = None) -> WorkspaceState:
        """
        Build a state from its stored JSON form.

        Items without an id are dropped. The legacy top-level `folders` list
        is ignored; folders are items now.
        """
        raw_items = d.get("items") or []
        items = tuple(Item.from_dict(i) for i in raw_items if isinstance(i, dict) and i.get("id"))
        items_created = d.get("itemsCreated")
        return cls(
            workspace_id=workspace_id if workspace_id is not None else d.get("workspaceId"),
            items=items,
            global_title=d.get("globalTitle") or "",
            global_description=d.get("globalDescription") or "",
            items_created=items_created if isinstance(items_created, int) else 0,
            last_action=d.get("lastAction"),
        )


@dataclass(frozen=True)
class WorkspaceEvent:
    """
    An immutable fact about one mutation of a workspace.

    The reducer reads only `type` and `payload`. `version` is None until the
    event store assigns one at append time.
    """

    type: str
    payload: dict[str, Any]
    timestamp: int  # ms since epoch, informational only
    user_id: str
    id: str
    user_name: str | None = None
    version: int | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "type": self.type,
            "payload": self.payload,
            "timestamp": self.timestamp,
            "userId": self.user_id,
            "id": self.id,
        }
        if self.user_name is not None:
            d["userName"] = self.user_name
        if self.version is not None:
            d["version"] = self.version
        return d

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> WorkspaceEvent:
        return cls(
            type=d["type"],
            payload=d.get("payload") or {},
            timestamp=int(d.get("timestamp", 0)),
            user_id=d.get("userId", ""),
            id=d["id"],
            user_name=d.get("userName") or None,
            version=d.get("version"),
        )


@dataclass(frozen=True)
class Snapshot:
    """
    A compaction checkpoint.

    Invariant: `state` equals replay(all events with version <= `version`).
    """

    workspace_id: str
    version: int
    state: WorkspaceState
    event_count: int
    created_at: str | None = None  # ISO 8601 UTC, set by the store
    id: str | None = None


@dataclass(frozen=True)
class AppendResult:
    """
    Outcome of appending one event.

    On conflict nothing was written and `version` is the current head.
    """

    version: int
    conflict: bool = False


@dataclass
class ValidationReport:
    """Advisory findings from scanning an event list or a state."""

    valid: bool
    errors: list[str] = field(default_factory=list)


@dataclass
class EventLog:
    """Events since the latest snapshot, for clients that replay on their side."""

    workspace_id: str
    events: list[WorkspaceEvent]
    version: int
    snapshot: Snapshot | None = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def now_ms() -> int:
    """Current wall-clock time in milliseconds since the epoch."""
    return int(time.time() * 1000)
