"""
Workspace Kernel — Event Payloads

One pydantic record per event type. The persisted log stores payloads as
plain JSON; the reducer turns them into these records through
parse_payload() before applying them, so a malformed payload is caught
here instead of half-applied.

BULK_ITEMS_UPDATED has two shapes. The current writer sends only layout
changes; older logs carry the full items array. They are two records under
one tag, told apart by the presence of `items`.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from engine.kernel import types as t

logger = logging.getLogger(__name__)


class _Payload(BaseModel):
    # Writers add fields over time; unknown keys are tolerated.
    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)


class WorkspaceCreated(_Payload):
    title: str = ""
    description: str = ""


class ItemCreated(_Payload):
    id: str
    item: dict[str, Any]


class ItemUpdated(_Payload):
    id: str
    changes: dict[str, Any] = Field(default_factory=dict)
    source: str | None = None

    @field_validator("source")
    @classmethod
    def _known_source(cls, v: str | None) -> str | None:
        if v is not None and v not in t.ITEM_SOURCES:
            raise ValueError(f"must be one of {', '.join(sorted(t.ITEM_SOURCES))}")
        return v


class ItemDeleted(_Payload):
    id: str


class GlobalTitleSet(_Payload):
    title: str


class GlobalDescriptionSet(_Payload):
    description: str


class WorkspaceSnapshotSeed(_Payload):
    """Full state, used to seed a workspace from an import or a migration."""

    model_config = ConfigDict(extra="allow", frozen=True)

    items: list[dict[str, Any]] = Field(default_factory=list)
    global_title: str = Field(default="", alias="globalTitle")
    global_description: str = Field(default="", alias="globalDescription")
    items_created: int = Field(default=0, alias="itemsCreated")
    last_action: str | None = Field(default=None, alias="lastAction")

    def to_state_dict(self) -> dict[str, Any]:
        return {
            "items": self.items,
            "globalTitle": self.global_title,
            "globalDescription": self.global_description,
            "itemsCreated": self.items_created,
            "lastAction": self.last_action,
        }


class LayoutUpdate(_Payload):
    id: str
    x: float
    y: float
    w: float
    h: float


class BulkLayoutUpdate(_Payload):
    layout_updates: list[LayoutUpdate] = Field(alias="layoutUpdates")
    previous_item_count: int | None = Field(default=None, alias="previousItemCount")


class LegacyBulkItemsReplace(_Payload):
    """Deprecated: replaces the whole items list. Still replayed for old logs."""

    items: list[dict[str, Any]]


class BulkItemsCreated(_Payload):
    items: list[dict[str, Any]]


class FolderCreated(_Payload):
    folder: dict[str, Any] = Field(default_factory=dict)


class FolderUpdated(_Payload):
    id: str = ""
    changes: dict[str, Any] = Field(default_factory=dict)


class FolderDeleted(_Payload):
    id: str


class ItemMovedToFolder(_Payload):
    item_id: str = Field(alias="itemId")
    folder_id: str | None = Field(default=None, alias="folderId")


class ItemsMovedToFolder(_Payload):
    item_ids: list[str] = Field(alias="itemIds")
    folder_id: str | None = Field(default=None, alias="folderId")


class FolderCreatedWithItems(_Payload):
    folder: dict[str, Any]
    item_ids: list[str] = Field(default_factory=list, alias="itemIds")


_PAYLOAD_MODELS: dict[str, type[_Payload]] = {
    t.WORKSPACE_CREATED: WorkspaceCreated,
    t.ITEM_CREATED: ItemCreated,
    t.ITEM_UPDATED: ItemUpdated,
    t.ITEM_DELETED: ItemDeleted,
    t.GLOBAL_TITLE_SET: GlobalTitleSet,
    t.GLOBAL_DESCRIPTION_SET: GlobalDescriptionSet,
    t.WORKSPACE_SNAPSHOT: WorkspaceSnapshotSeed,
    t.BULK_ITEMS_CREATED: BulkItemsCreated,
    t.FOLDER_CREATED: FolderCreated,
    t.FOLDER_UPDATED: FolderUpdated,
    t.FOLDER_DELETED: FolderDeleted,
    t.ITEM_MOVED_TO_FOLDER: ItemMovedToFolder,
    t.ITEMS_MOVED_TO_FOLDER: ItemsMovedToFolder,
    t.FOLDER_CREATED_WITH_ITEMS: FolderCreatedWithItems,
}


def _model_for(event_type: str, payload: dict[str, Any]) -> type[_Payload] | None:
    if event_type == t.BULK_ITEMS_UPDATED:
        return LegacyBulkItemsReplace if payload.get("items") is not None else BulkLayoutUpdate
    return _PAYLOAD_MODELS.get(event_type)


def parse_payload(event_type: str, payload: Any) -> _Payload | None:
    """
    Validate a raw payload into its typed record.

    Returns None for unknown event types and for payloads that do not match
    the shape of their type. Never raises.
    """
    if not isinstance(payload, dict):
        return None
    model = _model_for(event_type, payload)
    if model is None:
        return None

    try:
        return model.model_validate(payload)
    except ValidationError as e:
        logger.debug("payloads: %s payload rejected: %s", event_type, e.errors(include_url=False))
        return None


def validate_payload(event_type: str, payload: Any) -> list[str]:
    """
    Structural check for a payload about to be appended.
    Returns a list of error strings. Empty list = valid.

    Stricter than parse_payload(): writers should not produce payloads the
    reducer would silently skip, so the reasons are spelled out here.
    """
    if event_type not in t.EVENT_TYPES:
        return [f"Unknown event type: {event_type}"]
    if not isinstance(payload, dict):
        return ["Payload must be a non-null object"]

    model = _model_for(event_type, payload)
    if model is None:
        return [f"No payload schema for {event_type}"]

    try:
        model.model_validate(payload)
    except ValidationError as e:
        return [
            f"{event_type}.{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
            for err in e.errors(include_url=False)
        ]
    return []
