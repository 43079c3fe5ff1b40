"""
Workspace Kernel — Reducer

Pure function: (state, event) → state
No side effects. No IO. Deterministic.

Given the same sequence of events, produces the same state every time.

The reducer is total. Unknown event types, malformed payloads and events
about items that no longer exist all leave the state unchanged: the log is
history, and history written by older or newer writers still has to replay.
"""

from __future__ import annotations

import dataclasses
import logging
import time
from collections.abc import Callable, Iterable
from typing import Any

from engine.kernel import payloads as p
from engine.kernel import types as t
from engine.kernel.types import Item, ValidationReport, WorkspaceEvent, WorkspaceState

logger = logging.getLogger(__name__)

# Replays slower than this (or longer than _SLOW_REPLAY_EVENTS) are logged.
_SLOW_REPLAY_MS = 50.0
_SLOW_REPLAY_EVENTS = 100

# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def empty_state(workspace_id: str | None = None) -> WorkspaceState:
    """The state of a workspace with zero events."""
    return WorkspaceState(workspace_id=workspace_id)


def apply_event(state: WorkspaceState, event: WorkspaceEvent) -> WorkspaceState:
    """
    Apply one event to the current state and return the next state.

    The input state is never modified. Events the reducer cannot apply
    return the input state as-is.
    """
    handler = _HANDLERS.get(event.type)
    if handler is None:
        # Forward compatibility: a newer writer may know types we don't.
        logger.debug("reducer: ignoring unknown event type %s (id=%s)", event.type, event.id)
        return state

    payload = p.parse_payload(event.type, event.payload)
    if payload is None:
        logger.debug("reducer: ignoring malformed %s payload (id=%s)", event.type, event.id)
        return state

    try:
        return handler(state, payload)
    except (KeyError, TypeError, ValueError):
        logger.debug("reducer: %s (id=%s) could not be applied", event.type, event.id, exc_info=True)
        return state


def replay(
    events: Iterable[WorkspaceEvent],
    workspace_id: str | None = None,
    base_state: WorkspaceState | None = None,
) -> WorkspaceState:
    """
    Rebuild state by folding apply_event over the events.

    Starts from base_state, or from an empty state tagged with workspace_id.
    replay(events) == apply(apply(apply(empty(), e1), e2), e3)...

    Order comes from `version` when every event carries one (stable sort);
    otherwise the given order is kept. Timestamps never decide order.
    """
    started = time.perf_counter()
    ordered = _in_log_order(events)

    state = base_state if base_state is not None else empty_state(workspace_id)
    for event in ordered:
        state = apply_event(state, event)

    elapsed_ms = (time.perf_counter() - started) * 1000
    if elapsed_ms > _SLOW_REPLAY_MS or len(ordered) > _SLOW_REPLAY_EVENTS:
        logger.debug("reducer: replayed %d events in %.1fms", len(ordered), elapsed_ms)
    return state


def validate_events(events: list[WorkspaceEvent]) -> ValidationReport:
    """
    Scan an event list for ordering and identity anomalies.

    Advisory only: replay() still processes a list that fails here.
    Reports timestamps that go backwards, duplicate event ids, and
    versions that go backwards or skip numbers.
    """
    errors: list[str] = []

    for i in range(1, len(events)):
        if events[i].timestamp < events[i - 1].timestamp:
            errors.append(f"Event {i} has timestamp before event {i - 1}")

    seen: set[str] = set()
    for event in events:
        if event.id in seen:
            errors.append(f"Duplicate event ID: {event.id}")
        seen.add(event.id)

    prev_version: int | None = None
    for i, event in enumerate(events):
        if event.version is None:
            continue
        if prev_version is not None:
            if event.version <= prev_version:
                errors.append(f"Event {i} has version {event.version}, not after {prev_version}")
            elif event.version != prev_version + 1:
                errors.append(f"Version gap between {prev_version} and {event.version}")
        prev_version = event.version

    return ValidationReport(valid=not errors, errors=errors)


def validate_state(state: WorkspaceState) -> ValidationReport:
    """
    Check the item invariants of a state.

    Reports duplicate item ids and folder_id values that do not point at an
    existing folder item. Advisory, like validate_events().
    """
    errors: list[str] = []
    folder_ids = {item.id for item in state.items if item.is_folder}

    seen: set[str] = set()
    for item in state.items:
        if item.id in seen:
            errors.append(f"Duplicate item ID: {item.id}")
        seen.add(item.id)
        if item.folder_id is not None and item.folder_id not in folder_ids:
            errors.append(f"Item {item.id} references missing folder {item.folder_id}")

    return ValidationReport(valid=not errors, errors=errors)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _in_log_order(events: Iterable[WorkspaceEvent]) -> list[WorkspaceEvent]:
    ordered = list(events)
    if ordered and all(e.version is not None for e in ordered):
        ordered.sort(key=lambda e: e.version)
    return ordered


def _with_items(state: WorkspaceState, items: Iterable[Item]) -> WorkspaceState:
    return dataclasses.replace(state, items=tuple(items))


def _item_from_payload(raw: dict[str, Any], fallback_id: str | None = None) -> Item | None:
    if not raw.get("id"):
        if not fallback_id:
            return None
        raw = {**raw, "id": fallback_id}
    return Item.from_dict(raw)


def _append_new(state: WorkspaceState, new_items: Iterable[Item]) -> WorkspaceState:
    """Append items whose ids are not taken yet, in order."""
    taken = {item.id for item in state.items}
    added: list[Item] = []
    for item in new_items:
        if item.id in taken:
            logger.debug("reducer: item id %s already exists, not created again", item.id)
            continue
        taken.add(item.id)
        added.append(item)
    if not added:
        return state
    return _with_items(state, (*state.items, *added))


def _clear_folder_refs(items: Iterable[Item], folder_id: str) -> list[Item]:
    return [dataclasses.replace(item, folder_id=None) if item.folder_id == folder_id else item for item in items]


def _move(items: Iterable[Item], ids: set[str], folder_id: str | None) -> list[Item]:
    # A move always drops the layout so the item is placed fresh in its new context.
    return [dataclasses.replace(item, folder_id=folder_id, layout=None) if item.id in ids else item for item in items]


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


def _handle_workspace_created(state: WorkspaceState, payload: p.WorkspaceCreated) -> WorkspaceState:
    return dataclasses.replace(state, global_title=payload.title, global_description=payload.description)


def _handle_item_created(state: WorkspaceState, payload: p.ItemCreated) -> WorkspaceState:
    item = _item_from_payload(payload.item, fallback_id=payload.id)
    if item is None:
        return state
    return _append_new(state, [item])


def _handle_bulk_items_created(state: WorkspaceState, payload: p.BulkItemsCreated) -> WorkspaceState:
    items = [item for item in (_item_from_payload(raw) for raw in payload.items) if item is not None]
    return _append_new(state, items)


def _handle_item_updated(state: WorkspaceState, payload: p.ItemUpdated) -> WorkspaceState:
    target = state.get_item(payload.id)
    if target is None:
        # Stale: the item was deleted after this update was issued.
        return state

    merged = target.to_dict()
    for key, value in payload.changes.items():
        if key == "id":
            continue
        if value is None:
            merged.pop(key, None)
        else:
            merged[key] = value
    if payload.source is None:
        merged.pop("lastSource", None)
    else:
        merged["lastSource"] = payload.source

    updated = Item.from_dict(merged)
    return _with_items(state, (updated if item.id == payload.id else item for item in state.items))


def _handle_item_deleted(state: WorkspaceState, payload: p.ItemDeleted) -> WorkspaceState:
    target = state.get_item(payload.id)
    if target is None:
        return state

    remaining = [item for item in state.items if item.id != payload.id]
    if target.is_folder:
        # Children survive; they only lose their pointer. Same step as the delete.
        remaining = _clear_folder_refs(remaining, payload.id)
    return _with_items(state, remaining)


def _handle_global_title_set(state: WorkspaceState, payload: p.GlobalTitleSet) -> WorkspaceState:
    return dataclasses.replace(state, global_title=payload.title)


def _handle_global_description_set(state: WorkspaceState, payload: p.GlobalDescriptionSet) -> WorkspaceState:
    return dataclasses.replace(state, global_description=payload.description)


def _handle_workspace_snapshot(state: WorkspaceState, payload: p.WorkspaceSnapshotSeed) -> WorkspaceState:
    # Import / migration seed: replaces everything except the workspace id.
    seeded = WorkspaceState.from_dict(payload.to_state_dict(), workspace_id=state.workspace_id)
    return _append_new(_with_items(seeded, ()), seeded.items)


def _handle_bulk_items_updated(
    state: WorkspaceState,
    payload: p.BulkLayoutUpdate | p.LegacyBulkItemsReplace,
) -> WorkspaceState:
    if isinstance(payload, p.LegacyBulkItemsReplace):
        items = (_item_from_payload(raw) for raw in payload.items)
        return _append_new(_with_items(state, ()), (item for item in items if item is not None))

    updates = {u.id: u for u in payload.layout_updates}
    if not updates:
        return state

    items: list[Item] = []
    for item in state.items:
        update = updates.get(item.id)
        if update is None:
            items.append(item)
        else:
            items.append(dataclasses.replace(item, layout=t.Layout(x=update.x, y=update.y, w=update.w, h=update.h)))
    return _with_items(state, items)


def _handle_folder_noop(state: WorkspaceState, payload: Any) -> WorkspaceState:
    # Deprecated: folders are items of type "folder" now.
    return state


def _handle_folder_deleted(state: WorkspaceState, payload: p.FolderDeleted) -> WorkspaceState:
    # Deprecated, but old logs still rely on it to release the folder's children.
    if not any(item.folder_id == payload.id for item in state.items):
        return state
    return _with_items(state, _clear_folder_refs(state.items, payload.id))


def _handle_item_moved_to_folder(state: WorkspaceState, payload: p.ItemMovedToFolder) -> WorkspaceState:
    if state.get_item(payload.item_id) is None:
        return state
    return _with_items(state, _move(state.items, {payload.item_id}, payload.folder_id))


def _handle_items_moved_to_folder(state: WorkspaceState, payload: p.ItemsMovedToFolder) -> WorkspaceState:
    ids = set(payload.item_ids)
    if not any(item.id in ids for item in state.items):
        return state
    return _with_items(state, _move(state.items, ids, payload.folder_id))


def _handle_folder_created_with_items(state: WorkspaceState, payload: p.FolderCreatedWithItems) -> WorkspaceState:
    folder = _item_from_payload(payload.folder)
    if folder is None:
        return state

    ids = set(payload.item_ids) - {folder.id}
    moved = _with_items(state, _move(state.items, ids, folder.id))
    return _append_new(moved, [folder])


_HANDLERS: dict[str, Callable[[WorkspaceState, Any], WorkspaceState]] = {
    t.WORKSPACE_CREATED: _handle_workspace_created,
    t.ITEM_CREATED: _handle_item_created,
    t.ITEM_UPDATED: _handle_item_updated,
    t.ITEM_DELETED: _handle_item_deleted,
    t.GLOBAL_TITLE_SET: _handle_global_title_set,
    t.GLOBAL_DESCRIPTION_SET: _handle_global_description_set,
    t.WORKSPACE_SNAPSHOT: _handle_workspace_snapshot,
    t.BULK_ITEMS_UPDATED: _handle_bulk_items_updated,
    t.BULK_ITEMS_CREATED: _handle_bulk_items_created,
    t.FOLDER_CREATED: _handle_folder_noop,
    t.FOLDER_UPDATED: _handle_folder_noop,
    t.FOLDER_DELETED: _handle_folder_deleted,
    t.ITEM_MOVED_TO_FOLDER: _handle_item_moved_to_folder,
    t.ITEMS_MOVED_TO_FOLDER: _handle_items_moved_to_folder,
    t.FOLDER_CREATED_WITH_ITEMS: _handle_folder_created_with_items,
}
