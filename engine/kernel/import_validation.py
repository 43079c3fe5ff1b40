"""
Workspace Kernel — Import Validation

Validates an exported workspace JSON document before it is used to seed a
workspace through a WORKSPACE_SNAPSHOT event.
Validation is structural: the document is rejected at its first bad item.
"""

from __future__ import annotations

import json
from collections import Counter
from dataclasses import dataclass
from typing import Any

from engine.kernel.types import ITEM_TYPES, WorkspaceState


@dataclass
class ImportResult:
    is_valid: bool
    error: str | None = None
    state: WorkspaceState | None = None


def validate_imported_json(text: str) -> ImportResult:
    """
    Parse and validate an exported workspace.

    Requires an object with an `items` array. Titles default to "" and
    itemsCreated to the number of items.
    """
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as e:
        return ImportResult(is_valid=False, error=f"Invalid JSON: {e}")

    if not isinstance(parsed, dict):
        return ImportResult(is_valid=False, error="JSON must be an object")
    if "items" not in parsed:
        return ImportResult(is_valid=False, error="JSON must contain an 'items' array")
    if not isinstance(parsed["items"], list):
        return ImportResult(is_valid=False, error="'items' must be an array")

    seen_ids: set[str] = set()
    for index, item in enumerate(parsed["items"]):
        error = _validate_item(item, index)
        if error:
            return ImportResult(is_valid=False, error=error)
        if item["id"] in seen_ids:
            return ImportResult(is_valid=False, error=f"Item {index + 1}: duplicate id '{item['id']}'")
        seen_ids.add(item["id"])

    title = parsed.get("globalTitle")
    description = parsed.get("globalDescription")
    items_created = parsed.get("itemsCreated")
    state = WorkspaceState.from_dict(
        {
            "items": parsed["items"],
            "globalTitle": title if isinstance(title, str) else "",
            "globalDescription": description if isinstance(description, str) else "",
            "itemsCreated": items_created if _is_int(items_created) else len(parsed["items"]),
        }
    )
    return ImportResult(is_valid=True, state=state)


def import_preview(state: WorkspaceState) -> str:
    """One-line summary shown before an import is confirmed."""
    parts: list[str] = []
    if state.global_title:
        parts.append(f'Title: "{state.global_title}"')

    if state.items:
        counts = Counter(item.type for item in state.items)
        summary = ", ".join(f"{count} {type_}{'s' if count > 1 else ''}" for type_, count in counts.items())
        parts.append(f"Items: {summary}")
    else:
        parts.append("No items")

    return "  ".join(parts)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value: Any) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


def _validate_item(item: Any, index: int) -> str | None:
    n = index + 1
    if not isinstance(item, dict):
        return f"Item {n}: must be an object"
    if not item.get("id") or not isinstance(item["id"], str):
        return f"Item {n}: must have a valid 'id' string"
    if item.get("type") not in ITEM_TYPES:
        return f"Item {n}: must have a valid 'type' ({', '.join(sorted(ITEM_TYPES))})"
    if not item.get("name") or not isinstance(item["name"], str):
        return f"Item {n}: must have a valid 'name' string"
    if not isinstance(item.get("data"), dict):
        return f"Item {n}: must have a valid 'data' object"
    if "subtitle" in item and not isinstance(item["subtitle"], str):
        return f"Item {n}: 'subtitle' must be a string if provided"
    if "color" in item and not isinstance(item["color"], str):
        return f"Item {n}: 'color' must be a string if provided"
    if "layout" in item:
        layout = item["layout"]
        if not isinstance(layout, dict) or not all(_is_number(layout.get(k)) for k in ("x", "y", "w", "h")):
            return f"Item {n}: 'layout' must have numeric x, y, w, h properties if provided"
    return None
