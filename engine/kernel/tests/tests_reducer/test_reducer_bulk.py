"""
Workspace Reducer -- Bulk Event Tests

BULK_ITEMS_CREATED appends many items at once. BULK_ITEMS_UPDATED has two
shapes: a list of layout changes (current writers) and a full items array
that replaces everything (older logs).
"""

from engine.kernel.events import make_event
from engine.kernel.reducer import apply_event, replay
from engine.kernel.types import Layout

# ============================================================================
# Helpers
# ============================================================================


def note(item_id, **extra):
    return {"id": item_id, "type": "note", "name": item_id, "subtitle": "", "data": {}, **extra}


def bulk_created(version, *items):
    return make_event(version, "BULK_ITEMS_CREATED", {"items": list(items)})


def ids(state):
    return [item.id for item in state.items]


# ============================================================================
# BULK_ITEMS_CREATED
# ============================================================================


class TestBulkItemsCreated:
    def test_appends_in_order(self):
        state = apply_event(replay([bulk_created(1, note("a"))]), bulk_created(2, note("b"), note("c")))
        assert ids(state) == ["a", "b", "c"]

    def test_skips_existing_ids(self):
        state = replay([bulk_created(1, note("a")), bulk_created(2, note("a"), note("b"))])
        assert ids(state) == ["a", "b"]

    def test_never_introduces_same_id_twice(self):
        state = apply_event(replay([]), bulk_created(1, note("a"), note("a"), note("b")))
        assert ids(state) == ["a", "b"]

    def test_items_without_id_are_dropped(self):
        state = apply_event(replay([]), bulk_created(1, {"type": "note", "name": "anon"}, note("b")))
        assert ids(state) == ["b"]


# ============================================================================
# BULK_ITEMS_UPDATED — layout form
# ============================================================================


class TestBulkLayoutUpdate:
    def test_updates_listed_layouts(self):
        base = replay([bulk_created(1, note("a"), note("b", layout={"x": 0, "y": 0, "w": 1, "h": 1}))])
        event = make_event(
            2,
            "BULK_ITEMS_UPDATED",
            {"layoutUpdates": [{"id": "a", "x": 2, "y": 3, "w": 4, "h": 5}], "previousItemCount": 2},
        )
        state = apply_event(base, event)

        assert state.get_item("a").layout == Layout(x=2, y=3, w=4, h=5)
        assert state.get_item("b").layout == Layout(x=0, y=0, w=1, h=1)
        assert ids(state) == ["a", "b"]

    def test_unknown_ids_ignored(self):
        base = replay([bulk_created(1, note("a"))])
        event = make_event(2, "BULK_ITEMS_UPDATED", {"layoutUpdates": [{"id": "ghost", "x": 1, "y": 1, "w": 1, "h": 1}]})
        assert ids(apply_event(base, event)) == ["a"]

    def test_empty_updates_is_noop(self):
        base = replay([bulk_created(1, note("a"))])
        assert apply_event(base, make_event(2, "BULK_ITEMS_UPDATED", {"layoutUpdates": []})) == base

    def test_missing_both_fields_is_noop(self):
        base = replay([bulk_created(1, note("a"))])
        assert apply_event(base, make_event(2, "BULK_ITEMS_UPDATED", {"previousItemCount": 1})) == base


# ============================================================================
# BULK_ITEMS_UPDATED — legacy full replace
# ============================================================================


class TestLegacyBulkReplace:
    def test_replaces_all_items(self):
        base = replay([bulk_created(1, note("a"), note("b"))])
        state = apply_event(base, make_event(2, "BULK_ITEMS_UPDATED", {"items": [note("c"), note("a")]}))
        assert ids(state) == ["c", "a"]

    def test_keeps_global_fields(self):
        base = replay([make_event(1, "GLOBAL_TITLE_SET", {"title": "Kept"}), bulk_created(2, note("a"))])
        state = apply_event(base, make_event(3, "BULK_ITEMS_UPDATED", {"items": []}))

        assert state.items == ()
        assert state.global_title == "Kept"

    def test_dedupes_replacement(self):
        state = apply_event(replay([]), make_event(1, "BULK_ITEMS_UPDATED", {"items": [note("a"), note("a")]}))
        assert ids(state) == ["a"]

    def test_items_wins_over_layout_updates(self):
        payload = {"items": [note("z")], "layoutUpdates": [{"id": "z", "x": 9, "y": 9, "w": 9, "h": 9}]}
        state = apply_event(replay([bulk_created(1, note("a"))]), make_event(2, "BULK_ITEMS_UPDATED", payload))

        assert ids(state) == ["z"]
        assert state.get_item("z").layout is None
