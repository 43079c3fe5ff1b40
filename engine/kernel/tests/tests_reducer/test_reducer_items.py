"""
Workspace Reducer -- Item Lifecycle Tests

Create, update and delete of individual items, plus the global title and
description events.

Covers:
  - ITEM_CREATED appends in order, keeps unknown keys
  - ITEM_CREATED with an id that already exists is a no-op
  - ITEM_UPDATED merges changes, never changes the id, tracks lastSource
  - ITEM_UPDATED / ITEM_DELETED for a missing item are no-ops
  - Deleting an item keeps the relative order of the rest
  - Deleting a folder clears its children's folderId in the same step
  - WORKSPACE_CREATED, GLOBAL_TITLE_SET, GLOBAL_DESCRIPTION_SET
  - WORKSPACE_SNAPSHOT seeds never hold the same id twice
  - The input state is never modified
"""

from engine.kernel.events import make_event
from engine.kernel.reducer import apply_event, empty_state, replay
from engine.kernel.types import Layout, WorkspaceState

# ============================================================================
# Helpers
# ============================================================================


def note(item_id, name="Note", **extra):
    return {"id": item_id, "type": "note", "name": name, "subtitle": "", "data": {}, **extra}


def folder(item_id, name="Folder"):
    return {"id": item_id, "type": "folder", "name": name, "subtitle": "", "data": {}}


def created(version, item):
    return make_event(version, "ITEM_CREATED", {"id": item["id"], "item": item})


def ids(state):
    return [item.id for item in state.items]


# ============================================================================
# Create
# ============================================================================


class TestItemCreated:
    def test_appends_item(self):
        state = apply_event(empty_state("ws_1"), created(1, note("a", "Alpha")))

        assert ids(state) == ["a"]
        assert state.items[0].name == "Alpha"
        assert state.items[0].type == "note"
        assert state.workspace_id == "ws_1"

    def test_preserves_insertion_order(self):
        state = replay([created(1, note("a")), created(2, note("b")), created(3, note("c"))])
        assert ids(state) == ["a", "b", "c"]

    def test_duplicate_id_is_noop(self):
        state = replay([created(1, note("a", "First")), created(2, note("a", "Second"))])

        assert ids(state) == ["a"]
        assert state.items[0].name == "First"

    def test_item_id_falls_back_to_payload_id(self):
        event = make_event(1, "ITEM_CREATED", {"id": "a", "item": {"type": "note", "name": "No id"}})
        state = apply_event(empty_state(), event)
        assert ids(state) == ["a"]

    def test_unknown_keys_survive(self):
        state = apply_event(empty_state(), created(1, note("a", pinned=True)))

        assert state.items[0].extra == {"pinned": True}
        assert state.items[0].to_dict()["pinned"] is True

    def test_unknown_item_type_is_kept(self):
        item = {"id": "a", "type": "whiteboard", "name": "Board", "data": {}}
        state = apply_event(empty_state(), created(1, item))
        assert state.items[0].type == "whiteboard"

    def test_responsive_layout_read_as_lg(self):
        layout = {"lg": {"x": 1, "y": 2, "w": 3, "h": 4}, "xxs": {"x": 0, "y": 0, "w": 1, "h": 1}}
        state = apply_event(empty_state(), created(1, note("a", layout=layout)))
        assert state.items[0].layout == Layout(x=1, y=2, w=3, h=4)

    def test_does_not_count_items_created(self):
        state = replay([created(1, note("a")), created(2, note("b"))])
        assert state.items_created == 0

    def test_input_state_untouched(self):
        before = replay([created(1, note("a"))])
        snapshot = before.to_dict()

        apply_event(before, created(2, note("b")))

        assert before.to_dict() == snapshot


# ============================================================================
# Update
# ============================================================================


class TestItemUpdated:
    def test_merges_changes(self):
        events = [
            created(1, note("a", "Old", color="red")),
            make_event(2, "ITEM_UPDATED", {"id": "a", "changes": {"name": "New", "data": {"text": "hi"}}}),
        ]
        item = replay(events).get_item("a")

        assert item.name == "New"
        assert item.data == {"text": "hi"}
        assert item.color == "red"

    def test_never_changes_id(self):
        events = [
            created(1, note("a")),
            make_event(2, "ITEM_UPDATED", {"id": "a", "changes": {"id": "b", "name": "Renamed"}}),
        ]
        state = replay(events)

        assert ids(state) == ["a"]
        assert state.items[0].name == "Renamed"

    def test_none_clears_field(self):
        events = [
            created(1, note("a", color="red")),
            make_event(2, "ITEM_UPDATED", {"id": "a", "changes": {"color": None}}),
        ]
        assert replay(events).get_item("a").color is None

    def test_sets_last_source(self):
        events = [
            created(1, note("a")),
            make_event(2, "ITEM_UPDATED", {"id": "a", "changes": {"name": "x"}, "source": "agent"}),
        ]
        assert replay(events).get_item("a").last_source == "agent"

    def test_update_without_source_clears_last_source(self):
        events = [
            created(1, note("a")),
            make_event(2, "ITEM_UPDATED", {"id": "a", "changes": {}, "source": "agent"}),
            make_event(3, "ITEM_UPDATED", {"id": "a", "changes": {"name": "y"}}),
        ]
        assert replay(events).get_item("a").last_source is None

    def test_update_keeps_position(self):
        events = [
            created(1, note("a")),
            created(2, note("b")),
            make_event(3, "ITEM_UPDATED", {"id": "a", "changes": {"name": "first"}}),
        ]
        assert ids(replay(events)) == ["a", "b"]

    def test_missing_item_is_noop(self):
        base = replay([created(1, note("a"))])
        state = apply_event(base, make_event(2, "ITEM_UPDATED", {"id": "ghost", "changes": {"name": "x"}}))
        assert state == base


# ============================================================================
# Delete
# ============================================================================


class TestItemDeleted:
    def test_removes_item(self):
        events = [created(1, note("a")), created(2, note("b")), make_event(3, "ITEM_DELETED", {"id": "a"})]
        assert ids(replay(events)) == ["b"]

    def test_order_kept_after_delete_and_create(self):
        events = [
            created(1, note("a")),
            created(2, note("b")),
            make_event(3, "ITEM_DELETED", {"id": "a"}),
            created(4, note("c")),
        ]
        assert ids(replay(events)) == ["b", "c"]

    def test_missing_item_is_noop(self):
        base = replay([created(1, note("a"))])
        assert apply_event(base, make_event(2, "ITEM_DELETED", {"id": "ghost"})) == base

    def test_deleted_then_updated_stays_deleted(self):
        events = [
            created(1, note("a")),
            make_event(2, "ITEM_DELETED", {"id": "a"}),
            make_event(3, "ITEM_UPDATED", {"id": "a", "changes": {"name": "back?"}}),
        ]
        assert replay(events).items == ()

    def test_deleting_folder_releases_children(self):
        events = [
            created(1, folder("f")),
            created(2, note("a", folderId="f")),
            created(3, note("b", folderId="f")),
            created(4, note("c")),
            make_event(5, "ITEM_DELETED", {"id": "f"}),
        ]
        state = replay(events)

        assert ids(state) == ["a", "b", "c"]
        assert all(item.folder_id is None for item in state.items)

    def test_deleting_non_folder_keeps_references(self):
        # Only folder deletes cascade; a note with the same id as a
        # dangling folderId does not.
        events = [
            created(1, note("x")),
            created(2, note("a", folderId="x")),
            make_event(3, "ITEM_DELETED", {"id": "x"}),
        ]
        assert replay(events).get_item("a").folder_id == "x"


# ============================================================================
# Workspace-level fields
# ============================================================================


class TestGlobalFields:
    def test_workspace_created(self):
        event = make_event(1, "WORKSPACE_CREATED", {"title": "Biology", "description": "Midterm prep"})
        state = apply_event(empty_state(), event)

        assert state.global_title == "Biology"
        assert state.global_description == "Midterm prep"

    def test_title_and_description_set(self):
        events = [
            make_event(1, "WORKSPACE_CREATED", {"title": "Old", "description": "Old desc"}),
            make_event(2, "GLOBAL_TITLE_SET", {"title": "New"}),
            make_event(3, "GLOBAL_DESCRIPTION_SET", {"description": "New desc"}),
        ]
        state = replay(events)

        assert state.global_title == "New"
        assert state.global_description == "New desc"

    def test_title_set_leaves_items_alone(self):
        base = replay([created(1, note("a"))])
        state = apply_event(base, make_event(2, "GLOBAL_TITLE_SET", {"title": "T"}))
        assert state.items == base.items

    def test_workspace_snapshot_replaces_state(self):
        seed = {
            "items": [note("s1"), note("s2")],
            "globalTitle": "Imported",
            "globalDescription": "From file",
            "itemsCreated": 2,
        }
        events = [created(1, note("a")), make_event(2, "WORKSPACE_SNAPSHOT", seed)]
        state = replay(events, "ws_9")

        assert ids(state) == ["s1", "s2"]
        assert state.global_title == "Imported"
        assert state.items_created == 2
        assert state.workspace_id == "ws_9"

    def test_workspace_snapshot_keeps_first_of_duplicate_ids(self):
        seed = {"items": [note("s1", "First"), note("s2"), note("s1", "Second")]}
        state = replay([make_event(1, "WORKSPACE_SNAPSHOT", seed)])

        assert ids(state) == ["s1", "s2"]
        assert state.get_item("s1").name == "First"

    def test_empty_state_is_equal_every_time(self):
        assert empty_state("ws") == empty_state("ws")
        assert empty_state("ws") == WorkspaceState(workspace_id="ws")
