"""
Tests for payload parsing and validation.

parse_payload() is what the reducer uses and never raises;
validate_payload() is what writers use and explains every rejection.
"""

import pytest

from engine.kernel import payloads as p


class TestParsePayload:
    def test_typed_record(self):
        record = p.parse_payload("ITEM_MOVED_TO_FOLDER", {"itemId": "a", "folderId": "f"})

        assert isinstance(record, p.ItemMovedToFolder)
        assert record.item_id == "a"
        assert record.folder_id == "f"

    def test_bulk_update_layout_variant(self):
        record = p.parse_payload("BULK_ITEMS_UPDATED", {"layoutUpdates": [{"id": "a", "x": 0, "y": 0, "w": 1, "h": 1}]})
        assert isinstance(record, p.BulkLayoutUpdate)
        assert record.previous_item_count is None

    def test_bulk_update_legacy_variant(self):
        record = p.parse_payload("BULK_ITEMS_UPDATED", {"items": [{"id": "a"}]})
        assert isinstance(record, p.LegacyBulkItemsReplace)

    def test_extra_keys_ignored(self):
        record = p.parse_payload("ITEM_DELETED", {"id": "a", "reason": "cleanup"})
        assert record == p.ItemDeleted(id="a")

    def test_snapshot_seed_defaults(self):
        record = p.parse_payload("WORKSPACE_SNAPSHOT", {"items": []})
        assert record.to_state_dict() == {
            "items": [],
            "globalTitle": "",
            "globalDescription": "",
            "itemsCreated": 0,
            "lastAction": None,
        }

    @pytest.mark.parametrize(
        "event_type,payload",
        [
            ("NOT_A_TYPE", {}),
            ("ITEM_DELETED", None),
            ("ITEM_DELETED", ["a"]),
            ("ITEM_DELETED", {"id": None}),
            ("ITEM_CREATED", {"item": {}}),
        ],
    )
    def test_returns_none(self, event_type, payload):
        assert p.parse_payload(event_type, payload) is None


class TestValidatePayload:
    def test_valid(self):
        assert p.validate_payload("ITEM_UPDATED", {"id": "a", "changes": {"name": "x"}, "source": "user"}) == []

    def test_unknown_type(self):
        assert p.validate_payload("CARD_FLIPPED", {}) == ["Unknown event type: CARD_FLIPPED"]

    def test_non_object(self):
        assert p.validate_payload("ITEM_DELETED", "a") == ["Payload must be a non-null object"]

    def test_field_errors_name_the_field(self):
        errors = p.validate_payload("ITEM_MOVED_TO_FOLDER", {"folderId": "f"})

        assert len(errors) == 1
        assert errors[0].startswith("ITEM_MOVED_TO_FOLDER.itemId:")

    def test_nested_field_errors(self):
        errors = p.validate_payload("BULK_ITEMS_UPDATED", {"layoutUpdates": [{"id": "a", "x": 1, "y": 1, "w": 1}]})
        assert errors == ["BULK_ITEMS_UPDATED.layoutUpdates.0.h: Field required"]

    def test_unknown_source_rejected(self):
        errors = p.validate_payload("ITEM_UPDATED", {"id": "a", "changes": {}, "source": "robot"})

        assert len(errors) == 1
        assert errors[0].startswith("ITEM_UPDATED.source:")
        assert "agent, user" in errors[0]

    def test_missing_source_allowed(self):
        assert p.validate_payload("ITEM_UPDATED", {"id": "a", "changes": {}}) == []
