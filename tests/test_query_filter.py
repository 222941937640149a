"""Tests for active-folder parsing and the item filter it produces."""

import pytest

from medianest.exceptions import ValidationError
from medianest.models import MediaItem
from medianest.services.query_filter import (
    UNFILTERED,
    FolderFilter,
    Unfiltered,
    apply_item_filter,
    bind_system_folder,
    item_filter_clause,
    parse_active_folder,
)


class TestParseActiveFolder:

    @pytest.mark.parametrize("value", [None, "", "  ", 0, "0", -1, "-1", "all", "ALL"])
    def test_unfiltered_values(self, value):
        assert parse_active_folder(value) == UNFILTERED

    def test_positive_id(self):
        assert parse_active_folder(7) == FolderFilter(7)
        assert parse_active_folder("12") == FolderFilter(12)

    @pytest.mark.parametrize("value", [-2, "-5", "abc", True, 1.5, [3]])
    def test_invalid_values(self, value):
        with pytest.raises(ValidationError) as exc:
            parse_active_folder(value)
        assert exc.value.details["field"] == "media_folder"

    def test_wire_values(self):
        assert Unfiltered().to_wire() == -1
        assert FolderFilter(3).to_wire() == 3


class TestBindSystemFolder:

    def test_system_folder_includes_untagged(self):
        assert bind_system_folder(FolderFilter(4), 4) == FolderFilter(4, include_untagged=True)

    def test_other_folder_untouched(self):
        assert bind_system_folder(FolderFilter(5), 4) == FolderFilter(5)

    def test_unfiltered_untouched(self):
        assert bind_system_folder(UNFILTERED, 4) is UNFILTERED


class TestFilterClause:

    def test_unfiltered_has_no_clause(self):
        assert item_filter_clause(UNFILTERED) is None

    def test_apply_to_query(self, db, make_items, service):
        system_id = next(f.id for f in service.snapshot().flat if f.is_system)
        untagged = make_items(2)
        x = service.create_folder("X").folder
        tagged = make_items(1, folder_id=x.id)

        base = db.query(MediaItem)
        assert {i.id for i in apply_item_filter(base, FolderFilter(x.id)).all()} == set(tagged)
        assert {i.id for i in apply_item_filter(base, FolderFilter(system_id), system_id).all()} == set(untagged)
        assert apply_item_filter(base, UNFILTERED).count() == 3
