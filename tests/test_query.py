"""Tests for the column/row filtering utility."""
import pytest
from pydantic import ValidationError

from niri_mcp.query import QueryOptions, RowFilter, filter_columns, filter_rows, query

WINDOWS = [
    {"id": 1, "title": "Firefox", "app_id": "firefox", "is_floating": False,
     "layout": {"tile_size": [960.0, 1080.0]}, "workspace_id": 1},
    {"id": 2, "title": "foot", "app_id": "foot", "is_floating": True,
     "layout": {"tile_size": [640.0, 480.0]}, "workspace_id": 2},
    {"id": 3, "title": "Files", "app_id": "org.gnome.Nautilus", "is_floating": False,
     "layout": {"tile_size": [960.0, 1080.0]}, "workspace_id": 1},
]


def rf(field, operator, value):
    return RowFilter(field=field, operator=operator, value=value)


def ids(rows):
    return [row["id"] for row in rows]


class TestFilterColumns:

    def test_include(self):
        assert filter_columns(WINDOWS, include=["id", "title", "missing"])[0] == {"id": 1, "title": "Firefox"}

    def test_exclude(self):
        row = filter_columns(WINDOWS, exclude=["layout", "title"])[1]
        assert row == {"id": 2, "app_id": "foot", "is_floating": True, "workspace_id": 2}

    def test_include_wins_over_exclude(self):
        assert filter_columns(WINDOWS[0], include=["id"], exclude=["id"]) == {"id": 1}

    def test_single_object(self):
        assert filter_columns({"names": ["us"], "current_idx": 0}, exclude=["names"]) == {"current_idx": 0}

    def test_no_options_returns_input(self):
        assert filter_columns(WINDOWS) == WINDOWS


class TestFilterRows:

    @pytest.mark.parametrize("row_filter, expected", [
        (rf("app_id", "eq", "foot"), [2]),
        (rf("app_id", "ne", "foot"), [1, 3]),
        (rf("id", "gt", 1), [2, 3]),
        (rf("id", "gte", 2), [2, 3]),
        (rf("id", "lt", 2), [1]),
        (rf("id", "lte", 2), [1, 2]),
        (rf("title", "contains", "Fi"), [1, 3]),
        (rf("title", "startsWith", "F"), [1, 3]),
        (rf("app_id", "endsWith", "Nautilus"), [3]),
        (rf("layout.tile_size", "eq", [640.0, 480.0]), [2]),
        (rf("is_floating", "eq", True), [2]),
    ])
    def test_operators(self, row_filter, expected):
        assert ids(filter_rows(WINDOWS, [row_filter])) == expected

    def test_numeric_operators_require_numbers(self):
        assert filter_rows(WINDOWS, [rf("title", "gt", 0)]) == []
        assert filter_rows(WINDOWS, [rf("id", "gt", "0")]) == []
        assert filter_rows(WINDOWS, [rf("is_floating", "gte", 0)]) == []

    def test_string_operators_require_strings(self):
        assert filter_rows(WINDOWS, [rf("id", "contains", "1")]) == []

    def test_missing_field(self):
        assert filter_rows(WINDOWS, [rf("layout.nope", "eq", None)]) == []
        assert ids(filter_rows(WINDOWS, [rf("nope", "ne", 1)])) == [1, 2, 3]

    def test_all_filters_must_hold(self):
        filters = [rf("workspace_id", "eq", 1), rf("title", "startsWith", "Fire")]
        assert ids(filter_rows(WINDOWS, filters)) == [1]

    def test_no_filters(self):
        assert filter_rows(WINDOWS, None) is WINDOWS

    def test_unknown_operator_rejected(self):
        with pytest.raises(ValidationError):
            RowFilter(field="id", operator="like", value=1)


class TestQuery:

    def test_rows_then_columns(self):
        options = QueryOptions(
            include=["id", "title"],
            filter=[{"field": "workspace_id", "operator": "eq", "value": 1}],
        )
        assert query(WINDOWS, options) == [{"id": 1, "title": "Firefox"}, {"id": 3, "title": "Files"}]

    def test_empty_options(self):
        options = QueryOptions()
        assert options.is_empty()
        assert query(WINDOWS, options) == WINDOWS

    def test_extra_fields_rejected(self):
        with pytest.raises(ValidationError):
            QueryOptions(columns=["id"])
