"""
Column projection and row filtering for niri IPC results.
"""

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

Operator = Literal["eq", "ne", "gt", "lt", "gte", "lte", "contains", "startsWith", "endsWith"]

_MISSING = object()


class RowFilter(BaseModel):
    """A single predicate on a (possibly nested) field."""
    model_config = ConfigDict(extra='forbid')

    field: str = Field(
        description="Field name, dotted for nested values (e.g. 'layout.tile_size')"
    )
    operator: Operator = Field(
        description="Comparison: eq, ne, gt, lt, gte, lte, contains, startsWith, endsWith"
    )
    value: Any = Field(
        default=None,
        description="Value to compare against"
    )


class QueryOptions(BaseModel):
    """Column and row selection applied to list results."""
    model_config = ConfigDict(
        str_strip_whitespace=True,
        validate_assignment=True,
        extra='forbid'
    )

    include: Optional[List[str]] = Field(
        default=None,
        description="Only keep these keys in each object (takes precedence over exclude)"
    )
    exclude: Optional[List[str]] = Field(
        default=None,
        description="Drop these keys from each object"
    )
    filter: Optional[List[RowFilter]] = Field(
        default=None,
        description="Keep only rows matching every filter"
    )

    def is_empty(self) -> bool:
        return not (self.include or self.exclude or self.filter)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def get_nested_value(obj: Any, path: str) -> Any:
    value = obj
    for key in path.split("."):
        if isinstance(value, dict) and key in value:
            value = value[key]
        else:
            return _MISSING
    return value


def _project(item: Dict[str, Any], include: Optional[List[str]], exclude: Optional[List[str]]) -> Dict[str, Any]:
    if include:
        return {key: item[key] for key in include if key in item}
    if exclude:
        return {key: value for key, value in item.items() if key not in exclude}
    return item


def filter_columns(
    data: Union[Dict[str, Any], List[Dict[str, Any]]],
    include: Optional[List[str]] = None,
    exclude: Optional[List[str]] = None,
) -> Union[Dict[str, Any], List[Dict[str, Any]]]:
    """Keep or drop keys of one object or of every object in a list."""
    if isinstance(data, list):
        return [_project(item, include, exclude) for item in data]
    return _project(data, include, exclude)


def matches(item: Dict[str, Any], row_filter: RowFilter) -> bool:
    actual = get_nested_value(item, row_filter.field)
    expected = row_filter.value
    op = row_filter.operator

    if op == "eq":
        return actual is not _MISSING and actual == expected
    if op == "ne":
        return actual is _MISSING or actual != expected

    if op in ("gt", "lt", "gte", "lte"):
        if not (_is_number(actual) and _is_number(expected)):
            return False
        if op == "gt":
            return actual > expected
        if op == "lt":
            return actual < expected
        if op == "gte":
            return actual >= expected
        return actual <= expected

    if not (isinstance(actual, str) and isinstance(expected, str)):
        return False
    if op == "contains":
        return expected in actual
    if op == "startsWith":
        return actual.startswith(expected)
    return actual.endswith(expected)


def filter_rows(rows: List[Dict[str, Any]], filters: Optional[List[RowFilter]]) -> List[Dict[str, Any]]:
    """Keep rows for which every filter holds."""
    if not filters:
        return rows
    return [row for row in rows if all(matches(row, f) for f in filters)]


def query(rows: List[Dict[str, Any]], options: QueryOptions) -> List[Dict[str, Any]]:
    """Filter rows, then project columns."""
    result = filter_rows(rows, options.filter)
    if options.include or options.exclude:
        result = filter_columns(result, options.include, options.exclude)
    return result
