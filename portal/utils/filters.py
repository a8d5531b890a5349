"""
Listing query strings

Reads ``sort`` and ``filter[...]`` parameters the way the client data
tables send them and turns them into SQLAlchemy clauses:

    ?sort=name,-email&filter[search]=ada&filter[created_at]=>=2024-01-01

Comma-separated filter values are treated as a list. Sorts and filters
that a listing does not allow raise ``InvalidQueryError``.
"""

import enum
import logging
import operator
import re
from datetime import date, datetime
from typing import Any, Callable

from sqlalchemy import Date, Select, asc, desc, func, or_
from starlette.datastructures import QueryParams

from portal.exceptions import InvalidQueryError

logger = logging.getLogger(__name__)

FILTER_PARAM = re.compile(r"^filter\[(?P<name>[^\]]*)\]$")


def get_sorts(query_params: QueryParams) -> list[dict[str, Any]] | None:
    """``sort=name,-email`` -> ``[{"id": "name", "desc": False}, {"id": "email", "desc": True}]``"""
    sort = query_params.get("sort")
    if sort is None:
        return None

    sorts = []
    for value in sort.split(","):
        value = value.strip()
        sort_id = value.lstrip("-")
        if sort_id:
            sorts.append({"id": sort_id, "desc": value.startswith("-")})
    return sorts


def get_filters(query_params: QueryParams) -> list[dict[str, Any]] | None:
    """``filter[name]=ada`` -> ``[{"id": "name", "value": "ada"}]``"""
    filters = []
    for key, value in query_params.multi_items():
        match = FILTER_PARAM.match(key)
        if match and match.group("name"):
            filters.append({"id": match.group("name"), "value": value})
    return filters or None


def split_values(value: str) -> list[str]:
    return value.split(",")


class FilterOperator(str, enum.Enum):
    EQUAL = "="
    NOT_EQUAL = "<>"
    GREATER_THAN = ">"
    GREATER_THAN_OR_EQUAL = ">="
    LESS_THAN = "<"
    LESS_THAN_OR_EQUAL = "<="

    @classmethod
    def split(cls, value: str) -> tuple["FilterOperator", str]:
        """Strip a leading operator from ``value``; no prefix means EQUAL."""
        for op in sorted(cls, key=lambda o: len(o.value), reverse=True):
            if value.startswith(op.value):
                return op, value[len(op.value):]
        return cls.EQUAL, value

    @property
    def compare(self) -> Callable[[Any, Any], Any]:
        return {
            FilterOperator.EQUAL: operator.eq,
            FilterOperator.NOT_EQUAL: operator.ne,
            FilterOperator.GREATER_THAN: operator.gt,
            FilterOperator.GREATER_THAN_OR_EQUAL: operator.ge,
            FilterOperator.LESS_THAN: operator.lt,
            FilterOperator.LESS_THAN_OR_EQUAL: operator.le,
        }[self]


def parse_bool(value: str) -> bool | None:
    value = value.strip().lower()
    if value in ("1", "true", "yes", "on"):
        return True
    if value in ("0", "false", "no", "off"):
        return False
    return None


def parse_date(value: str) -> date | None:
    try:
        return datetime.fromisoformat(value.strip()).date()
    except ValueError:
        return None


class DateFilter:
    """Date comparisons on a datetime column.

    A single value may carry an operator prefix (``>=2024-01-01``); two
    values select an inclusive ``start,end`` range. Unparseable dates leave
    the query unfiltered.
    """

    def __call__(self, stmt: Select, values: list[str], column) -> Select:
        day = func.date(column, type_=Date)

        if len(values) > 1:
            start, end = parse_date(values[0]), parse_date(values[1])
            if start is None or end is None:
                return stmt
            return stmt.where(day.between(min(start, end), max(start, end)))

        op, value = FilterOperator.split(values[0])
        if value == "":
            return stmt

        parsed = parse_date(value)
        if parsed is None:
            return stmt
        return stmt.where(op.compare(day, parsed))


class AllowedFilter:
    def __init__(self, name: str, apply: Callable[[Select, list[str]], Select]):
        self.name = name
        self.apply = apply

    @classmethod
    def partial(cls, name: str, column) -> "AllowedFilter":
        """Case-insensitive ``contains`` match on any of the values."""

        def apply(stmt: Select, values: list[str]) -> Select:
            values = [v for v in values if v != ""]
            if not values:
                return stmt
            return stmt.where(or_(*[func.lower(column).contains(v.lower()) for v in values]))

        return cls(name, apply)

    @classmethod
    def operator(cls, name: str, column) -> "AllowedFilter":
        """Comparison whose operator is taken from the value's prefix."""

        def apply(stmt: Select, values: list[str]) -> Select:
            clauses = []
            for value in values:
                op, operand = FilterOperator.split(value)
                if operand != "":
                    clauses.append(op.compare(column, operand))
            return stmt.where(or_(*clauses)) if clauses else stmt

        return cls(name, apply)

    @classmethod
    def callback(cls, name: str, fn: Callable[[Select, str], Select]) -> "AllowedFilter":
        """Pass the raw (unsplit) value to ``fn``."""
        return cls(name, lambda stmt, values: fn(stmt, ",".join(values)))

    @classmethod
    def custom(cls, name: str, filter_: Callable[[Select, list[str], Any], Select], column) -> "AllowedFilter":
        return cls(name, lambda stmt, values: filter_(stmt, values, column))


class QueryBuilder:
    """Applies request sorts and filters to a select statement."""

    def __init__(self, stmt: Select, query_params: QueryParams):
        self.stmt = stmt
        self.query_params = query_params
        self._default_sort: str | None = None
        self._sorts: dict[str, Any] = {}
        self._filters: dict[str, AllowedFilter] = {}

    def default_sort(self, sort: str) -> "QueryBuilder":
        self._default_sort = sort
        return self

    def allowed_sorts(self, sorts: dict[str, Any]) -> "QueryBuilder":
        self._sorts = sorts
        return self

    def allowed_filters(self, filters: list[AllowedFilter]) -> "QueryBuilder":
        self._filters = {f.name: f for f in filters}
        return self

    def build(self) -> Select:
        stmt = self._apply_filters(self.stmt)
        return self._apply_sorts(stmt)

    def _apply_filters(self, stmt: Select) -> Select:
        requested = get_filters(self.query_params) or []

        unknown = sorted({f["id"] for f in requested} - set(self._filters))
        if unknown:
            raise InvalidQueryError(
                f"Requested filter(s) `{', '.join(unknown)}` are not allowed. "
                f"Allowed filter(s) are `{', '.join(self._filters)}`.",
                details={"unknown": unknown, "allowed": list(self._filters)},
            )

        for requested_filter in requested:
            stmt = self._filters[requested_filter["id"]].apply(stmt, split_values(requested_filter["value"]))
        return stmt

    def _apply_sorts(self, stmt: Select) -> Select:
        sorts = get_sorts(self.query_params)
        if not sorts and self._default_sort:
            sorts = get_sorts(QueryParams({"sort": self._default_sort}))

        unknown = sorted({s["id"] for s in sorts or []} - set(self._sorts))
        if unknown:
            raise InvalidQueryError(
                f"Requested sort(s) `{', '.join(unknown)}` are not allowed. "
                f"Allowed sort(s) are `{', '.join(self._sorts)}`.",
                details={"unknown": unknown, "allowed": list(self._sorts)},
            )

        for sort in sorts or []:
            column = self._sorts[sort["id"]]
            stmt = stmt.order_by(desc(column) if sort["desc"] else asc(column))
        return stmt
