"""
Predicate building for listing searches.

A predicate is a list of SQL conditions with their bound parameters. It is
built from a SearchRequest without touching the database, and combined with
other predicates (the proximity filter, for one) using `&`.
"""
from dataclasses import dataclass
from typing import Any, Optional, Tuple

from .entities import SEARCHABLE_STATUS, SearchRequest
from .utils import LIST_SEPARATOR


ELECTRICITY_UTILITIES = ("electricity", "ไฟฟ้า")

# Columns the simple text mode looks at, in the order the scorer weighs them
TEXT_SEARCH_COLUMNS = ("title", "description", "street", "district", "province", "tags", "keywords")
LIST_COLUMNS = ("tags", "keywords")


@dataclass(frozen=True)
class Predicate:
    """An AND of SQL conditions over the `listings` table."""

    conditions: Tuple[str, ...] = ()
    parameters: Tuple[Any, ...] = ()

    def where(self, condition: str, *parameters: Any) -> "Predicate":
        return Predicate(self.conditions + (condition,), self.parameters + parameters)

    def __and__(self, other: "Predicate") -> "Predicate":
        return Predicate(self.conditions + other.conditions, self.parameters + other.parameters)

    def where_clause(self) -> str:
        if not self.conditions:
            return ""
        return " WHERE " + " AND ".join(self.conditions)

    def __bool__(self) -> bool:
        return bool(self.conditions)


def like_pattern(text: str) -> str:
    """Case-folded LIKE pattern matching `text` literally as a substring."""
    escaped = text.lower().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def contains(column: str) -> str:
    """SQL condition: case-insensitive substring test on `column`."""
    return f"ulower({column}) LIKE ? ESCAPE '\\'"


def build_range(column: str, minimum: Optional[float], maximum: Optional[float]) -> Predicate:
    """Inclusive range on `column`; either bound may be omitted."""
    predicate = Predicate()
    if minimum is not None:
        predicate = predicate.where(f"{column} >= ?", minimum)
    if maximum is not None:
        predicate = predicate.where(f"{column} <= ?", maximum)
    return predicate


def build_text_clause(search_text: Optional[str]) -> Predicate:
    """
    OR of substring matches across the text-searchable columns.

    List columns hold pipe-joined entries. A substring without the separator
    always lies inside one entry; text containing it can only span two, so
    those columns are left out for such text.
    """
    if not search_text:
        return Predicate()
    columns = TEXT_SEARCH_COLUMNS
    if LIST_SEPARATOR in search_text:
        columns = tuple(c for c in columns if c not in LIST_COLUMNS)
    pattern = like_pattern(search_text)
    clause = "(" + " OR ".join(contains(c) for c in columns) + ")"
    return Predicate((clause,), (pattern,) * len(columns))


def build_predicate(request: SearchRequest) -> Predicate:
    """
    Turn a sparse request into a single predicate.

    Absent filters add nothing; only approved listings ever match. The
    proximity filter is not included here, see geo.build_proximity_filter.
    """
    predicate = Predicate().where("status = ?", SEARCHABLE_STATUS)

    # Exact matches
    exact_fields = (
        ("property_type", request.property_type),
        ("listing_type", request.listing_type),
        ("condition", request.condition),
        ("bedrooms", request.bedrooms),
        ("bathrooms", request.bathrooms),
    )
    for column, value in exact_fields:
        if value is not None:
            predicate = predicate.where(f"{column} = ?", value)

    flag_fields = (
        ("featured", request.featured),
        ("urgent", request.urgent),
        ("road_access", request.road_access),
        ("water_source", request.water_source),
    )
    for column, value in flag_fields:
        if value is not None:
            predicate = predicate.where(f"{column} = ?", 1 if value else 0)

    if request.has_electricity:
        # utilities is pipe-joined; wrap it so every entry is delimited on both sides
        wrapped = "('|' || ulower(utilities) || '|')"
        clause = "(" + " OR ".join(f"{wrapped} LIKE ?" for _ in ELECTRICITY_UTILITIES) + ")"
        predicate = predicate.where(clause, *(f"%|{u}|%" for u in ELECTRICITY_UTILITIES))

    # Administrative areas match as substrings
    if request.province:
        predicate = predicate.where(contains("province"), like_pattern(request.province))
    if request.district:
        predicate = predicate.where(contains("district"), like_pattern(request.district))

    predicate = predicate & build_range("price", request.min_price, request.max_price)
    predicate = predicate & build_range("area", request.min_area, request.max_area)

    if request.search_text:
        predicate = predicate & build_text_clause(request.search_text)

    return predicate
