"""
Listing search filters.

Turns the loosely typed filter mapping sent by clients into a list of typed
predicates. Each accepted filter key has exactly one builder in
``FILTER_BUILDERS``; the listing repository compiles the predicates to SQL.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union
import uuid

from app.utils.exceptions import ValidationError


@dataclass(frozen=True)
class Equals:
    field: str
    value: Any


@dataclass(frozen=True)
class Range:
    field: str
    minimum: Optional[int] = None
    maximum: Optional[int] = None


@dataclass(frozen=True)
class Substring:
    """Case-insensitive contains."""
    field: str
    text: str


@dataclass(frozen=True)
class Membership:
    field: str
    values: Tuple[Any, ...]


@dataclass(frozen=True)
class Superset:
    """The column's list must contain every value."""
    field: str
    values: Tuple[str, ...]


@dataclass(frozen=True)
class AnyOf:
    predicates: Tuple["Predicate", ...]


Predicate = Union[Equals, Range, Substring, Membership, Superset, AnyOf]

PredicateBuilder = Callable[[str, Any], Predicate]

TEXT_SEARCH_FIELDS = ("title", "description", "location", "landlord_name")

SORTABLE_FIELDS = ("updated_at", "created_at", "price", "bedrooms", "bathrooms", "title")
DEFAULT_SORT = "updated_at"


def parse_non_negative_int(key: str, value: Any) -> int:
    """
    Parse a numeric filter value.

    Raises:
        ValidationError: If the value is not a non-negative integer
    """
    parsed: Optional[int] = None
    if isinstance(value, int) and not isinstance(value, bool):
        parsed = value
    elif isinstance(value, str) and value.strip().isdigit():
        parsed = int(value.strip())

    if parsed is None or parsed < 0:
        raise ValidationError(
            f"Filter '{key}' must be a non-negative integer",
            field_errors=[{"field": key, "message": f"Invalid integer value: {value!r}"}]
        )
    return parsed


def parse_flag(value: Any) -> bool:
    """Only True or the literal string 'true' count as true."""
    return value is True or value == "true"


def _invalid_type(key: str, value: Any, expected: str) -> ValidationError:
    return ValidationError(
        f"Filter '{key}' must be {expected}",
        field_errors=[{"field": key, "message": f"Invalid value: {value!r}"}]
    )


def parse_scalar(key: str, value: Any) -> Any:
    """
    Accept a single string or integer filter value.

    Raises:
        ValidationError: If the value is a list, mapping, boolean or other type
    """
    if isinstance(value, str) or (isinstance(value, int) and not isinstance(value, bool)):
        return value
    raise _invalid_type(key, value, "a string or integer")


def parse_string_list(key: str, value: Any) -> Tuple[str, ...]:
    """
    Accept a string or a list of strings.

    Raises:
        ValidationError: If any item is not a string
    """
    items = list(value) if isinstance(value, (list, tuple)) else [value]
    if not all(isinstance(item, str) for item in items):
        raise _invalid_type(key, value, "a string or a list of strings")
    return tuple(items)


def substring(field: str) -> PredicateBuilder:
    def build(key: str, value: Any) -> Predicate:
        return Substring(field, str(parse_scalar(key, value)))
    return build


def equality(field: str) -> PredicateBuilder:
    def build(key: str, value: Any) -> Predicate:
        return Equals(field, parse_scalar(key, value))
    return build


def equality_or_membership(field: str) -> PredicateBuilder:
    def build(key: str, value: Any) -> Predicate:
        if isinstance(value, (list, tuple)):
            return Membership(field, parse_string_list(key, value))
        return Equals(field, parse_string_list(key, value)[0])
    return build


def integer_equality(field: str) -> PredicateBuilder:
    def build(key: str, value: Any) -> Predicate:
        return Equals(field, parse_non_negative_int(key, value))
    return build


def lower_bound(field: str) -> PredicateBuilder:
    def build(key: str, value: Any) -> Predicate:
        return Range(field, minimum=parse_non_negative_int(key, value))
    return build


def upper_bound(field: str) -> PredicateBuilder:
    def build(key: str, value: Any) -> Predicate:
        return Range(field, maximum=parse_non_negative_int(key, value))
    return build


def superset(field: str) -> PredicateBuilder:
    def build(key: str, value: Any) -> Predicate:
        return Superset(field, parse_string_list(key, value))
    return build


def flag(field: str) -> PredicateBuilder:
    def build(key: str, value: Any) -> Predicate:
        return Equals(field, parse_flag(value))
    return build


FILTER_BUILDERS: Dict[str, PredicateBuilder] = {
    "location": substring("location"),
    "property_type": equality_or_membership("property_type"),
    "min_price": lower_bound("price"),
    "max_price": upper_bound("price"),
    "bedrooms": integer_equality("bedrooms"),
    "bathrooms": integer_equality("bathrooms"),
    "county": substring("county"),
    "estate": substring("estate"),
    "landlord_name": substring("landlord_name"),
    "amenities": superset("amenities"),
    "furnishing_status": equality("furnishing_status"),
    "parking": flag("parking"),
    "garden": flag("garden"),
    "balcony": flag("balcony"),
    "own_compound": flag("own_compound"),
    "electricity": flag("electricity"),
    "internet": flag("internet"),
}


def is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value == ""
    if isinstance(value, (list, tuple, set)):
        return len(value) == 0
    return False


def availability_predicate(requester_id: Optional[uuid.UUID]) -> Predicate:
    """Anonymous callers see available listings; owners also see their own unavailable ones."""
    if requester_id is None:
        return Equals("is_available", True)
    return AnyOf((Equals("is_available", True), Equals("landlord_id", requester_id)))


def text_search_predicate(search_text: str) -> Predicate:
    return AnyOf(tuple(Substring(field, search_text) for field in TEXT_SEARCH_FIELDS))


def build_listing_predicates(
    filters: Optional[Mapping[str, Any]],
    requester_id: Optional[uuid.UUID] = None,
    search_text: Optional[str] = None
) -> List[Predicate]:
    """
    Build the predicate list for a listing query.

    The availability predicate always comes first and cannot be replaced by
    any client-supplied key. Unknown keys and empty values are ignored.

    Raises:
        ValidationError: If a filter value has the wrong type or a numeric filter does not parse
    """
    predicates: List[Predicate] = [availability_predicate(requester_id)]

    if search_text and search_text.strip():
        predicates.append(text_search_predicate(search_text.strip()))

    for key, value in (filters or {}).items():
        builder = FILTER_BUILDERS.get(key)
        if builder is None or is_empty(value):
            continue
        predicates.append(builder(key, value))

    return predicates


def resolve_sort(sort: Optional[str], order: Optional[str]) -> Tuple[str, bool]:
    """Return (column name, descending); unknown columns fall back to updated_at."""
    field = sort if sort in SORTABLE_FIELDS else DEFAULT_SORT
    return field, (order or "desc").lower() != "asc"


def normalize_query_filters(items: Sequence[Tuple[str, str]]) -> Dict[str, Any]:
    """
    Collapse repeated query-string parameters into a filter mapping.

    ``property_type`` keeps a list when repeated; ``amenities`` also accepts a
    comma separated value.
    """
    collected: Dict[str, List[str]] = {}
    for key, value in items:
        if key in FILTER_BUILDERS:
            collected.setdefault(key, []).append(value)

    filters: Dict[str, Any] = {}
    for key, values in collected.items():
        if key == "amenities":
            filters[key] = [part.strip() for value in values for part in value.split(",") if part.strip()]
        elif key == "property_type" and len(values) > 1:
            filters[key] = values
        else:
            filters[key] = values[-1]
    return filters
