"""Record filtering, sorting and client-side pagination.

A record matches a FilterSet when it matches every criterion in it.
Inactive criteria (blank search, the "all" sentinel, empty selections,
unbounded ranges) match everything. A record missing the filtered field
never matches an active criterion.
"""

import math
import unicodedata
from abc import ABC, abstractmethod
from collections.abc import Hashable, Mapping
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Iterable, Iterator, Optional, Sequence, Union

from sitetrack.domain.entities import Record, SortDirection
from sitetrack.utils.date_parser import parse_record_date
from sitetrack.utils.numbers import to_number

ALL = "all"


def get_field(record: Record, field: str) -> Any:
    """Read a field from a record, returning None when absent."""
    if isinstance(record, Mapping):
        return record.get(field)
    return getattr(record, field, None)


def collation_key(text: str) -> tuple[str, str]:
    """Sort key ordering text the way a locale collation does.

    Letters compare by their base form first, so "Éclair" sorts among the
    e's; accents and case only separate otherwise equal strings.
    """
    decomposed = unicodedata.normalize("NFKD", text)
    base = "".join(char for char in decomposed if not unicodedata.combining(char))
    return base.casefold(), unicodedata.normalize("NFKC", text).casefold()


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)


class Criterion(ABC):
    """A single filter criterion."""

    @abstractmethod
    def matches(self, record: Record) -> bool:
        """Return True if the record satisfies this criterion."""

    @property
    @abstractmethod
    def active_count(self) -> int:
        """Contribution of this criterion to the active-filter badge."""

    @property
    def is_active(self) -> bool:
        return self.active_count > 0


@dataclass(frozen=True)
class TextSearch(Criterion):
    """Case-insensitive substring search over a fixed set of fields."""

    fields: tuple[str, ...]
    term: str = ""

    @property
    def active_count(self) -> int:
        return 1 if self.term.strip() else 0

    def matches(self, record: Record) -> bool:
        needle = self.term.strip().casefold()
        if not needle:
            return True
        for field in self.fields:
            value = get_field(record, field)
            if isinstance(value, str) and needle in value.casefold():
                return True
        return False


@dataclass(frozen=True)
class EnumFilter(Criterion):
    """Single-choice filter with an "all" sentinel."""

    field: str
    value: Optional[str] = ALL
    all_value: str = ALL

    @property
    def active_count(self) -> int:
        return 0 if self.value in (None, "", self.all_value) else 1

    def matches(self, record: Record) -> bool:
        if not self.is_active:
            return True
        return get_field(record, self.field) == self.value


@dataclass(frozen=True)
class MultiSelect(Criterion):
    """Multi-select filter: matches when the field is one of the values."""

    field: str
    values: frozenset = frozenset()

    def __post_init__(self):
        object.__setattr__(self, "values", frozenset(self.values))

    @property
    def active_count(self) -> int:
        return len(self.values)

    def matches(self, record: Record) -> bool:
        if not self.values:
            return True
        value = get_field(record, self.field)
        return isinstance(value, Hashable) and value in self.values


@dataclass(frozen=True)
class DateRange(Criterion):
    """Inclusive date range; either bound may be open."""

    field: str
    start: Optional[date] = None
    end: Optional[date] = None

    @property
    def active_count(self) -> int:
        return 1 if self.start is not None or self.end is not None else 0

    def matches(self, record: Record) -> bool:
        if not self.is_active:
            return True
        value = parse_record_date(get_field(record, self.field))
        if value is None:
            return False
        if self.start is not None and value < self.start:
            return False
        if self.end is not None and value > self.end:
            return False
        return True


@dataclass(frozen=True)
class NumericRange(Criterion):
    """Inclusive numeric range; either bound may be open."""

    field: str
    minimum: Optional[float] = None
    maximum: Optional[float] = None

    @property
    def active_count(self) -> int:
        return 1 if self.minimum is not None or self.maximum is not None else 0

    def matches(self, record: Record) -> bool:
        if not self.is_active:
            return True
        raw = get_field(record, self.field)
        if raw is None:
            return False
        value = to_number(raw, default=math.nan)
        if math.isnan(value):
            return False
        if self.minimum is not None and value < self.minimum:
            return False
        if self.maximum is not None and value > self.maximum:
            return False
        return True


@dataclass(frozen=True)
class PresenceFilter(Criterion):
    """Linked/open selector over a foreign-key field.

    ``linked`` keeps records where the field is set, ``open`` keeps the
    rest, ``all`` keeps everything.
    """

    field: str
    value: str = ALL

    LINKED = "linked"
    OPEN = "open"

    @property
    def active_count(self) -> int:
        return 0 if self.value in (None, "", ALL) else 1

    def matches(self, record: Record) -> bool:
        linked = bool(get_field(record, self.field))
        if self.value == self.LINKED:
            return linked
        if self.value == self.OPEN:
            return not linked
        return True


class FilterSet(Mapping):
    """Immutable mapping of filter name to criterion."""

    def __init__(self, criteria: Optional[Union[Mapping[str, Criterion], Iterable[tuple[str, Criterion]]]] = None):
        self._criteria: dict[str, Criterion] = dict(criteria or {})

    def __getitem__(self, name: str) -> Criterion:
        return self._criteria[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._criteria)

    def __len__(self) -> int:
        return len(self._criteria)

    def __repr__(self) -> str:
        return f"FilterSet({self._criteria!r})"

    def with_criterion(self, name: str, criterion: Criterion) -> "FilterSet":
        """Return a copy with one criterion replaced."""
        updated = dict(self._criteria)
        updated[name] = criterion
        return FilterSet(updated)

    def without(self, name: str) -> "FilterSet":
        """Return a copy without the named criterion."""
        updated = dict(self._criteria)
        updated.pop(name, None)
        return FilterSet(updated)

    def merged(self, other: "FilterSet") -> "FilterSet":
        """Return a copy with every criterion of ``other`` added."""
        return FilterSet({**self._criteria, **dict(other)})

    def matches(self, record: Record) -> bool:
        return all(criterion.matches(record) for criterion in self._criteria.values())

    def count_active(self) -> int:
        return count_active(self._criteria.values())


def count_active(criteria: Union[FilterSet, Iterable[Criterion]]) -> int:
    """Count non-default criteria for the filter badge.

    Multi-selects contribute their cardinality, ranges at most 1, enums and
    searches 1 when set.
    """
    if isinstance(criteria, FilterSet):
        criteria = criteria.values()
    return sum(criterion.active_count for criterion in criteria)


def apply_filters(records: Iterable[Record], filter_set: FilterSet) -> list[Record]:
    """Return the records matching every criterion, in input order."""
    return [record for record in records if filter_set.matches(record)]


def _sort_key_kind(records: Sequence[Record], field: str) -> Optional[str]:
    kinds = set()
    for record in records:
        value = get_field(record, field)
        if value is None:
            continue
        if _is_number(value):
            kinds.add("number")
        elif isinstance(value, str):
            kinds.add("string")
        else:
            return None
    if len(kinds) != 1:
        return None
    return kinds.pop()


def sort_records(
    records: Iterable[Record],
    field: Optional[str],
    direction: Union[SortDirection, str] = SortDirection.ASC,
) -> list[Record]:
    """Stable sort of records by one field.

    Strings compare by collation_key, numbers numerically, and absent
    values as empty or zero. When a field holds mixed or non-comparable
    values the input order is kept.
    """
    items = list(records)
    if not field:
        return items
    direction = SortDirection(direction)
    kind = _sort_key_kind(items, field)
    if kind is None:
        return items

    if kind == "number":
        def key(record: Record) -> Any:
            value = get_field(record, field)
            return float(value) if value is not None else 0.0
    else:
        def key(record: Record) -> Any:
            value = get_field(record, field)
            return collation_key(value) if value is not None else ("", "")

    return sorted(items, key=key, reverse=direction is SortDirection.DESC)


def total_pages(total_items: int, page_size: int) -> int:
    """Number of client-side pages needed for ``total_items``."""
    if page_size <= 0:
        return 0
    return math.ceil(total_items / page_size)


def paginate(records: Sequence[Record], page: int, page_size: int) -> list[Record]:
    """Slice one 1-based page out of an already filtered and sorted list."""
    page = max(1, page)
    offset = (page - 1) * page_size
    return list(records[offset:offset + page_size])


def distinct_values(records: Iterable[Record], field: str) -> list[str]:
    """Sorted distinct non-empty string values of a field, for filter options."""
    values = {
        value
        for value in (get_field(record, field) for record in records)
        if isinstance(value, str) and value
    }
    return sorted(values, key=str.casefold)
