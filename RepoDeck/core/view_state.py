"""
Filter, sort and pagination state over the reconciled repository list.
"""

import logging
import math
from collections import Counter
from dataclasses import dataclass, fields, replace
from typing import Callable, Optional

from core.entities import TYPE_FORK, ViewRecord

logger = logging.getLogger(__name__)

PAGE_SIZE = 200

# Type filter value matching every non-fork repository
SOURCES = "Sources"
# Class filter value matching repositories without a class
NO_CLASS = "(none)"

SORT_KEYS: dict[str, Callable[[ViewRecord], object]] = {
    "name": lambda r: r.name,
    "owner": lambda r: r.owner,
    "language": lambda r: r.primary_language,
    "type": lambda r: r.type_label,
    "class": lambda r: r.class_label or None,
    "stars": lambda r: r.star_count,
    "created_at": lambda r: r.created_at,
    "disk_usage": lambda r: r.disk_usage_kb,
    "commits": lambda r: r.default_branch_commit_count,
    "enabled": lambda r: r.enabled,
    "description": lambda r: r.resolved_description or None,
}

COLUMNS = (
    "name",
    "owner",
    "type",
    "language",
    "class",
    "stars",
    "created_at",
    "disk_usage",
    "commits",
    "enabled",
    "urls",
    "description",
)

DEFAULT_COLUMNS = (
    "name",
    "owner",
    "type",
    "language",
    "class",
    "stars",
    "created_at",
    "urls",
    "description",
)


def _sort_value(value) -> tuple:
    # Missing values sort before everything else
    if value is None:
        return (0, "")
    if isinstance(value, str):
        return (1, value.casefold())
    return (1, value)


@dataclass(frozen=True)
class Filters:
    """
    Active filters, combined with AND.
    An empty value (None or "") disables that filter.
    """
    name: Optional[str] = None
    owner: Optional[str] = None
    language: Optional[str] = None
    type_category: Optional[str] = SOURCES
    class_label: Optional[str] = None

    def matches(self, record: ViewRecord) -> bool:
        if self.name and self.name.casefold() not in record.name.casefold():
            return False
        if self.owner and record.owner != self.owner:
            return False
        if self.language and record.primary_language != self.language:
            return False
        if self.type_category:
            if self.type_category == SOURCES:
                if record.type_label == TYPE_FORK:
                    return False
            elif record.type_label != self.type_category:
                return False
        if self.class_label:
            if self.class_label == NO_CLASS:
                if record.class_label:
                    return False
            elif record.class_label != self.class_label:
                return False
        return True


@dataclass
class Aggregates:
    """Per-option counts over the unfiltered list."""
    languages: dict[str, int]
    owners: dict[str, int]
    types: dict[str, int]
    classes: dict[str, int]


def compute_aggregates(records: list[ViewRecord]) -> Aggregates:
    """Records without a language are left out; records without a class count as "(none)"."""
    return Aggregates(
        languages=dict(Counter(r.primary_language for r in records if r.primary_language)),
        owners=dict(Counter(r.owner for r in records)),
        types=dict(Counter(r.type_label for r in records)),
        classes=dict(Counter(r.class_label or NO_CLASS for r in records)),
    )


class ViewState:
    """
    Holds the query over the current ViewRecord list.

    Pipeline: filter (AND of all filters), stable sort on one key, then a
    fixed-size page window. The page index is clamped every time the
    filtered list can change, so a shrinking result set never leaves the
    window past the last page.
    """

    def __init__(
        self,
        records: Optional[list[ViewRecord]] = None,
        page_size: int = PAGE_SIZE,
    ):
        if page_size <= 0:
            raise ValueError("page_size must be positive")
        self.page_size = page_size
        self.filters = Filters()
        self.sort_key = "name"
        self.descending = False
        self.visible_columns = list(DEFAULT_COLUMNS)
        self._page = 0
        self._records: list[ViewRecord] = []
        self._records_version = 0
        self._aggregates: Optional[Aggregates] = None
        self._aggregates_version = -1
        self._filtered: list[ViewRecord] = []
        self.set_records(records or [])

    # -- records -------------------------------------------------------

    @property
    def records(self) -> list[ViewRecord]:
        return self._records

    def set_records(self, records: list[ViewRecord]):
        """Replace the underlying list. Aggregates are recomputed lazily."""
        self._records = list(records)
        self._records_version += 1
        self._refresh()

    @property
    def aggregates(self) -> Aggregates:
        if self._aggregates_version != self._records_version:
            self._aggregates = compute_aggregates(self._records)
            self._aggregates_version = self._records_version
            logger.debug(f"Recomputed aggregates for {len(self._records)} records")
        return self._aggregates

    # -- filters and sort ----------------------------------------------

    def set_filters(self, **changes):
        """
        Update one or more filters, e.g. ``set_filters(owner="octocat")``.

        Raises:
            ValueError: For an unknown filter name
        """
        known = {f.name for f in fields(Filters)}
        unknown = set(changes) - known
        if unknown:
            raise ValueError(f"Unknown filter(s): {', '.join(sorted(unknown))}")
        self.filters = replace(self.filters, **changes)
        self._refresh()

    def reset_filters(self):
        self.filters = Filters()
        self._refresh()

    def set_sort(self, key: str, descending: bool = False):
        if key not in SORT_KEYS:
            raise ValueError(f"Unknown sort key: {key}")
        self.sort_key = key
        self.descending = descending
        self._refresh()

    def toggle_sort(self, key: str):
        """Same key flips direction; a new key starts ascending."""
        if key == self.sort_key:
            self.set_sort(key, not self.descending)
        else:
            self.set_sort(key)

    # -- columns -------------------------------------------------------

    def set_column_visible(self, column: str, visible: bool):
        if column not in COLUMNS:
            raise ValueError(f"Unknown column: {column}")
        if visible and column not in self.visible_columns:
            # Keep the canonical column order
            self.visible_columns = [
                c for c in COLUMNS if c in self.visible_columns or c == column
            ]
        elif not visible and column in self.visible_columns:
            self.visible_columns.remove(column)

    def toggle_column(self, column: str):
        self.set_column_visible(column, column not in self.visible_columns)

    # -- pagination ----------------------------------------------------

    @property
    def filtered_records(self) -> list[ViewRecord]:
        """Filtered and sorted, all pages."""
        return self._filtered

    @property
    def filtered_count(self) -> int:
        return len(self._filtered)

    @property
    def page_count(self) -> int:
        return math.ceil(len(self._filtered) / self.page_size)

    @property
    def page(self) -> int:
        return self._page

    def set_page(self, index: int):
        self._page = index
        self._clamp_page()

    def next_page(self):
        self.set_page(self._page + 1)

    def previous_page(self):
        self.set_page(self._page - 1)

    @property
    def visible_records(self) -> list[ViewRecord]:
        start = self._page * self.page_size
        return self._filtered[start:start + self.page_size]

    def _clamp_page(self):
        last_page = max(self.page_count - 1, 0)
        self._page = min(max(self._page, 0), last_page)

    def _refresh(self):
        matching = [r for r in self._records if self.filters.matches(r)]
        key_func = SORT_KEYS[self.sort_key]
        # sorted() keeps ties in input order in both directions
        self._filtered = sorted(
            matching,
            key=lambda r: _sort_value(key_func(r)),
            reverse=self.descending,
        )
        self._clamp_page()
