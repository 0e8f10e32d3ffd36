"""
Search filters keyed by scope.

The fetch controller treats a filter as opaque and only forwards it to
its request executor; the search executor turns a ``SearchFilter`` into
query parameters.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class FilterScope(str, Enum):
    GLOBAL = "global"
    SEARCH = "search"


class SearchFilter(BaseModel):
    """Filter options applied to listing requests."""

    excluded_categories: list[str] = Field(default_factory=list)
    minimum_rating: Optional[int] = Field(default=None, ge=2, le=5)
    page_range: Optional[tuple[int, int]] = None
    search_tags: bool = True
    show_expunged: bool = False

    def to_query_params(self) -> dict[str, str]:
        params: dict[str, str] = {}
        if self.excluded_categories:
            params["f_cats_excluded"] = ",".join(sorted(self.excluded_categories))
        if self.minimum_rating is not None:
            params["f_sr"] = "on"
            params["f_srdd"] = str(self.minimum_rating)
        if self.page_range is not None:
            lower, upper = self.page_range
            params["f_sp"] = "on"
            params["f_spf"] = str(lower)
            params["f_spt"] = str(upper)
        if not self.search_tags:
            params["f_stags"] = "off"
        if self.show_expunged:
            params["f_sh"] = "on"
        return params


class FilterStore:
    """In-memory filter per scope, read synchronously by fetch controllers."""

    def __init__(self) -> None:
        self._filters: dict[FilterScope, SearchFilter] = {}

    def fetch_filter(self, scope: FilterScope) -> SearchFilter:
        """Return a copy of the filter for ``scope`` (defaults if never saved)."""
        return self._filters.get(scope, SearchFilter()).model_copy(deep=True)

    def save_filter(self, scope: FilterScope, search_filter: SearchFilter) -> None:
        self._filters[scope] = search_filter.model_copy(deep=True)

    def reset_filter(self, scope: FilterScope) -> None:
        self._filters.pop(scope, None)
