"""
Paginated fetch controller: keyword-scoped, cancellable listing engine.

One controller owns the ``ListingState`` of one listing screen. Its
state transitions are synchronous and must be driven from a single
event loop; only the network requests run as asyncio tasks, and they
report back into the same loop through ``on_search_completed`` and
``on_fetch_more_completed``.

Requests are cancelled by kind, not by instance: the first-page search
and "load more" each have their own cancellation id. A completion that
arrives after its id was cancelled is discarded without touching state.

Loading state machine (tracked separately for the list and the footer):

    idle ──start──▶ loading ──▶ idle | failed(error)
"""

from enum import Enum
from operator import attrgetter
from typing import Any, Callable, Generic, Hashable, Optional, Protocol, TypeVar, Union

from gallery_client.core.exceptions import FetchError, NotFoundError
from gallery_client.core.logging import get_logger
from gallery_client.domain.cancellation import CancellableTasks
from gallery_client.domain.filters import FilterScope
from gallery_client.domain.models import ItemT, ListingState, LoadState, PageCursor, PageResult

logger = get_logger(__name__)

FilterT = TypeVar("FilterT")

FetchResult = Union[PageResult, FetchError]


class CancelID(str, Enum):
    FETCH_ITEMS = "fetch_items"
    FETCH_MORE_ITEMS = "fetch_more_items"


class RequestExecutor(Protocol):
    """Performs the network calls behind a listing."""

    async def fetch_first(self, keyword: str, search_filter: Any) -> PageResult:
        ...

    async def fetch_more(self, keyword: str, search_filter: Any, last_id: Hashable) -> PageResult:
        ...


class FilterProvider(Protocol):
    def fetch_filter(self, scope: FilterScope) -> Any:
        ...


class ItemCache(Protocol):
    async def cache_items(self, items: list) -> None:
        ...


class PaginatedFetchController(Generic[ItemT, FilterT]):
    """
    Drive first-page and "more" requests for one listing screen.

    Args:
        executor: Performs the first-page and "more" requests.
        filters: Supplies the filter for ``scope`` synchronously.
        cache: Receives every successfully fetched page; optional.
        scope: Which filter scope this listing reads.
        key: Item identity used for de-duplication and as the "more"
            continuation key. Defaults to the item's ``gid``.
        name: Label used in logs and task names.
    """

    def __init__(
        self,
        executor: RequestExecutor,
        filters: FilterProvider,
        cache: Optional[ItemCache] = None,
        scope: FilterScope = FilterScope.SEARCH,
        key: Callable[[ItemT], Hashable] = attrgetter("gid"),
        name: str = "listing",
    ) -> None:
        self._executor = executor
        self._filters = filters
        self._cache = cache
        self._scope = scope
        self._key = key
        self._name = name

        self.state: ListingState[ItemT] = ListingState()
        self._tasks = CancellableTasks(name)

    # ── Intents ──────────────────────────────────────────────

    def start_search(self, new_keyword: Optional[str] = None) -> None:
        """
        Fetch the first page for ``new_keyword`` (or the last keyword).

        Ignored while a first-page request is already loading. Supersedes
        any outstanding "load more" request of the previous search.
        """
        state = self.state
        if state.primary_load.is_loading:
            return

        if new_keyword is not None:
            state.set_keyword(new_keyword)
        state.primary_load = LoadState.loading()
        state.cursor = PageCursor.initial()

        if self._tasks.cancel(CancelID.FETCH_MORE_ITEMS):
            state.footer_load = LoadState.idle()

        keyword = state.last_keyword
        search_filter = self._filters.fetch_filter(self._scope)
        logger.info("[%s] Searching keyword=%r", self._name, keyword)

        self._tasks.launch(
            CancelID.FETCH_ITEMS,
            lambda: self._executor.fetch_first(keyword, search_filter),
            self.on_search_completed,
        )

    def fetch_more(self) -> None:
        """
        Fetch the page after the current cursor.

        Continues from the last item shown, or from the cursor's
        ``next_id`` while the current search has shown nothing yet.
        No-op when there is no next page, when a "more" request is already
        loading, or when there is nothing to continue from.
        """
        state = self.state
        if not state.cursor.has_next_page() or state.footer_load.is_loading:
            return

        last_id = self._anchor()
        if last_id is None:
            return
        state.footer_load = LoadState.loading()

        keyword = state.last_keyword
        search_filter = self._filters.fetch_filter(self._scope)
        logger.info(
            "[%s] Fetching more keyword=%r after=%s (page %d of %d)",
            self._name, keyword, last_id, state.cursor.current + 2, state.cursor.maximum,
        )

        self._tasks.launch(
            CancelID.FETCH_MORE_ITEMS,
            lambda: self._executor.fetch_more(keyword, search_filter, last_id),
            self.on_fetch_more_completed,
        )

    def teardown(self) -> None:
        """Cancel every in-flight request; the owning screen is going away."""
        self._tasks.cancel_all()
        if self.state.primary_load.is_loading:
            self.state.primary_load = LoadState.idle()
        if self.state.footer_load.is_loading:
            self.state.footer_load = LoadState.idle()
        logger.debug("[%s] Torn down", self._name)

    async def wait_idle(self) -> None:
        """Wait until no request or cache write is in flight."""
        await self._tasks.wait_idle()

    # ── Completions ──────────────────────────────────────────

    def on_search_completed(self, result: FetchResult) -> None:
        state = self.state
        state.primary_load = LoadState.idle()

        if isinstance(result, FetchError):
            logger.warning("[%s] Search failed: %s", self._name, result.message)
            state.primary_load = LoadState.failed(result)
            return

        if not result.items:
            # Empty pages may precede pages with results; keep going.
            state.primary_load = LoadState.failed(NotFoundError())
            state.cursor = result.cursor
            state.items = []
            logger.info(
                "[%s] Empty first page (has_next_page=%s)",
                self._name, result.cursor.has_next_page(),
            )
            if result.cursor.has_next_page():
                self.fetch_more()
            return

        state.cursor = result.cursor
        state.items = []
        state.insert_items(result.items, self._key)
        logger.info("[%s] Loaded %d items", self._name, len(state.items))
        self._schedule_cache(list(state.items))

    def on_fetch_more_completed(self, result: FetchResult) -> None:
        state = self.state
        state.footer_load = LoadState.idle()

        if isinstance(result, FetchError):
            logger.warning("[%s] Fetch more failed: %s", self._name, result.message)
            state.footer_load = LoadState.failed(result)
            return

        state.cursor = result.cursor
        appended = state.insert_items(result.items, self._key)
        logger.info(
            "[%s] Fetched %d items (%d new, %d total)",
            self._name, len(result.items), len(appended), len(state.items),
        )

        if result.items:
            self._schedule_cache(list(result.items))
            state.primary_load = LoadState.idle()
        elif result.cursor.has_next_page():
            self.fetch_more()

    def _anchor(self) -> Optional[Hashable]:
        if self.state.items:
            return self._key(self.state.items[-1])
        return self.state.cursor.next_id

    # ── Cache ────────────────────────────────────────────────

    def _schedule_cache(self, items: list) -> None:
        if self._cache is None:
            return
        self._tasks.detach(self._cache_items(items))

    async def _cache_items(self, items: list) -> None:
        try:
            await self._cache.cache_items(items)
        except Exception as exc:
            logger.warning("[%s] Failed to cache %d items: %s", self._name, len(items), exc)
