"""
Shared test fixtures for the gallery client test suite.

Provides:
  - In-memory cookie jar and a session cookie store on top of it
  - Sample galleries and page results
  - Mock request executor, filter provider and gallery cache
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from gallery_client.core.config import Settings
from gallery_client.domain.filters import SearchFilter
from gallery_client.domain.models import CookieRecord, Gallery, PageCursor, PageResult
from gallery_client.domain.session_cookies import SessionCookieStore
from gallery_client.utils.url_normalizer import domain_matches

PRIMARY = "https://e-hentai.org/"
RESTRICTED = "https://exhentai.org/"
MIRROR = "https://s.exhentai.org/"


class InMemoryCookieJar:
    """``CookieJar`` fake holding records in a list, in insertion order."""

    def __init__(self) -> None:
        self.records: list[CookieRecord] = []

    def cookies_for(self, hostname: str) -> list[CookieRecord]:
        return [r for r in self.records if domain_matches(r.domain, hostname)]

    def all_cookies(self) -> list[CookieRecord]:
        return list(self.records)

    def store(self, record: CookieRecord) -> None:
        self.delete(record)
        self.records.append(record)

    def delete(self, record: CookieRecord) -> None:
        self.records = [
            r
            for r in self.records
            if (r.domain, r.path, r.name) != (record.domain, record.path, record.name)
        ]


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        primary_host=PRIMARY,
        restricted_host=RESTRICTED,
        mirror_host=MIRROR,
        control_host=PRIMARY,
        _env_file=None,
    )


@pytest.fixture
def cookie_jar() -> InMemoryCookieJar:
    return InMemoryCookieJar()


@pytest.fixture
def cookie_store(cookie_jar, test_settings) -> SessionCookieStore:
    return SessionCookieStore(cookie_jar, test_settings)


def make_galleries(start: int, count: int) -> list[Gallery]:
    return [
        Gallery(gid=str(gid), token=f"tok{gid}", title=f"Gallery {gid}")
        for gid in range(start, start + count)
    ]


def make_page(items: list[Gallery], current: int, maximum: int) -> PageResult:
    return PageResult(cursor=PageCursor(current=current, maximum=maximum), items=items)


@pytest.fixture
def gallery_factory():
    """``gallery_factory(start, count)`` → galleries with gids start..start+count-1."""
    return make_galleries


@pytest.fixture
def page_factory():
    """``page_factory(items, current, maximum)`` → PageResult."""
    return make_page


@pytest.fixture
def mock_executor():
    """Request executor with async fetch_first / fetch_more."""
    executor = MagicMock()
    executor.fetch_first = AsyncMock(return_value=make_page([], 0, 0))
    executor.fetch_more = AsyncMock(return_value=make_page([], 0, 0))
    return executor


@pytest.fixture
def mock_filters():
    filters = MagicMock()
    filters.fetch_filter.return_value = SearchFilter(minimum_rating=4)
    return filters


@pytest.fixture
def mock_cache():
    cache = MagicMock()
    cache.cache_items = AsyncMock()
    return cache
