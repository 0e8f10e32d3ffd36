"""
Unit tests for the search and login request executors.

Tests cover:
  - Query parameters built from keyword, filter and anchor id
  - Parser failures surfacing as NetworkOrServerError
  - Login form submission
"""

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from gallery_client.core.exceptions import NetworkOrServerError
from gallery_client.domain.filters import FilterScope, FilterStore, SearchFilter
from gallery_client.infrastructure.crawler.gallery_requests import (
    ImagePageRequestExecutor,
    LoginRequestExecutor,
    SearchRequestExecutor,
    build_search_params,
)


@pytest.fixture
def http_client():
    client = MagicMock()
    client.get = AsyncMock(return_value=httpx.Response(200, text="<html>page</html>"))
    client.post = AsyncMock(return_value=httpx.Response(200))
    return client


class TestBuildSearchParams:
    """Tests for build_search_params."""

    def test_keyword_only(self):
        assert build_search_params("touhou") == {"f_search": "touhou"}

    def test_filter_and_anchor(self):
        search_filter = SearchFilter(
            excluded_categories=["non-h", "doujinshi"],
            minimum_rating=4,
            page_range=(10, 200),
        )

        params = build_search_params("touhou", search_filter, last_id=1234)

        assert params == {
            "f_search": "touhou",
            "f_cats_excluded": "doujinshi,non-h",
            "f_sr": "on",
            "f_srdd": "4",
            "f_sp": "on",
            "f_spf": "10",
            "f_spt": "200",
            "next": "1234",
        }

    def test_default_filter_adds_nothing(self):
        assert build_search_params("", SearchFilter()) == {"f_search": ""}

    def test_tag_and_expunged_switches(self):
        params = SearchFilter(search_tags=False, show_expunged=True).to_query_params()
        assert params == {"f_stags": "off", "f_sh": "on"}


class TestFilterStore:
    def test_unsaved_scope_returns_defaults(self):
        assert FilterStore().fetch_filter(FilterScope.SEARCH) == SearchFilter()

    def test_save_fetch_and_reset(self):
        store = FilterStore()
        store.save_filter(FilterScope.GLOBAL, SearchFilter(minimum_rating=3))

        fetched = store.fetch_filter(FilterScope.GLOBAL)
        fetched.excluded_categories.append("misc")

        assert store.fetch_filter(FilterScope.GLOBAL).excluded_categories == []
        assert store.fetch_filter(FilterScope.SEARCH).minimum_rating is None

        store.reset_filter(FilterScope.GLOBAL)
        assert store.fetch_filter(FilterScope.GLOBAL).minimum_rating is None


@pytest.mark.asyncio
class TestSearchRequestExecutor:
    """Tests for SearchRequestExecutor."""

    async def test_fetch_first_parses_control_host_page(self, http_client, test_settings, page_factory):
        page = page_factory([], 0, 1)
        parser = MagicMock(return_value=page)
        executor = SearchRequestExecutor(http_client, parser, test_settings)

        result = await executor.fetch_first("touhou", SearchFilter(minimum_rating=5))

        assert result is page
        parser.assert_called_once_with("<html>page</html>")
        http_client.get.assert_awaited_once_with(
            "https://e-hentai.org/",
            params={"f_search": "touhou", "f_sr": "on", "f_srdd": "5"},
        )

    async def test_fetch_more_sends_anchor(self, http_client, test_settings, page_factory):
        executor = SearchRequestExecutor(http_client, MagicMock(return_value=page_factory([], 1, 3)), test_settings)

        await executor.fetch_more("touhou", None, "2001")

        _, kwargs = http_client.get.call_args
        assert kwargs["params"] == {"f_search": "touhou", "next": "2001"}

    async def test_parser_failure_becomes_network_or_server_error(self, http_client, test_settings):
        parser = MagicMock(side_effect=ValueError("no gallery table"))
        executor = SearchRequestExecutor(http_client, parser, test_settings)

        with pytest.raises(NetworkOrServerError) as exc_info:
            await executor.fetch_first("touhou", None)

        assert "no gallery table" in exc_info.value.message


@pytest.mark.asyncio
class TestLoginRequestExecutor:
    async def test_posts_login_form(self, http_client, test_settings):
        executor = LoginRequestExecutor(http_client, test_settings)

        response = await executor.login("user", "hunter2")

        assert response.status_code == 200
        http_client.post.assert_awaited_once_with(
            test_settings.login_url,
            data={"UserName": "user", "PassWord": "hunter2", "CookieDate": "1"},
        )


@pytest.mark.asyncio
class TestImagePageRequestExecutor:
    async def test_fetch_harvests_skip_server_cookie(self, http_client, test_settings):
        executor = ImagePageRequestExecutor(http_client, test_settings)

        text = await executor.fetch("/s/0a1b2c/1234-5")

        assert text == "<html>page</html>"
        http_client.get.assert_awaited_once_with(
            "https://e-hentai.org/s/0a1b2c/1234-5", params=None, harvest_skip_server=True
        )

    async def test_reload_sends_nl_key(self, http_client, test_settings):
        executor = ImagePageRequestExecutor(http_client, test_settings)

        await executor.fetch("s/0a1b2c/1234-5", reload_key="3456-78901")

        _, kwargs = http_client.get.call_args
        assert kwargs["params"] == {"nl": "3456-78901"}
