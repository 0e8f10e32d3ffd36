"""
Request executors for the gallery hosts.

``SearchRequestExecutor`` builds the first-page and "more" variants of
a keyword search and turns the HTML answer into a ``PageResult`` via an
injected page parser. ``LoginRequestExecutor`` posts the login form.
``ImagePageRequestExecutor`` loads single image pages under ``/s/``,
whose responses carry the skip-server cookie.
"""

from typing import Callable, Hashable, Optional

import httpx

from gallery_client.core.config import Settings, settings
from gallery_client.core.exceptions import NetworkOrServerError
from gallery_client.core.logging import get_logger
from gallery_client.domain.filters import SearchFilter
from gallery_client.domain.models import PageResult
from gallery_client.infrastructure.crawler.http_client import GalleryHttpClient
from gallery_client.utils.url_normalizer import normalize_host_url

logger = get_logger(__name__)

PageParser = Callable[[str], PageResult]


def build_search_params(
    keyword: str,
    search_filter: Optional[SearchFilter] = None,
    last_id: Optional[Hashable] = None,
) -> dict[str, str]:
    """
    Query parameters of a search request.

    The "more" variant continues after ``last_id``, the identity of the
    last item already shown.
    """
    params = {"f_search": keyword}
    if search_filter is not None:
        params.update(search_filter.to_query_params())
    if last_id is not None:
        params["next"] = str(last_id)
    return params


class SearchRequestExecutor:
    """Keyword search against the host the client is browsing."""

    def __init__(
        self,
        client: GalleryHttpClient,
        parser: PageParser,
        config: Settings = settings,
    ) -> None:
        self._client = client
        self._parser = parser
        self._config = config

    @property
    def host(self) -> str:
        return normalize_host_url(self._config.control_host)

    async def fetch_first(self, keyword: str, search_filter: Optional[SearchFilter]) -> PageResult:
        return await self._fetch(build_search_params(keyword, search_filter))

    async def fetch_more(
        self, keyword: str, search_filter: Optional[SearchFilter], last_id: Hashable
    ) -> PageResult:
        return await self._fetch(build_search_params(keyword, search_filter, last_id))

    async def _fetch(self, params: dict[str, str]) -> PageResult:
        response = await self._client.get(self.host, params=params)
        try:
            return self._parser(response.text)
        except ValueError as exc:
            logger.error("Failed to parse search page from %s: %s", self.host, exc)
            raise NetworkOrServerError(f"Unparseable search page: {exc}", url=self.host) from exc


class LoginRequestExecutor:
    """Posts credentials to the login form."""

    def __init__(self, client: GalleryHttpClient, config: Settings = settings) -> None:
        self._client = client
        self._config = config

    async def login(self, username: str, password: str) -> Optional[httpx.Response]:
        return await self._client.post(
            self._config.login_url,
            data={
                "UserName": username,
                "PassWord": password,
                "CookieDate": "1",
            },
        )


class ImagePageRequestExecutor:
    """
    Loads one image page (``/s/<token>/<gid>-<page>``) of a gallery.

    When an image server fails, the page is re-requested with the
    ``nl`` key the previous answer offered; the host then answers with a
    skip-server cookie scoped to ``/s/`` so later image pages avoid the
    failed server. That cookie is harvested onto the control host.
    """

    def __init__(self, client: GalleryHttpClient, config: Settings = settings) -> None:
        self._client = client
        self._config = config

    def page_url(self, path: str) -> str:
        return normalize_host_url(self._config.control_host) + path.lstrip("/")

    async def fetch(self, path: str, reload_key: Optional[str] = None) -> str:
        params = {"nl": reload_key} if reload_key else None
        response = await self._client.get(
            self.page_url(path), params=params, harvest_skip_server=True
        )
        return response.text
