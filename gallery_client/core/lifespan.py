"""
Client lifespan management.

Handles startup and shutdown of the long-lived resources and wires the
components together:
  - Logging setup
  - Shared cookie jar and session cookie store
  - HTTP client and request executors
  - MongoDB connection for the gallery cache (optional)
"""

from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator, Optional

import httpx

from gallery_client.core.config import Settings, settings
from gallery_client.core.logging import get_logger, setup_logging
from gallery_client.domain.fetch_controller import PaginatedFetchController
from gallery_client.domain.filters import FilterScope, FilterStore, SearchFilter
from gallery_client.domain.login_flow import LoginController
from gallery_client.domain.models import Gallery
from gallery_client.domain.session_cookies import SessionCookieStore
from gallery_client.infrastructure.cookies.jar import HttpxCookieJar
from gallery_client.infrastructure.crawler.gallery_requests import (
    ImagePageRequestExecutor,
    LoginRequestExecutor,
    PageParser,
    SearchRequestExecutor,
)
from gallery_client.infrastructure.crawler.http_client import GalleryHttpClient
from gallery_client.infrastructure.db.mongo import close_mongo, connect_to_mongo, ensure_indexes
from gallery_client.infrastructure.db.repository import GalleryCacheRepository

logger = get_logger(__name__)


@dataclass
class ClientContext:
    """Fully wired client components for one process."""

    jar: HttpxCookieJar
    cookies: SessionCookieStore
    http: GalleryHttpClient
    filters: FilterStore
    search_executor: SearchRequestExecutor
    image_pages: ImagePageRequestExecutor
    cache: Optional[GalleryCacheRepository] = None
    controllers: list = field(default_factory=list)

    def search_controller(
        self, name: str = "search", scope: FilterScope = FilterScope.SEARCH
    ) -> PaginatedFetchController[Gallery, SearchFilter]:
        controller = PaginatedFetchController(
            executor=self.search_executor,
            filters=self.filters,
            cache=self.cache,
            scope=scope,
            name=name,
        )
        self.controllers.append(controller)
        return controller

    def login_controller(self) -> LoginController:
        controller = LoginController(LoginRequestExecutor(self.http), self.cookies)
        self.controllers.append(controller)
        return controller

    async def close_controller(self, controller) -> None:
        """Cancel a controller's requests and wait out its cache writes before dropping it."""
        controller.teardown()
        await controller.wait_idle()
        if controller in self.controllers:
            self.controllers.remove(controller)


def build_context(
    parser: PageParser,
    config: Settings = settings,
    cache: Optional[GalleryCacheRepository] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> ClientContext:
    jar = HttpxCookieJar()
    cookies = SessionCookieStore(jar, config)
    http = GalleryHttpClient(cookies, jar, config, transport=transport)
    return ClientContext(
        jar=jar,
        cookies=cookies,
        http=http,
        filters=FilterStore(),
        search_executor=SearchRequestExecutor(http, parser, config),
        image_pages=ImagePageRequestExecutor(http, config),
        cache=cache,
    )


@asynccontextmanager
async def lifespan(
    parser: PageParser,
    config: Settings = settings,
    use_cache: bool = True,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> AsyncIterator[ClientContext]:
    """
    Manage the client lifecycle.

    Startup:
      1. Configure logging
      2. Connect to MongoDB and ensure indexes (when caching)
      3. Build cookie store, HTTP client and executors
      4. Reconcile identity cookies across hosts

    Shutdown:
      1. Tear down every open controller and wait for its cache writes
      2. Close MongoDB connection
    """
    # ── Startup ──────────────────────────────────────────────
    setup_logging(config)
    logger.info("Starting gallery client...")

    cache = None
    if use_cache:
        await connect_to_mongo(config)
        await ensure_indexes()
        cache = GalleryCacheRepository()
        logger.info("Gallery cache ready")

    context = build_context(parser, config, cache, transport)
    context.cookies.propagate_identity_across_hosts()
    context.cookies.sync_identity_to_mirror()

    try:
        yield context
    finally:
        # ── Shutdown ─────────────────────────────────────────
        logger.info("Shutting down gallery client...")
        for controller in list(context.controllers):
            await context.close_controller(controller)
        if use_cache:
            await close_mongo()
        logger.info("Shutdown complete")
