"""
HTTP client for talking to the gallery hosts.

Uses httpx.AsyncClient bound to the shared cookie jar, so identity
cookies are attached to every request and cookies set by responses
land back in the same jar. Every ``Set-Cookie`` header is additionally
fed to the session cookie store, which mirrors identity cookies onto
the other hosts.

Errors are classified as:
  - PermanentNetworkError: 4xx, DNS not found, redirect loops (no retry)
  - TransientNetworkError: 5xx, timeouts, connection resets (retry)
"""

from typing import Any, Optional

import httpx

from gallery_client.core.config import Settings, settings
from gallery_client.core.exceptions import (
    NetworkOrServerError,
    PermanentNetworkError,
    TransientNetworkError,
)
from gallery_client.core.logging import get_logger
from gallery_client.domain.session_cookies import SessionCookieStore
from gallery_client.infrastructure.cookies.jar import HttpxCookieJar

logger = get_logger(__name__)

# HTTP status codes that indicate permanent failure (never retry)
PERMANENT_STATUS_CODES = {400, 401, 403, 404, 405, 406, 410, 414, 451}

# HTTP status codes that indicate transient failure (worth retrying)
TRANSIENT_STATUS_CODES = {408, 429, 500, 502, 503, 504}

DNS_FAILURE_MARKERS = (
    "name or service not known",
    "nodename nor servname",
    "no address associated",
    "getaddrinfo failed",
)


class GalleryHttpClient:
    """
    Issue requests against the gallery hosts with the shared cookie jar.

    Args:
        cookies: Session cookie store that ingests response headers.
        jar: The jar attached to outgoing requests.
        config: Client settings (timeouts, user agent).
        transport: Optional httpx transport, e.g. ``httpx.MockTransport``.
    """

    def __init__(
        self,
        cookies: SessionCookieStore,
        jar: HttpxCookieJar,
        config: Settings = settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._cookies = cookies
        self._jar = jar
        self._config = config
        self._transport = transport

    async def get(
        self,
        url: str,
        params: Optional[dict[str, Any]] = None,
        harvest_skip_server: bool = False,
    ) -> httpx.Response:
        return await self.request(
            "GET", url, params=params, harvest_skip_server=harvest_skip_server
        )

    async def post(self, url: str, data: Optional[dict[str, Any]] = None) -> httpx.Response:
        return await self.request("POST", url, data=data)

    async def request(
        self,
        method: str,
        url: str,
        params: Optional[dict[str, Any]] = None,
        data: Optional[dict[str, Any]] = None,
        harvest_skip_server: bool = False,
    ) -> httpx.Response:
        """
        Send a request and return the response.

        Args:
            method: HTTP method.
            url: Absolute URL on one of the gallery hosts.
            params: Query parameters.
            data: Form body.
            harvest_skip_server: Also ingest the skip-server marker cookie.

        Returns:
            The httpx response (status < 400, or an unclassified status).

        Raises:
            PermanentNetworkError: For non-retryable failures (4xx, DNS).
            TransientNetworkError: For retryable failures (5xx, timeouts).
        """
        timeout = httpx.Timeout(
            timeout=self._config.http_timeout,
            connect=10.0,
        )

        try:
            async with httpx.AsyncClient(
                timeout=timeout,
                follow_redirects=True,
                max_redirects=10,
                cookies=self._jar.jar,
                headers={"User-Agent": self._config.user_agent},
                transport=self._transport,
            ) as client:
                logger.info("%s url=%s", method, url)
                response = await client.request(method, url, params=params, data=data)

                set_cookie = response.headers.get("set-cookie")
                if set_cookie:
                    self._cookies.ingest_set_cookie_header(set_cookie)
                    if harvest_skip_server:
                        self._cookies.ingest_skip_server_header(set_cookie)

                if response.status_code in PERMANENT_STATUS_CODES:
                    raise PermanentNetworkError(
                        f"HTTP {response.status_code}: permanent failure", url=url
                    )

                if response.status_code in TRANSIENT_STATUS_CODES:
                    raise TransientNetworkError(
                        f"HTTP {response.status_code}: server error, retryable", url=url
                    )

                logger.info(
                    "Received url=%s (status=%d, size=%d bytes)",
                    url,
                    response.status_code,
                    len(response.content),
                )
                return response

        except (PermanentNetworkError, TransientNetworkError):
            raise

        except httpx.TimeoutException as exc:
            logger.warning("Timeout requesting url=%s: %s", url, exc)
            raise TransientNetworkError(
                f"Request timed out after {self._config.http_timeout}s", url=url
            ) from exc

        except httpx.TooManyRedirects as exc:
            logger.warning("Too many redirects for url=%s: %s", url, exc)
            raise PermanentNetworkError("Too many redirects", url=url) from exc

        except httpx.ConnectError as exc:
            error_str = str(exc).lower()
            if any(marker in error_str for marker in DNS_FAILURE_MARKERS):
                logger.warning("DNS resolution failed for url=%s: %s", url, exc)
                raise PermanentNetworkError(
                    f"DNS resolution failed, domain does not exist: {exc}", url=url
                ) from exc

            logger.warning("Connection failed for url=%s: %s", url, exc)
            raise TransientNetworkError(f"Connection failed: {exc}", url=url) from exc

        except httpx.HTTPError as exc:
            logger.error("Unexpected HTTP error for url=%s: %s", url, exc)
            raise NetworkOrServerError(str(exc), url=url) from exc
