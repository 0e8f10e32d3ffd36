"""
Cookie jar abstraction.

The session cookie store never touches a concrete jar directly; it
talks to the ``CookieJar`` protocol so tests can swap in an in-memory
fake. ``HttpxCookieJar`` is the live implementation: it wraps the
standard library ``http.cookiejar.CookieJar`` that httpx uses, so the
very same jar is attached to every outgoing request made by
``GalleryHttpClient`` and receives every cookie httpx extracts from
responses.

The jar is shared process-wide and offers no transactions: each call
is atomic for a single cookie only.
"""

from datetime import datetime, timezone
from http.cookiejar import Cookie, CookieJar as StdlibCookieJar
from typing import Protocol

import httpx

from gallery_client.core.logging import get_logger
from gallery_client.domain.models import CookieRecord
from gallery_client.utils.url_normalizer import domain_matches

logger = get_logger(__name__)


class CookieJar(Protocol):
    """Storage capability the session cookie store depends on."""

    def cookies_for(self, hostname: str) -> list[CookieRecord]:
        """Every cookie applicable to ``hostname``, in storage order."""
        ...

    def all_cookies(self) -> list[CookieRecord]:
        ...

    def store(self, record: CookieRecord) -> None:
        """Insert, replacing any cookie with the same domain, path and name."""
        ...

    def delete(self, record: CookieRecord) -> None:
        """Delete the cookie with the record's domain, path and name, if any."""
        ...


class HttpxCookieJar:
    """``CookieJar`` backed by the stdlib jar httpx sends cookies from."""

    def __init__(self, jar: StdlibCookieJar | None = None) -> None:
        self._jar = jar if jar is not None else StdlibCookieJar()

    @property
    def jar(self) -> StdlibCookieJar:
        """The underlying jar; pass this to ``httpx.AsyncClient(cookies=...)``."""
        return self._jar

    @property
    def httpx_cookies(self) -> httpx.Cookies:
        """An ``httpx.Cookies`` view sharing the same underlying jar."""
        return httpx.Cookies(self._jar)

    def cookies_for(self, hostname: str) -> list[CookieRecord]:
        return [
            _to_record(cookie)
            for cookie in list(self._jar)
            if domain_matches(cookie.domain, hostname)
        ]

    def all_cookies(self) -> list[CookieRecord]:
        return [_to_record(cookie) for cookie in list(self._jar)]

    def store(self, record: CookieRecord) -> None:
        self._jar.set_cookie(_to_cookie(record))
        logger.debug(
            "Stored cookie name=%s domain=%s path=%s",
            record.name, record.domain, record.path,
        )

    def delete(self, record: CookieRecord) -> None:
        try:
            self._jar.clear(record.domain, record.path, record.name)
        except KeyError:
            # Already gone
            return
        logger.debug(
            "Deleted cookie name=%s domain=%s path=%s",
            record.name, record.domain, record.path,
        )


def _to_record(cookie: Cookie) -> CookieRecord:
    expires_at = None
    if cookie.expires is not None:
        expires_at = datetime.fromtimestamp(cookie.expires, tz=timezone.utc)
    return CookieRecord(
        domain=cookie.domain,
        name=cookie.name,
        value=cookie.value or "",
        path=cookie.path or "/",
        expires_at=expires_at,
    )


def _to_cookie(record: CookieRecord) -> Cookie:
    expires = None
    if record.expires_at is not None:
        expires = int(record.expires_at.timestamp())
    is_domain_cookie = record.domain.startswith(".")
    return Cookie(
        version=0,
        name=record.name,
        value=record.value,
        port=None,
        port_specified=False,
        domain=record.domain,
        domain_specified=is_domain_cookie,
        domain_initial_dot=is_domain_cookie,
        path=record.path,
        path_specified=True,
        secure=False,
        expires=expires,
        discard=expires is None,
        comment=None,
        comment_url=None,
        rest={},
        rfc2109=False,
    )
