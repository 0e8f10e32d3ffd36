"""
Domain models: pure data structures for the gallery client.

Cookie and gallery records are Pydantic models; the mutable listing
state owned by a fetch controller is a plain dataclass.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Generic, Hashable, Optional, TypeVar

from pydantic import BaseModel, Field

from gallery_client.core.exceptions import FetchError

ItemT = TypeVar("ItemT")


class CookieStatus(str, Enum):
    """Outcome of a cookie read. Callers branch on this, never on the raw value."""

    OK = "ok"
    EMPTY = "empty"
    EXPIRED = "expired"
    MYSTERY = "mystery"


class CookieValue(BaseModel):
    """Read-model returned by every cookie lookup."""

    raw_value: str = Field(default="", description="Cookie value as stored")
    status: CookieStatus = Field(default=CookieStatus.EMPTY)

    model_config = {"frozen": True}

    @classmethod
    def empty(cls) -> "CookieValue":
        return cls()

    @property
    def is_ok(self) -> bool:
        return self.status is CookieStatus.OK


class CookieRecord(BaseModel):
    """
    A single cookie as held by the cookie jar.

    ``domain`` is the host the cookie is scoped to; a leading dot marks a
    domain cookie that also applies to subdomains. ``expires_at`` of None
    is a session cookie that never expires while the process lives.
    """

    domain: str
    name: str
    value: str = ""
    path: str = "/"
    expires_at: Optional[datetime] = None

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.expires_at is None:
            return False
        now = now or datetime.now(timezone.utc)
        expires_at = self.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return expires_at <= now


class GalleryHost(str, Enum):
    """Hosts a user can hold an identity for."""

    PRIMARY = "primary"
    RESTRICTED = "restricted"


class SessionIdentity(BaseModel):
    """The identity cookies of one host."""

    host: GalleryHost
    member_id: CookieValue = Field(default_factory=CookieValue.empty)
    pass_hash: CookieValue = Field(default_factory=CookieValue.empty)
    igneous: CookieValue = Field(default_factory=CookieValue.empty)

    @property
    def is_logged_in(self) -> bool:
        return self.member_id.is_ok and self.pass_hash.is_ok


class PageCursor(BaseModel):
    """
    Pagination position returned alongside each page of results.

    ``current`` is the zero-based index of the page just fetched and
    ``maximum`` the total page count reported by the server. ``next_id``
    is the item id the server continues the next page from, when the
    page links one; it lets a page that came back empty be continued.
    A cursor is only meaningful for the keyword and filter that produced it.
    """

    current: int = 0
    maximum: int = 0
    next_id: Optional[str] = None

    model_config = {"frozen": True}

    def has_next_page(self) -> bool:
        return self.current + 1 < self.maximum

    @classmethod
    def initial(cls) -> "PageCursor":
        return cls()


class Gallery(BaseModel):
    """A listing entry. Identity is ``gid``."""

    gid: str = Field(..., description="Gallery identifier")
    token: str = Field(default="", description="Gallery access token")
    title: str = Field(default="")
    category: str = Field(default="")
    uploader: Optional[str] = None
    posted_at: Optional[datetime] = None
    page_count: int = Field(default=0)
    cover_url: Optional[str] = None


class LoadStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    FAILED = "failed"


@dataclass(frozen=True)
class LoadState:
    """``idle | loading | failed(error)``."""

    status: LoadStatus = LoadStatus.IDLE
    error: Optional[FetchError] = None

    @classmethod
    def idle(cls) -> "LoadState":
        return cls(LoadStatus.IDLE)

    @classmethod
    def loading(cls) -> "LoadState":
        return cls(LoadStatus.LOADING)

    @classmethod
    def failed(cls, error: FetchError) -> "LoadState":
        return cls(LoadStatus.FAILED, error)

    @property
    def is_idle(self) -> bool:
        return self.status is LoadStatus.IDLE

    @property
    def is_loading(self) -> bool:
        return self.status is LoadStatus.LOADING

    @property
    def is_failed(self) -> bool:
        return self.status is LoadStatus.FAILED


@dataclass(frozen=True)
class PageResult(Generic[ItemT]):
    """One page of results as returned by a request executor."""

    cursor: PageCursor
    items: list[ItemT] = field(default_factory=list)


@dataclass
class ListingState(Generic[ItemT]):
    """
    State of one paginated listing screen.

    ``items`` never holds two entries with the same identity and keeps
    insertion order. ``last_keyword`` survives clearing ``keyword`` so a
    retry or "load more" still targets the last real search term.
    """

    keyword: str = ""
    last_keyword: str = ""
    cursor: PageCursor = field(default_factory=PageCursor.initial)
    items: list[ItemT] = field(default_factory=list)
    primary_load: LoadState = field(default_factory=LoadState.idle)
    footer_load: LoadState = field(default_factory=LoadState.idle)

    def set_keyword(self, keyword: str) -> None:
        self.keyword = keyword
        if keyword:
            self.last_keyword = keyword

    def insert_items(
        self, items: list[ItemT], key: Callable[[ItemT], Hashable]
    ) -> list[ItemT]:
        """Append items whose identity is not present yet. Returns the appended ones."""
        seen = {key(item) for item in self.items}
        appended = []
        for item in items:
            identity = key(item)
            if identity in seen:
                continue
            seen.add(identity)
            self.items.append(item)
            appended.append(item)
        return appended
