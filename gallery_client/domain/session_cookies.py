"""
Session cookie store: identity cookies across the mirrored hosts.

The service serves the same content from a primary host, a restricted
host that needs elevated session cookies, and a mirror of the
restricted host. This module keeps the identity cookies
(member id, pass hash, igneous) consistent across them and harvests
fresh ones from ``Set-Cookie`` response headers.

Cookie absence is never an error: every read returns a ``CookieValue``
whose status tells the caller what was found.

Writes go straight to the shared jar with no locking. In particular
``set_or_update_cookie`` checks for an existing cookie and then writes,
so two concurrent calls for the same cookie may leave either value
behind. Cookie writes here are driven by user-initiated, naturally
serialised events (a login completing, one response at a time).
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Mapping, Optional

from pydantic import ValidationError

from gallery_client.core.config import Settings, settings
from gallery_client.core.logging import get_logger
from gallery_client.domain.models import (
    CookieRecord,
    CookieStatus,
    CookieValue,
    GalleryHost,
    SessionIdentity,
)
from gallery_client.infrastructure.cookies.jar import CookieJar
from gallery_client.utils.url_normalizer import hostname_of, normalize_host_url

logger = get_logger(__name__)

# Delimiters of a raw Set-Cookie header: cookie pairs, then attributes
PAIR_SEPARATOR = ", "
ATTRIBUTE_SEPARATOR = "; "

SKIP_SERVER_PATH = "/s/"


def split_set_cookie_header(raw_header: str) -> list[str]:
    """Split a raw Set-Cookie header into its ``name=value`` / attribute fields."""
    return [
        field
        for pair in raw_header.split(PAIR_SEPARATOR)
        for field in pair.split(ATTRIBUTE_SEPARATOR)
    ]


def _value_after(field: str, name: str) -> Optional[str]:
    marker = f"{name}="
    index = field.find(marker)
    if index == -1:
        return None
    return field[index + len(marker):]


class SessionCookieStore:
    """Read, write and synchronise identity cookies through a ``CookieJar``."""

    def __init__(self, jar: CookieJar, config: Settings = settings) -> None:
        self._jar = jar
        self._config = config

    # ── Hosts ────────────────────────────────────────────────

    @property
    def primary_host(self) -> str:
        return normalize_host_url(self._config.primary_host)

    @property
    def restricted_host(self) -> str:
        return normalize_host_url(self._config.restricted_host)

    @property
    def mirror_host(self) -> str:
        return normalize_host_url(self._config.mirror_host)

    @property
    def control_host(self) -> str:
        return normalize_host_url(self._config.control_host)

    @property
    def identity_cookie_names(self) -> tuple[str, str, str]:
        return (
            self._config.member_id_cookie,
            self._config.pass_hash_cookie,
            self._config.igneous_cookie,
        )

    def host_url(self, host: GalleryHost) -> str:
        return self.cookie_urls(host)[0]

    def cookie_urls(self, host: GalleryHost) -> list[str]:
        """Every host URL an identity for ``host`` must be written to."""
        if host is GalleryHost.PRIMARY:
            return [self.primary_host]
        return [self.restricted_host, self.mirror_host]

    # ── Primitive operations ─────────────────────────────────

    def get_cookie(self, host: str, name: str) -> CookieValue:
        """
        Read the cookie ``name`` stored for ``host``.

        Returns:
            ``empty`` when missing or blank, ``expired`` (raw value
            suppressed) when past its expiry, ``mystery`` (raw value kept)
            for the placeholder value, ``ok`` otherwise. If the host holds
            several matching cookies the last one wins.
        """
        value = CookieValue.empty()
        now = datetime.now(timezone.utc)

        for record in self._jar.cookies_for(hostname_of(host)):
            if record.name != name or not record.value:
                continue
            if record.is_expired(now):
                value = CookieValue(raw_value="", status=CookieStatus.EXPIRED)
            elif record.value == self._config.mystery_value:
                value = CookieValue(raw_value=record.value, status=CookieStatus.MYSTERY)
            else:
                value = CookieValue(raw_value=record.value, status=CookieStatus.OK)

        return value

    def cookie_exists(self, host: str, name: str) -> bool:
        return any(
            record.name == name
            for record in self._jar.cookies_for(hostname_of(host))
        )

    def remove_cookie(self, host: str, name: str) -> None:
        for record in self._jar.cookies_for(hostname_of(host)):
            if record.name == name:
                self._jar.delete(record)

    def clear_all_cookies(self) -> None:
        """Delete every cookie in the jar (logout)."""
        records = self._jar.all_cookies()
        for record in records:
            self._jar.delete(record)
        logger.info("Cleared all cookies (%d removed)", len(records))

    def set_cookie(
        self,
        host: str,
        name: str,
        value: Any,
        path: str = "/",
        ttl: Optional[int] = None,
    ) -> None:
        """Insert a new cookie, replacing one with the same name and path."""
        record = self._build_record(host, name, value, path, ttl)
        if record is None:
            return
        self._jar.store(record)

    def update_cookie(self, host: str, name: str, value: Any) -> None:
        """Change the value of an existing cookie, keeping its other properties."""
        new_record: Optional[CookieRecord] = None
        for record in self._jar.cookies_for(hostname_of(host)):
            if record.name != name:
                continue
            new_record = self._rebuild_record(record, value)
            self._jar.delete(record)

        if new_record is not None:
            self._jar.store(new_record)

    def set_or_update_cookie(
        self,
        host: str,
        name: str,
        value: Any,
        path: str = "/",
        ttl: Optional[int] = None,
    ) -> None:
        if self.cookie_exists(host, name):
            self.update_cookie(host, name, value)
        else:
            self.set_cookie(host, name, value, path=path, ttl=ttl)

    def _build_record(
        self, host: str, name: str, value: Any, path: str, ttl: Optional[int]
    ) -> Optional[CookieRecord]:
        hostname = hostname_of(host)
        if not hostname or not name:
            logger.warning("Skipping cookie with no host or name (host=%r, name=%r)", host, name)
            return None

        ttl = self._config.cookie_ttl if ttl is None else ttl
        try:
            return CookieRecord(
                domain=hostname,
                name=name,
                value=value,
                path=path,
                expires_at=datetime.now(timezone.utc) + timedelta(seconds=ttl),
            )
        except ValidationError as exc:
            logger.warning("Skipping malformed cookie name=%s host=%s: %s", name, hostname, exc)
            return None

    def _rebuild_record(self, record: CookieRecord, value: Any) -> CookieRecord:
        """Copy ``record`` with a new value; a malformed result degrades to an empty cookie."""
        try:
            return CookieRecord.model_validate({**record.model_dump(), "value": value})
        except ValidationError as exc:
            logger.warning(
                "Malformed value for cookie name=%s domain=%s, storing it empty: %s",
                record.name, record.domain, exc,
            )
            return record.model_copy(update={"value": ""})

    # ── Host synchronisation ─────────────────────────────────

    def sync_identity_to_mirror(self) -> None:
        """Copy the restricted host's identity cookies onto the mirror host."""
        for name in self.identity_cookie_names:
            self.set_or_update_cookie(
                self.mirror_host,
                name,
                self.get_cookie(self.restricted_host, name).raw_value,
            )

    def propagate_identity_across_hosts(self) -> None:
        """
        Fill in a host that is missing member id or pass hash from the other.

        Primary → restricted is checked first; restricted → primary only
        runs when the first direction does not apply.
        """
        member_key = self._config.member_id_cookie
        pass_key = self._config.pass_hash_cookie
        primary, restricted = self.primary_host, self.restricted_host

        primary_member = self.get_cookie(primary, member_key).raw_value
        primary_pass = self.get_cookie(primary, pass_key).raw_value
        restricted_member = self.get_cookie(restricted, member_key).raw_value
        restricted_pass = self.get_cookie(restricted, pass_key).raw_value

        if primary_member and primary_pass and not (restricted_member and restricted_pass):
            logger.info("Propagating identity from %s to %s", primary, restricted)
            self.set_or_update_cookie(restricted, member_key, primary_member)
            self.set_or_update_cookie(restricted, pass_key, primary_pass)
        elif restricted_member and restricted_pass and not (primary_member and primary_pass):
            logger.info("Propagating identity from %s to %s", restricted, primary)
            self.set_or_update_cookie(primary, member_key, restricted_member)
            self.set_or_update_cookie(primary, pass_key, restricted_pass)

    # ── Response header ingestion ────────────────────────────

    def ingest_set_cookie_header(self, raw_header: Optional[str]) -> None:
        """
        Harvest identity cookies from a raw ``Set-Cookie`` header.

        Best-effort text scan: unknown attributes are ignored and missing
        cookies are skipped. Member id and pass hash are written to both
        the primary and restricted hosts; igneous to the restricted host
        only, as it is never valid on the primary host.
        """
        if not raw_header:
            return

        igneous_key = self._config.igneous_cookie
        hosts = (self.primary_host, self.restricted_host)

        for field in split_set_cookie_header(raw_header):
            for host in hosts:
                for name in self.identity_cookie_names:
                    if host == self.primary_host and name == igneous_key:
                        continue
                    value = _value_after(field, name)
                    if value is None:
                        continue
                    self.set_cookie(host, name, value)
                    logger.debug("Ingested cookie name=%s for host=%s", name, host)

    def ingest_skip_server_header(self, raw_header: Optional[str]) -> None:
        """Harvest the skip-server marker cookie onto the control host."""
        if not raw_header:
            return

        name = self._config.skip_server_cookie
        for field in split_set_cookie_header(raw_header):
            value = _value_after(field, name)
            if value is None:
                continue
            self.set_cookie(self.control_host, name, value, path=SKIP_SERVER_PATH)
            logger.debug("Ingested skip-server cookie for host=%s", self.control_host)

    # ── Derived accessors ────────────────────────────────────

    def is_host_logged_in(self, host: str) -> bool:
        return (
            self.get_cookie(host, self._config.member_id_cookie).is_ok
            and self.get_cookie(host, self._config.pass_hash_cookie).is_ok
        )

    @property
    def is_logged_in(self) -> bool:
        return self.is_host_logged_in(self.primary_host) or self.is_host_logged_in(
            self.restricted_host
        )

    @property
    def api_user_id(self) -> str:
        return self.get_cookie(self.control_host, self._config.member_id_cookie).raw_value

    @property
    def is_same_identity_on_both_hosts(self) -> bool:
        key = self._config.member_id_cookie
        primary_uid = self.get_cookie(self.primary_host, key).raw_value
        restricted_uid = self.get_cookie(self.restricted_host, key).raw_value
        if primary_uid and restricted_uid:
            return primary_uid == restricted_uid
        return False

    @property
    def needs_elevated_token(self) -> bool:
        host = self.restricted_host
        return (
            self.is_host_logged_in(host)
            and not self.get_cookie(host, self._config.igneous_cookie).raw_value
        )

    # ── Identity helpers ─────────────────────────────────────

    def remove_yay(self) -> None:
        """Drop the ``yay`` cookie that blocks the restricted host and its mirror."""
        for host in (self.restricted_host, self.mirror_host):
            self.remove_cookie(host, self._config.yay_cookie)

    def ignore_offensive(self) -> None:
        """Opt out of the content warning interstitial on both hosts."""
        for host in (self.primary_host, self.restricted_host):
            self.set_or_update_cookie(host, self._config.ignore_offensive_cookie, "1")

    def load_identity(self, host: GalleryHost) -> SessionIdentity:
        url = self.host_url(host)
        return SessionIdentity(
            host=host,
            member_id=self.get_cookie(url, self._config.member_id_cookie),
            pass_hash=self.get_cookie(url, self._config.pass_hash_cookie),
            igneous=self.get_cookie(url, self._config.igneous_cookie),
        )

    def describe_identity(self, host: GalleryHost) -> dict[str, str]:
        """Non-empty identity cookie values of ``host`` keyed by cookie name."""
        url = self.host_url(host)
        description = {}
        for name in self.identity_cookie_names:
            raw_value = self.get_cookie(url, name).raw_value
            if raw_value:
                description[name] = raw_value
        return description

    def apply_identity(
        self,
        host: GalleryHost,
        values: Mapping[str, str],
        trim_spaces: bool = True,
    ) -> None:
        """
        Write user-edited identity values to every cookie URL of ``host``.

        Args:
            host: Host whose identity is being edited.
            values: Cookie name → new value; names outside the identity
                set are ignored.
            trim_spaces: Strip surrounding whitespace from each value.
        """
        for name in self.identity_cookie_names:
            if name not in values:
                continue
            value = values[name].strip() if trim_spaces else values[name]
            for url in self.cookie_urls(host):
                self.set_or_update_cookie(url, name, value)
