"""
Unit tests for the httpx-backed cookie jar.

Tests cover:
  - Host matching for host-only and domain cookies
  - Store / replace / delete semantics
  - Expiry round trip through the stdlib jar
  - Sharing the jar with httpx
"""

from datetime import datetime, timedelta, timezone

import httpx

from gallery_client.domain.models import CookieRecord
from gallery_client.domain.session_cookies import SessionCookieStore
from gallery_client.infrastructure.cookies.jar import HttpxCookieJar


class TestHttpxCookieJar:
    """Tests for HttpxCookieJar."""

    def test_cookies_for_matches_host_only_cookie_exactly(self):
        jar = HttpxCookieJar()
        jar.store(CookieRecord(domain="exhentai.org", name="igneous", value="abc"))

        assert [r.value for r in jar.cookies_for("exhentai.org")] == ["abc"]
        assert jar.cookies_for("s.exhentai.org") == []
        assert jar.cookies_for("e-hentai.org") == []

    def test_domain_cookie_matches_subdomains(self):
        jar = HttpxCookieJar()
        jar.store(CookieRecord(domain=".exhentai.org", name="igneous", value="abc"))

        assert len(jar.cookies_for("s.exhentai.org")) == 1
        assert len(jar.cookies_for("exhentai.org")) == 1

    def test_store_replaces_same_domain_path_and_name(self):
        jar = HttpxCookieJar()
        jar.store(CookieRecord(domain="e-hentai.org", name="ipb_member_id", value="1"))
        jar.store(CookieRecord(domain="e-hentai.org", name="ipb_member_id", value="2"))

        records = jar.all_cookies()
        assert len(records) == 1
        assert records[0].value == "2"

    def test_delete_and_delete_missing(self):
        jar = HttpxCookieJar()
        record = CookieRecord(domain="e-hentai.org", name="ipb_member_id", value="1")
        jar.store(record)

        jar.delete(record)
        jar.delete(record)

        assert jar.all_cookies() == []

    def test_expiry_round_trip(self):
        jar = HttpxCookieJar()
        expires = datetime(2099, 6, 1, 12, 0, tzinfo=timezone.utc)
        jar.store(
            CookieRecord(
                domain="e-hentai.org", name="ipb_pass_hash", value="x",
                path="/s/", expires_at=expires,
            )
        )

        record = jar.all_cookies()[0]
        assert record.expires_at == expires
        assert record.path == "/s/"
        assert not record.is_expired()

    def test_session_cookie_has_no_expiry(self):
        jar = HttpxCookieJar()
        jar.store(CookieRecord(domain="e-hentai.org", name="sk", value="x"))
        assert jar.all_cookies()[0].expires_at is None

    def test_httpx_view_shares_the_jar(self, test_settings):
        jar = HttpxCookieJar()
        store = SessionCookieStore(jar, test_settings)
        store.set_cookie("https://e-hentai.org/", "ipb_member_id", "42")

        assert jar.httpx_cookies.get("ipb_member_id", domain="e-hentai.org") == "42"

    def test_expired_record_reads_as_expired(self):
        jar = HttpxCookieJar()
        jar.store(
            CookieRecord(
                domain="e-hentai.org", name="ipb_member_id", value="x",
                expires_at=datetime.now(timezone.utc) - timedelta(hours=1),
            )
        )
        assert jar.all_cookies()[0].is_expired()


def test_jar_attaches_cookies_to_httpx_requests():
    jar = HttpxCookieJar()
    jar.store(
        CookieRecord(
            domain="e-hentai.org", name="ipb_member_id", value="42",
            expires_at=datetime.now(timezone.utc) + timedelta(days=1),
        )
    )
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["cookie"] = request.headers.get("cookie")
        return httpx.Response(200)

    with httpx.Client(cookies=jar.jar, transport=httpx.MockTransport(handler)) as client:
        client.get("https://e-hentai.org/")

    assert seen["cookie"] == "ipb_member_id=42"
