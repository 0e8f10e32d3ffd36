"""
Host URL normalisation utilities.

Cookies are scoped by host, so the same logical host must always map
to the same key regardless of how the caller spelled it:
  - EXHENTAI.org            →  https://exhentai.org/
  - https://exhentai.org:443/g/1/  →  https://exhentai.org/
  - http://example.com/s/#top      →  http://example.com/
"""

from urllib.parse import urlparse, urlunparse


def normalize_host_url(url: str) -> str:
    """
    Normalise a URL to the canonical form of its host.

    Transformations applied:
      1. Ensure scheme is present (default to https)
      2. Lowercase scheme and hostname
      3. Remove default ports (80 for http, 443 for https)
      4. Drop path, query and fragment (path becomes "/")

    Args:
        url: The raw URL string.

    Returns:
        The normalised host URL string.
    """
    if not url.lower().startswith(("http://", "https://")):
        url = f"https://{url}"

    parsed = urlparse(url)

    scheme = parsed.scheme.lower()
    hostname = (parsed.hostname or "").lower()

    port = parsed.port
    if (scheme == "http" and port == 80) or (scheme == "https" and port == 443):
        port = None

    netloc = hostname
    if port:
        netloc = f"{hostname}:{port}"

    return urlunparse((scheme, netloc, "/", "", "", ""))


def hostname_of(url: str) -> str:
    """Return the lowercase hostname of a URL (scheme optional)."""
    if not url.lower().startswith(("http://", "https://")):
        url = f"https://{url}"
    return (urlparse(url).hostname or "").lower()


def domain_matches(cookie_domain: str, hostname: str) -> bool:
    """
    Whether a cookie stored for ``cookie_domain`` applies to ``hostname``.

    A host-only domain (``exhentai.org``) matches that exact host. A
    domain cookie (``.exhentai.org``) also matches every subdomain.
    """
    cookie_domain = cookie_domain.lower()
    hostname = hostname.lower()
    domain = cookie_domain.lstrip(".")
    if not domain or not hostname:
        return False
    if hostname == domain:
        return True
    return cookie_domain.startswith(".") and hostname.endswith(cookie_domain)
