"""Source URL validation.

Oracle answers must cite where a figure came from. Answers citing template
placeholders or malformed URLs are treated as fabricated and rejected.
"""

import re
from typing import Any, Optional
from urllib.parse import urlparse

import httpx
import structlog

logger = structlog.get_logger(__name__)

PLACEHOLDER_PATTERNS = ("example.com", "official-university-source.com", "placeholder")

# Keys whose values are checked for placeholders during extraction
SOURCE_KEY_PATTERN = re.compile(r"(source|url|link|website)", re.IGNORECASE)

_CJK_PATTERN = re.compile(r"[　-〿぀-ヿ一-鿿가-힯＀-￯]")


def is_placeholder(value: str) -> bool:
    lowered = value.lower()
    return any(pattern in lowered for pattern in PLACEHOLDER_PATTERNS)


def find_placeholder_sources(data: Any, path: str = "") -> list[str]:
    """Return dotted paths of source-like fields holding placeholder values.

    Walks nested dicts and lists. A field is source-like when its key
    contains source, url, link or website.
    """
    found: list[str] = []
    if isinstance(data, dict):
        for key, value in data.items():
            child = f"{path}.{key}" if path else str(key)
            if (
                isinstance(value, str)
                and SOURCE_KEY_PATTERN.search(str(key))
                and is_placeholder(value)
            ):
                found.append(child)
            else:
                found.extend(find_placeholder_sources(value, child))
    elif isinstance(data, list):
        for index, item in enumerate(data):
            found.extend(find_placeholder_sources(item, f"{path}[{index}]"))
    return found


def validate_source_url(url: Optional[str]) -> bool:
    """Check that url is a real, navigable web address.

    Requires an http(s) scheme, a dotted host, no whitespace or CJK
    characters, and no placeholder pattern.
    """
    if not url or not isinstance(url, str):
        return False

    candidate = url.strip()
    if not candidate or any(ch.isspace() for ch in candidate):
        return False
    if _CJK_PATTERN.search(candidate) or is_placeholder(candidate):
        return False

    parsed = urlparse(candidate)
    if parsed.scheme not in ("http", "https"):
        return False

    host = parsed.hostname or ""
    if "." not in host or host.startswith(".") or host.endswith("."):
        return False

    return True


# second-level labels under two-letter country codes, e.g. ox.ac.uk, rmit.edu.au
_COUNTRY_SECOND_LEVEL = {"ac", "edu", "co", "com", "org", "gov", "net"}


def _host(url: str) -> str:
    return (urlparse(url).hostname or "").lower()


def _site_domain(host: str) -> str:
    """Registrable part of a host: web.mit.edu -> mit.edu, www.ox.ac.uk -> ox.ac.uk."""
    labels = host.split(".")
    if len(labels) >= 3 and len(labels[-1]) == 2 and labels[-2] in _COUNTRY_SECOND_LEVEL:
        return ".".join(labels[-3:])
    return ".".join(labels[-2:])


def matches_official_domain(url: str, official_website: str) -> bool:
    """True when url is hosted on the university's site domain or a subdomain of it."""
    host = _host(url)
    official = _site_domain(_host(official_website))
    if not host or not official:
        return False
    return host == official or host.endswith(f".{official}")


async def check_url_reachable(
    url: str,
    timeout: float = 10.0,
    client: Optional[httpx.AsyncClient] = None,
) -> bool:
    """Issue a live request to confirm the URL answers with a non-error status.

    HEAD is tried first; servers that reject HEAD get a GET. Network errors
    count as unreachable.
    """
    if not validate_source_url(url):
        return False

    owns_client = client is None
    http = client or httpx.AsyncClient(timeout=timeout, follow_redirects=True)
    try:
        response = await http.head(url)
        if response.status_code in (403, 405):
            response = await http.get(url)
        reachable = response.status_code < 400
        logger.debug("Source URL checked", url=url, status=response.status_code)
        return reachable
    except httpx.HTTPError as e:
        logger.warning("Source URL unreachable", url=url, error=str(e))
        return False
    finally:
        if owns_client:
            await http.aclose()
