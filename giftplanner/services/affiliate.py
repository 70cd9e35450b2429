"""
Affiliate URL Rewriter — Adds affiliate tracking parameters to outbound
store URLs.

An AffiliateLink matches a URL when its domain (e.g. "amazon.com") is a
substring of the URL's host. The matching link's tracking_id_param is then
set to tracking_id_value in the query string, overwriting any existing
value and leaving every other parameter (and the fragment) untouched:

    https://www.amazon.com/dp/B0123?th=1
    → https://www.amazon.com/dp/B0123?th=1&tag=giftplanner-20

A URL that cannot be parsed is returned unchanged; the failure is logged
and never raised.
"""

import logging
from typing import Optional
from urllib.parse import parse_qsl, quote_plus, urlencode, urlparse, urlunparse

from giftplanner.models.entities import AffiliateLink

logger = logging.getLogger(__name__)

GOOGLE_SEARCH_URL = "https://www.google.com/search?q={query}"


def _host(url: str) -> Optional[str]:
    """Lowercased host of an http(s) URL, or None if it isn't one."""
    try:
        parsed = urlparse(url.strip())
        host = parsed.hostname
    except ValueError:
        return None
    if parsed.scheme not in ("http", "https") or not host:
        return None
    return host.lower()


def find_affiliate_link(
    url: str,
    links: list[AffiliateLink],
) -> Optional[AffiliateLink]:
    """
    First active link whose domain appears in the URL's host.

    Links with a blank domain never match.
    """
    host = _host(url)
    if host is None:
        return None
    for link in links:
        domain = link.domain.strip().lower()
        if link.is_active and domain and domain in host:
            return link
    return None


def apply_affiliate_tracking(url: str, link: AffiliateLink) -> str:
    """
    Set link.tracking_id_param=link.tracking_id_value on the URL.

    Raises ValueError if the URL cannot be parsed; rewrite_url() is the
    non-raising entry point.
    """
    parsed = urlparse(url.strip())
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError(f"Not an http(s) URL: {url!r}")

    params: list[tuple[str, str]] = []
    replaced = False
    for key, value in parse_qsl(parsed.query, keep_blank_values=True):
        if key == link.tracking_id_param:
            if replaced:
                continue  # drop duplicates of the tracking param
            value = link.tracking_id_value
            replaced = True
        params.append((key, value))
    if not replaced:
        params.append((link.tracking_id_param, link.tracking_id_value))

    return urlunparse(parsed._replace(query=urlencode(params)))


def rewrite_url(
    url: str,
    links: list[AffiliateLink],
) -> tuple[str, Optional[AffiliateLink]]:
    """
    Rewrite a URL with the matching affiliate link, if any.

    Returns (url, link) — the original URL and None when no link matches
    or the URL is malformed.
    """
    if not url:
        return url, None

    link = find_affiliate_link(url, links)
    if link is None:
        if _host(url) is None:
            logger.warning("Skipping affiliate rewrite for unparseable URL: %r", url[:200])
        return url, None

    try:
        return apply_affiliate_tracking(url, link), link
    except ValueError as exc:
        logger.warning(
            "Affiliate rewrite failed for %r (%s): %s",
            url[:200], link.program_name, exc,
        )
        return url, None


def search_url_for(search_terms: str) -> str:
    """Web search URL used to find a real product page for a suggestion."""
    return GOOGLE_SEARCH_URL.format(query=quote_plus(f"{search_terms} buy online"))
