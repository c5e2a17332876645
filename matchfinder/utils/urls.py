# matchfinder/utils/urls.py
from __future__ import annotations
from urllib.parse import parse_qsl, urlencode, urljoin, urlparse, urlunparse
import re
from typing import Iterable, List, Optional

from .. import config
from ..constants import SPONSORED_URL_MARKERS, TRACKING_QUERY_PARAMS
from ..pipeline_types import Marketplace

_AMAZON_ASIN_RE = re.compile(r"/(?:dp|gp/product)/([A-Z0-9]{10})")
_WALMART_ID_PATTERNS = [
    re.compile(r"/ip/(?:[^/?#]+/)?(\d+)"),
    re.compile(r"/(\d{5,})(?:[?&#]|$)"),
]
__all__ = [
    "absolute_url",
    "canon_url",
    "canon_urls",
    "marketplace_from_url",
    "extract_product_id",
    "is_sponsored_url",
]


def absolute_url(href: Optional[str], base: str) -> str:
    """Resolve a (possibly relative) listing href against the marketplace origin."""
    if not href:
        return ""
    href = str(href).strip()
    if not href or href.startswith(("javascript:", "#")):
        return ""
    return urljoin(base, href)


def canon_url(u: str) -> str:
    """
    Canonicalize a listing URL for equality checks.

    Strategy:
    - parse the URL
    - lower-case the host and drop a leading 'www.'
    - drop tracking query parameters and the fragment
    - drop a trailing slash

    This makes the following equivalent:
    - https://www.amazon.com/dp/B000TEST01/?ref=sr_1_1&qid=1
    - https://amazon.com/dp/B000TEST01
    """
    if not u:
        return ""
    u = str(u).strip()
    if not u:
        return ""

    p = urlparse(u)
    host = (p.netloc or "").strip().lower()
    if host.startswith("www."):
        host = host[4:]

    query = [
        (k, v)
        for k, v in parse_qsl(p.query, keep_blank_values=False)
        if k not in TRACKING_QUERY_PARAMS
    ]
    path = p.path.rstrip("/") or "/"
    return urlunparse(("https", host, path, "", urlencode(query), ""))


def canon_urls(urls: Iterable[str]) -> List[str]:
    """
    - Canonicalize every URL.
    - Preserve first-seen order, dropping duplicates.
    """
    seen = set()
    out: List[str] = []
    for u in urls or []:
        c = canon_url(u)
        if not c or c in seen:
            continue
        seen.add(c)
        out.append(c)
    return out


def marketplace_from_url(u: str) -> Optional[Marketplace]:
    if not u:
        return None
    host = urlparse(str(u)).netloc.lower()
    for mp, base in config.MARKETPLACE_BASE_URLS.items():
        base_host = urlparse(base).netloc.lower()
        bare = base_host[4:] if base_host.startswith("www.") else base_host
        if host == bare or host.endswith("." + bare):
            return mp
    return None


def extract_product_id(u: str, marketplace: Marketplace) -> Optional[str]:
    """ASIN for Amazon, numeric item id for Walmart."""
    if not u:
        return None
    if marketplace is Marketplace.AMAZON:
        m = _AMAZON_ASIN_RE.search(u)
        return m.group(1) if m else None
    if marketplace is Marketplace.WALMART:
        for pat in _WALMART_ID_PATTERNS:
            m = pat.search(u)
            if m:
                return m.group(1)
    return None


def is_sponsored_url(u: str) -> bool:
    low = (u or "").lower()
    return any(marker in low for marker in SPONSORED_URL_MARKERS)
