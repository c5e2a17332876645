"""Search query construction for target marketplaces."""

from __future__ import annotations

from typing import Tuple, Union
from urllib.parse import parse_qs, quote, urlparse

from loguru import logger

from . import config
from .config import SourceProduct
from .normalize import strip_punctuation
from .pipeline_types import ErrorKind, Marketplace
from .utils.urls import marketplace_from_url


class UnsupportedMarketplaceError(ValueError):
    """Raised when a marketplace cannot be searched."""

    kind = ErrorKind.UNSUPPORTED_MARKETPLACE

    def __init__(self, marketplace: object):
        self.marketplace = marketplace
        super().__init__(f"Unsupported marketplace: {marketplace}")


def resolve_marketplace(value: Union[str, Marketplace]) -> Marketplace:
    """Turn user input into a searchable Marketplace or raise."""
    if isinstance(value, Marketplace):
        mp = value
    else:
        try:
            mp = Marketplace(str(value).strip().lower())
        except ValueError:
            raise UnsupportedMarketplaceError(value) from None
    if mp not in config.SEARCH_URL_TEMPLATES:
        raise UnsupportedMarketplaceError(mp.value)
    return mp


def truncate_title(title: str, max_words: int) -> str:
    """Strip punctuation and keep the first ``max_words`` whitespace tokens."""
    words = strip_punctuation(title).split()
    return " ".join(words[: max(max_words, 0)])


def build_search_term(
    product: SourceProduct,
    include_brand: bool = config.DEFAULT_INCLUDE_BRAND,
    max_title_words: int = config.DEFAULT_MAX_TITLE_WORDS,
) -> str:
    title_part = truncate_title(product.title or "", max_title_words)
    brand = strip_punctuation(product.brand) if include_brand and product.brand else ""
    term = f"{brand} {title_part}".strip()
    logger.debug("Built search term: {!r}", term)
    return term


def build_search_url(
    product: SourceProduct,
    target: Union[str, Marketplace],
    include_brand: bool = config.DEFAULT_INCLUDE_BRAND,
    max_title_words: int = config.DEFAULT_MAX_TITLE_WORDS,
) -> str:
    """
    Ready-to-dispatch search-results URL for ``target``.

    Raises UnsupportedMarketplaceError when ``target`` has no search
    convention configured.
    """
    mp = resolve_marketplace(target)
    term = build_search_term(product, include_brand=include_brand, max_title_words=max_title_words)
    url = config.SEARCH_URL_TEMPLATES[mp].format(term=quote(term, safe=""))
    logger.info("Search URL for {}: {}", mp.value, url)
    return url


def parse_search_url(url: str) -> Tuple[Marketplace, str]:
    """Inverse of build_search_url: (marketplace, decoded search term)."""
    mp = marketplace_from_url(url)
    if mp is None or mp not in config.SEARCH_QUERY_PARAMS:
        raise UnsupportedMarketplaceError(urlparse(url).netloc or url)
    params = parse_qs(urlparse(url).query)
    values = params.get(config.SEARCH_QUERY_PARAMS[mp], [""])
    return mp, values[0]
