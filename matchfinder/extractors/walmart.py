"""
Walmart search-results extractor.

Walmart ships the whole result set as JSON in ``__NEXT_DATA__``; that is tried
first. The rendered tiles are the fallback for pages where the payload is
missing or its shape has moved.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Iterable, List, Optional

from bs4 import BeautifulSoup
from loguru import logger

from ..config import RawCandidate
from ..normalize import basic_clean
from ..pipeline_types import Marketplace
from ..text_utils import parse_count, parse_price
from ..utils.text_clean import clean_title_text
from ..utils.urls import absolute_url, extract_product_id, is_sponsored_url
from .base import CandidateExtractor, Strategy, StrategyResult

# tiles in the item stacks that are not products
_PLACEHOLDER_TYPES = {"AdPlaceholder", "TileTakeOverProductPlaceholder", "SponsoredBrandPlaceholder"}


class WalmartExtractor(CandidateExtractor):
    marketplace = Marketplace.WALMART

    container_selectors = (
        "[data-item-id]",
        "[data-product-id]",
        ".search-result-gridview-item",
        '[data-testid="list-view"]',
        '[data-testid="item-stack"] > div',
    )
    title_selectors = (
        '[data-automation-id="product-title"]',
        'span[data-automation-id="product-title"]',
        ".product-title-link span",
        "a span.w_iUH7",
        "h3",
    )
    price_selectors = (
        '[data-automation-id="product-price"] .w_iUH7',
        ".price-main .visuallyhidden",
        '[itemprop="price"]',
    )
    # dollars / cents rendered as separate spans
    price_fragment_selectors = (
        (".w_C6.w_D.w_C7.w_Da", ".w_C6.w_D.w_C7.w_Db"),
        (".price-characteristic", ".price-mantissa"),
        ('[data-automation-id="product-price"] .f2', '[data-automation-id="product-price"] .f6'),
    )
    fallback_price_selectors = (
        '[data-automation-id="product-price"]',
        ".price-main",
        ".price-group",
    )
    link_selectors = (
        'a[link-identifier="linkTest"]',
        'a[href*="/ip/"]',
        ".product-title-link",
        "a",
    )
    image_selectors = ('img[data-testid="productTileImage"]', "img")
    rating_selectors = (
        '[data-testid="product-ratings"]',
        ".stars-container",
        '[aria-label*="out of 5"]',
    )
    review_count_selectors = (
        '[data-testid="product-reviews"]',
        ".stars-reviews-count-node",
        'span[aria-hidden="true"].f7',
    )
    brand_selectors = ('[data-automation-id="product-brand"]',)
    sponsored_selectors = (
        '[data-testid="sponsored-flag"]',
        '[data-automation-id="sponsored-flag"]',
    )
    sponsored_label_selectors = (
        '[data-automation-id="sponsored-label"]',
        ".gray.f7",
        "div.f7",
    )

    def strategies(self) -> List[Strategy]:
        return [Strategy(name="next-data-json", run=self._next_data_strategy)] + super().strategies()

    # -----------------------------------------------------------------------
    # __NEXT_DATA__ payload
    # -----------------------------------------------------------------------

    def _next_data_strategy(self, soup: BeautifulSoup) -> StrategyResult:
        script = soup.find("script", id="__NEXT_DATA__")
        if script is None or not script.string:
            return 0, []
        data = json.loads(script.string)
        items = list(_iter_stack_items(data))
        candidates: List[RawCandidate] = []
        for item in items:
            if not isinstance(item, dict):
                continue
            if item.get("isSponsoredFlag") or item.get("__typename") in _PLACEHOLDER_TYPES:
                self._sponsored_skipped += 1
                continue
            cand = self._candidate_from_item(item)
            if cand is not None:
                candidates.append(cand)
        return len(items), candidates

    def _candidate_from_item(self, item: Dict[str, Any]) -> Optional[RawCandidate]:
        title = clean_title_text(basic_clean(item.get("name") or item.get("title")))
        price = _item_price(item)
        if not title or price is None:
            return None

        href = item.get("canonicalUrl") or item.get("productPageUrl") or ""
        url = absolute_url(href, self.base_url)
        if url and is_sponsored_url(url):
            self._sponsored_skipped += 1
            return None

        image = (item.get("imageInfo") or {}).get("thumbnailUrl") or item.get("image")
        rating = item.get("averageRating")
        count = item.get("numberOfReviews")
        return RawCandidate(
            title=title,
            price=price,
            url=url or None,
            image_url=image or None,
            ratings_average=float(rating) if isinstance(rating, (int, float)) else None,
            ratings_count=int(count) if isinstance(count, (int, float)) else parse_count(str(count or "")),
            brand=basic_clean(item.get("brand")) or None,
            product_id=str(item.get("usItemId") or "") or extract_product_id(url, self.marketplace),
        )


def _iter_stack_items(data: Dict[str, Any]) -> Iterable[Any]:
    try:
        stacks = data["props"]["pageProps"]["initialData"]["searchResult"]["itemStacks"]
    except (KeyError, TypeError):
        logger.debug("walmart: __NEXT_DATA__ has no itemStacks")
        return
    for stack in stacks or []:
        for item in (stack or {}).get("items") or []:
            yield item


def _item_price(item: Dict[str, Any]) -> Optional[float]:
    price = item.get("price")
    if isinstance(price, (int, float)) and not isinstance(price, bool):
        return float(price)
    if isinstance(price, str):
        parsed = parse_price(price)
        if parsed is not None:
            return parsed

    info = item.get("priceInfo") or {}
    current = info.get("currentPrice")
    if isinstance(current, dict):
        if isinstance(current.get("price"), (int, float)):
            return float(current["price"])
        parsed = parse_price(current.get("priceString"))
        if parsed is not None:
            return parsed
    for key in ("linePrice", "itemPrice", "priceDisplay"):
        parsed = parse_price(info.get(key))
        if parsed is not None:
            return parsed
    return None
