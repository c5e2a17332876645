"""Amazon search-results extractor."""

from __future__ import annotations

from typing import Optional

from bs4 import Tag

from ..pipeline_types import Marketplace
from .base import CandidateExtractor


class AmazonExtractor(CandidateExtractor):
    marketplace = Marketplace.AMAZON

    # most specific first; older layouts only carry data-asin on generic rows
    container_selectors = (
        'div[data-component-type="s-search-result"][data-asin]',
        ".s-result-item[data-asin]:not(.AdHolder)",
        ".sg-row[data-asin]",
        ".s-result-list .a-section[data-asin]",
    )
    title_selectors = (
        "h2 a span",
        "h2 span",
        "h2",
        ".a-size-medium.a-text-normal",
        ".a-size-base-plus.a-text-normal",
        ".a-text-normal",
    )
    price_selectors = (
        ".a-price:not(.a-text-price) .a-offscreen",
        ".a-price .a-offscreen",
    )
    price_fragment_selectors = ((".a-price-whole", ".a-price-fraction"),)
    fallback_price_selectors = (".a-color-price", ".a-price")
    link_selectors = (
        'a.a-link-normal[href*="/dp/"]',
        "h2 a",
        "a.a-link-normal.s-no-outline",
        'a[href*="/dp/"]',
    )
    image_selectors = ("img.s-image", "img")
    rating_selectors = (".a-icon-alt", '[aria-label*="out of 5"]')
    review_count_selectors = (
        'a[href*="#customerReviews"] span',
        '[aria-label$="ratings"]',
        ".a-size-base.s-underline-text",
    )
    brand_selectors = (
        ".s-line-clamp-1 .a-size-base-plus.a-color-base",
        'h5 .a-size-base-plus',
    )
    sponsored_selectors = (
        ".puis-label-popover-default",
        ".puis-sponsored-label-text",
        '[data-component-type="sp-sponsored-result"]',
        ".s-sponsored-label-info-icon",
    )
    sponsored_label_selectors = (
        ".a-color-secondary",
        ".s-label-popover-default",
        ".puis-label-popover-hover",
    )

    def accept_element(self, el: Tag) -> bool:
        # layout rows reuse the container classes with an empty data-asin
        return bool((el.get("data-asin") or "").strip())

    def is_sponsored(self, el: Tag) -> bool:
        classes = el.get("class") or []
        if "AdHolder" in classes:
            return True
        return super().is_sponsored(el)

    def parse_product_id(self, el: Tag, url: str) -> Optional[str]:
        asin = (el.get("data-asin") or "").strip()
        return asin or super().parse_product_id(el, url)
