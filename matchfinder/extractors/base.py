from __future__ import annotations

"""
Candidate extraction from a rendered search-results page.

Every marketplace adapter subclasses CandidateExtractor and fills in its
selector lists. The base class owns the contract shared by all of them:

* strategies are tried in priority order; one that raises or yields no usable
  listing falls through to the next
* sponsored / promotional listings are skipped when they can be identified
* "no listing elements at all" and "elements, but nothing parseable" are
  reported as different outcomes, and neither raises
* prices come out as a single float, whole/fraction fragments joined
"""

from abc import ABC
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple

from bs4 import BeautifulSoup, Tag
from loguru import logger

from .. import config
from ..config import RawCandidate
from ..constants import PRICE_NOISE_MARKERS, SPONSORED_TEXT_MARKERS
from ..normalize import basic_clean
from ..pipeline_types import ExtractionOutcome, Marketplace
from ..text_utils import join_price_fragments, parse_count, parse_price, parse_rating
from ..utils.text_clean import clean_title_text
from ..utils.urls import absolute_url, extract_product_id, is_sponsored_url

# (elements seen, candidates parsed)
StrategyResult = Tuple[int, List[RawCandidate]]


@dataclass
class Strategy:
    name: str
    run: Callable[[BeautifulSoup], StrategyResult]


@dataclass
class ExtractionReport:
    outcome: ExtractionOutcome
    candidates: List[RawCandidate] = field(default_factory=list)
    strategy: Optional[str] = None
    elements_found: int = 0
    sponsored_skipped: int = 0


class CandidateExtractor(ABC):
    """Turns one search-results page into RawCandidates."""

    marketplace: Marketplace

    container_selectors: Sequence[str] = ()
    title_selectors: Sequence[str] = ()
    price_selectors: Sequence[str] = ()
    # (whole, fraction) selector pairs for prices split across elements
    price_fragment_selectors: Sequence[Tuple[str, str]] = ()
    fallback_price_selectors: Sequence[str] = ()
    link_selectors: Sequence[str] = ()
    image_selectors: Sequence[str] = ()
    image_attrs: Sequence[str] = ("src", "data-src", "data-image-src")
    rating_selectors: Sequence[str] = ()
    review_count_selectors: Sequence[str] = ()
    brand_selectors: Sequence[str] = ()
    # presence alone marks a listing as sponsored
    sponsored_selectors: Sequence[str] = ()
    # small labels whose text says "Sponsored" / "Ad"
    sponsored_label_selectors: Sequence[str] = ()

    def __init__(self) -> None:
        self.base_url = config.MARKETPLACE_BASE_URLS[self.marketplace]
        self._sponsored_skipped = 0

    # -----------------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------------

    def extract(self, page_content: str) -> List[RawCandidate]:
        return self.extract_with_report(page_content).candidates

    def extract_with_report(self, page_content: str) -> ExtractionReport:
        if not page_content or not page_content.strip():
            logger.warning("{}: empty page content", self.marketplace.value)
            return ExtractionReport(outcome=ExtractionOutcome.NO_ELEMENTS)

        soup = BeautifulSoup(page_content, "lxml")
        max_elements = 0
        for strategy in self.strategies():
            self._sponsored_skipped = 0
            try:
                found, candidates = strategy.run(soup)
            except Exception as e:
                logger.warning("{}: strategy {} failed: {}", self.marketplace.value, strategy.name, e)
                continue

            max_elements = max(max_elements, found)
            if candidates:
                logger.info(
                    "{}: strategy {} -> {} candidates from {} elements ({} sponsored skipped)",
                    self.marketplace.value,
                    strategy.name,
                    len(candidates),
                    found,
                    self._sponsored_skipped,
                )
                return ExtractionReport(
                    outcome=ExtractionOutcome.OK,
                    candidates=candidates,
                    strategy=strategy.name,
                    elements_found=found,
                    sponsored_skipped=self._sponsored_skipped,
                )
            if found:
                logger.debug(
                    "{}: strategy {} found {} elements but none parseable",
                    self.marketplace.value,
                    strategy.name,
                    found,
                )

        if max_elements == 0:
            logger.warning("{}: no listing elements found on page", self.marketplace.value)
            return ExtractionReport(outcome=ExtractionOutcome.NO_ELEMENTS)

        logger.warning(
            "{}: {} listing elements found but no parseable title/price",
            self.marketplace.value,
            max_elements,
        )
        return ExtractionReport(outcome=ExtractionOutcome.UNPARSEABLE, elements_found=max_elements)

    def strategies(self) -> List[Strategy]:
        """Priority-ordered strategies. Subclasses may prepend/append their own."""
        return [
            Strategy(name=f"css:{sel}", run=self._container_strategy(sel))
            for sel in self.container_selectors
        ]

    # -----------------------------------------------------------------------
    # Element strategies
    # -----------------------------------------------------------------------

    def _container_strategy(self, selector: str) -> Callable[[BeautifulSoup], StrategyResult]:
        def run(soup: BeautifulSoup) -> StrategyResult:
            elements = [el for el in soup.select(selector) if self.accept_element(el)]
            candidates: List[RawCandidate] = []
            for el in elements:
                if self.is_sponsored(el):
                    self._sponsored_skipped += 1
                    continue
                try:
                    cand = self.parse_listing(el)
                except Exception as e:
                    logger.debug("{}: failed to parse listing: {}", self.marketplace.value, e)
                    continue
                if cand is not None:
                    candidates.append(cand)
            return len(elements), candidates

        return run

    def accept_element(self, el: Tag) -> bool:
        return True

    def is_sponsored(self, el: Tag) -> bool:
        for sel in self.sponsored_selectors:
            if el.select_one(sel) is not None:
                return True
        for sel in self.sponsored_label_selectors:
            for label in el.select(sel):
                if label.get_text(" ", strip=True).lower() in SPONSORED_TEXT_MARKERS:
                    return True
        href = self.first_attr(el, self.link_selectors, "href")
        return bool(href) and is_sponsored_url(href)

    def parse_listing(self, el: Tag) -> Optional[RawCandidate]:
        title = self.parse_title(el)
        if not title:
            return None
        price = self.parse_price(el)
        if price is None:
            logger.debug("{}: no price for {!r}", self.marketplace.value, title[:30])
            return None

        url = absolute_url(self.first_attr(el, self.link_selectors, "href"), self.base_url)
        image = None
        for attr in self.image_attrs:
            image = self.first_attr(el, self.image_selectors, attr)
            if image:
                break

        return RawCandidate(
            title=title,
            price=price,
            url=url or None,
            image_url=image or None,
            ratings_average=self.parse_rating(el),
            ratings_count=parse_count(self.first_text(el, self.review_count_selectors)),
            brand=self.first_text(el, self.brand_selectors),
            product_id=self.parse_product_id(el, url),
        )

    # -----------------------------------------------------------------------
    # Field helpers
    # -----------------------------------------------------------------------

    def parse_title(self, el: Tag) -> Optional[str]:
        for sel in self.title_selectors:
            node = el.select_one(sel)
            if node is None:
                continue
            text = clean_title_text(basic_clean(node.get_text(" ", strip=True)))
            # a bare "Sponsored" label is not a title
            if text and text.lower() not in SPONSORED_TEXT_MARKERS:
                return text
        return None

    def parse_price(self, el: Tag) -> Optional[float]:
        price = self._price_from(el, self.price_selectors)
        if price is not None:
            return price
        for whole_sel, frac_sel in self.price_fragment_selectors:
            whole = el.select_one(whole_sel)
            if whole is None:
                continue
            frac = el.select_one(frac_sel)
            price = join_price_fragments(
                whole.get_text("", strip=True),
                frac.get_text("", strip=True) if frac is not None else None,
            )
            if price is not None:
                return price
        return self._price_from(el, self.fallback_price_selectors)

    def _price_from(self, el: Tag, selectors: Sequence[str]) -> Optional[float]:
        for sel in selectors:
            for node in el.select(sel):
                text = node.get_text(" ", strip=True)
                low = text.lower()
                # unit prices ("$0.25/oz") are not the listing price
                if any(marker in low for marker in PRICE_NOISE_MARKERS):
                    continue
                price = parse_price(text)
                if price is not None:
                    return price
        return None

    def parse_rating(self, el: Tag) -> Optional[float]:
        for sel in self.rating_selectors:
            node = el.select_one(sel)
            if node is None:
                continue
            text = node.get("aria-label") or node.get_text(" ", strip=True)
            rating = parse_rating(text, node.get("style"))
            if rating is not None:
                return rating
        return None

    def parse_product_id(self, el: Tag, url: str) -> Optional[str]:
        return extract_product_id(url, self.marketplace)

    @staticmethod
    def first_text(el: Tag, selectors: Sequence[str]) -> Optional[str]:
        for sel in selectors:
            node = el.select_one(sel)
            if node is not None:
                text = basic_clean(node.get_text(" ", strip=True))
                if text:
                    return text
        return None

    @staticmethod
    def first_attr(el: Tag, selectors: Sequence[str], attr: str) -> Optional[str]:
        for sel in selectors:
            node = el.select_one(sel)
            if node is not None:
                val = node.get(attr)
                if isinstance(val, list):
                    val = " ".join(val)
                if val:
                    return str(val).strip()
        return None
