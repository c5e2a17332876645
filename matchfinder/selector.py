# matchfinder/selector.py
from __future__ import annotations

import math
from typing import List, Optional, Sequence

from loguru import logger

from . import config
from .config import MatchResult, RawCandidate, ScoredCandidate, SourceProduct
from .pipeline_types import BelowThresholdPolicy, ErrorKind
from .similarity import combined_score

NO_MATCH_MESSAGE = "No suitable match found"


# ---------------------------------------------------------------------------
# Validation / informational scores
# ---------------------------------------------------------------------------

def is_valid_candidate(c: RawCandidate) -> bool:
    if not (c.title or "").strip():
        return False
    if c.price is None or not math.isfinite(c.price) or c.price < 0:
        return False
    return bool((c.url or "").strip())


def relevance_score(similarity: float, rating: Optional[float], count: Optional[int]) -> float:
    """
    Similarity-dominated relevance used for display only:
    similarity x100, plus capped points for the star rating and for review
    volume (per order of magnitude).
    """
    score = similarity * config.RELEVANCE_SIMILARITY_POINTS
    if rating is not None and math.isfinite(rating) and rating > 0:
        score += min(rating * config.RATING_POINTS_PER_STAR, config.RATING_POINTS_CAP)
    if count:
        score += min(
            math.log10(count + 1) * config.REVIEW_COUNT_POINTS_PER_DECADE,
            config.REVIEW_COUNT_POINTS_CAP,
        )
    return round(score, 2)


def price_reasonable(source_price: Optional[float], candidate_price: Optional[float]) -> Optional[bool]:
    if not source_price or source_price <= 0 or candidate_price is None:
        return None
    ratio = candidate_price / source_price
    return config.PRICE_RATIO_MIN <= ratio <= config.PRICE_RATIO_MAX


# ---------------------------------------------------------------------------
# Ranking
# ---------------------------------------------------------------------------

def score_candidate(source: SourceProduct, cand: RawCandidate) -> ScoredCandidate:
    sim = combined_score(source.title, cand.title, source.brand, cand.brand)
    return ScoredCandidate(
        **cand.model_dump(),
        title_similarity=sim.title_similarity,
        brand_similarity=sim.brand_similarity,
        combined_score=sim.combined_score,
        relevance_score=relevance_score(sim.combined_score, cand.ratings_average, cand.ratings_count),
        price_reasonable=price_reasonable(source.price, cand.price),
    )


def rank_candidates(source: SourceProduct, raw: Sequence[RawCandidate]) -> List[ScoredCandidate]:
    """
    Drop invalid candidates (no title / price / url), score the rest and sort
    by combined score. sorted() is stable, so ties keep discovery order.
    """
    valid = [c for c in raw or [] if is_valid_candidate(c)]
    dropped = len(raw or []) - len(valid)
    if dropped:
        logger.debug("Dropped {} invalid candidates", dropped)

    scored = [score_candidate(source, c) for c in valid]
    return sorted(scored, key=lambda s: s.combined_score, reverse=True)


def select_best_match(
    source: SourceProduct,
    raw: Sequence[RawCandidate],
    min_similarity: float = config.DEFAULT_MIN_SIMILARITY,
    on_below_threshold: BelowThresholdPolicy = config.DEFAULT_BELOW_THRESHOLD_POLICY,
) -> MatchResult:
    ranked = rank_candidates(source, raw)
    if not ranked:
        logger.info("No valid candidates for {!r}", source.title[:50])
        return MatchResult(success=False, error=NO_MATCH_MESSAGE, error_kind=ErrorKind.NO_CANDIDATES)

    best = ranked[0]
    logger.info(
        "Best of {}: {!r} combined={:.3f} (title={:.3f}, brand={:.3f})",
        len(ranked),
        (best.title or "")[:50],
        best.combined_score,
        best.title_similarity,
        best.brand_similarity,
    )

    if best.combined_score >= min_similarity:
        return MatchResult(success=True, match=best)

    if BelowThresholdPolicy(on_below_threshold) is BelowThresholdPolicy.FAIL:
        logger.info("Best score {:.3f} below {:.3f}; failing", best.combined_score, min_similarity)
        return MatchResult(success=False, error=NO_MATCH_MESSAGE, error_kind=ErrorKind.BELOW_THRESHOLD)

    logger.warning("Low-confidence match: {:.3f} < {:.3f}", best.combined_score, min_similarity)
    return MatchResult(success=True, match=best, low_confidence=True)
