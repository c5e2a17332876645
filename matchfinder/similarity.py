from __future__ import annotations
"""
Similarity scoring between a source product and a candidate listing.

All scores live in [0, 1]. Nothing in here raises: empty or missing input
simply scores 0.

* title_similarity   - token overlap with partial/fuzzy credit
* brand_similarity   - exact / containment / edit distance
* combined_score     - 0.7 title + 0.3 brand when both brands are known,
                       otherwise title plus a small leading-token bonus
"""

from collections import Counter
from dataclasses import dataclass
from typing import List, Optional

from loguru import logger

from . import config
from .normalize import match_tokens, normalize_for_matching


@dataclass(frozen=True)
class SimilarityBreakdown:
    title_similarity: float
    brand_similarity: float
    combined_score: float
    brand_source: str  # "explicit", "title", or "none"


def _clamp(x: float) -> float:
    if x != x:  # NaN
        return 0.0
    return max(0.0, min(1.0, float(x)))


# ---------------------------------------------------------------------------
# Character-level helpers
# ---------------------------------------------------------------------------

def char_overlap(a: str, b: str) -> float:
    """Shared characters (multiset) over the longer length."""
    if not a or not b:
        return 0.0
    shared = sum((Counter(a) & Counter(b)).values())
    return shared / max(len(a), len(b))


def levenshtein_distance(a: str, b: str) -> int:
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)
    prev = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        cur = [i]
        for j, cb in enumerate(b, start=1):
            cost = 0 if ca == cb else 1
            cur.append(min(prev[j] + 1, cur[j - 1] + 1, prev[j - 1] + cost))
        prev = cur
    return prev[-1]


def levenshtein_similarity(a: str, b: str) -> float:
    longest = max(len(a), len(b))
    if longest == 0:
        return 0.0
    return _clamp(1.0 - levenshtein_distance(a, b) / longest)


def _fuzzy_token_match(a: str, b: str) -> bool:
    # cheap guard: only compare tokens that look alike at the start
    if len(a) < config.FUZZY_MIN_TOKEN_LEN or len(b) < config.FUZZY_MIN_TOKEN_LEN:
        return False
    if a[0] != b[0]:
        return False
    return char_overlap(a, b) > config.CHAR_OVERLAP_THRESHOLD


# ---------------------------------------------------------------------------
# Title
# ---------------------------------------------------------------------------

def title_similarity(a: Optional[str], b: Optional[str]) -> float:
    na = normalize_for_matching(a)
    nb = normalize_for_matching(b)
    if not na or not nb:
        return 0.0
    if na == nb:
        return 1.0

    tokens_a = match_tokens(na)
    tokens_b = match_tokens(nb)
    if not tokens_a or not tokens_b:
        return 0.0

    available = Counter(tokens_b)
    weighted = 0.0
    for tok in tokens_a:
        if available[tok] > 0:
            available[tok] -= 1
            weighted += config.EXACT_MATCH_WEIGHT
            continue
        if any(tok in other or other in tok for other in tokens_b):
            weighted += config.PARTIAL_MATCH_WEIGHT
            continue
        if any(_fuzzy_token_match(tok, other) for other in tokens_b):
            weighted += config.FUZZY_MATCH_WEIGHT

    score = weighted / max(len(tokens_a), len(tokens_b))
    return _clamp(score)


# ---------------------------------------------------------------------------
# Brand
# ---------------------------------------------------------------------------

def brand_similarity(a: Optional[str], b: Optional[str]) -> float:
    na = normalize_for_matching(a)
    nb = normalize_for_matching(b)
    if not na or not nb:
        return 0.0
    if na == nb:
        return 1.0
    if na in nb or nb in na:
        shorter, longer = sorted((len(na), len(nb)))
        return _clamp(config.BRAND_CONTAINMENT_FACTOR * shorter / longer)
    return levenshtein_similarity(na, nb)


def detect_brand_in_title(brand: Optional[str], title: Optional[str]) -> Optional[str]:
    """
    Return ``brand`` when the title opens with it ("Nike Red Shoes" / "Nike"),
    which is how most listings without a brand field carry one.
    """
    brand_tokens = normalize_for_matching(brand).split()
    title_tokens = normalize_for_matching(title).split()
    if not brand_tokens or len(title_tokens) < len(brand_tokens):
        return None
    if title_tokens[: len(brand_tokens)] == brand_tokens:
        return brand
    return None


def leading_token_bonus(a: Optional[str], b: Optional[str]) -> float:
    """Bonus for titles that open with the same brand-like token."""
    ta: List[str] = normalize_for_matching(a).split()
    tb: List[str] = normalize_for_matching(b).split()
    if not ta or not tb:
        return 0.0
    first_a, first_b = ta[0], tb[0]
    if len(first_a) < 2 or len(first_b) < 2 or first_a.isdigit() or first_b.isdigit():
        return 0.0
    if first_a == first_b:
        return config.LEADING_BRAND_BONUS_EXACT
    if len(first_a) >= config.MIN_TOKEN_LEN and len(first_b) >= config.MIN_TOKEN_LEN and (
        first_a.startswith(first_b) or first_b.startswith(first_a)
    ):
        return config.LEADING_BRAND_BONUS_PARTIAL
    return 0.0


# ---------------------------------------------------------------------------
# Combined
# ---------------------------------------------------------------------------

def combined_score(
    source_title: Optional[str],
    candidate_title: Optional[str],
    source_brand: Optional[str] = None,
    candidate_brand: Optional[str] = None,
) -> SimilarityBreakdown:
    t_sim = title_similarity(source_title, candidate_title)

    brand_source = "explicit"
    cand_brand = candidate_brand if normalize_for_matching(candidate_brand) else None
    if cand_brand is None and source_brand:
        cand_brand = detect_brand_in_title(source_brand, candidate_title)
        brand_source = "title"

    if normalize_for_matching(source_brand) and cand_brand:
        b_sim = brand_similarity(source_brand, cand_brand)
        combined = config.TITLE_WEIGHT * t_sim + config.BRAND_WEIGHT * b_sim
    else:
        brand_source = "none"
        b_sim = 0.0
        combined = t_sim + leading_token_bonus(source_title, candidate_title) if t_sim > 0 else 0.0

    breakdown = SimilarityBreakdown(
        title_similarity=_clamp(t_sim),
        brand_similarity=_clamp(b_sim),
        combined_score=_clamp(combined),
        brand_source=brand_source,
    )
    logger.debug(
        "Similarity {!r} vs {!r}: title={:.3f} brand={:.3f} ({}) combined={:.3f}",
        (source_title or "")[:30],
        (candidate_title or "")[:30],
        breakdown.title_similarity,
        breakdown.brand_similarity,
        breakdown.brand_source,
        breakdown.combined_score,
    )
    return breakdown
