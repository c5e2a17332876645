from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .pipeline_types import BelowThresholdPolicy, ErrorKind, Marketplace


# ---------------------------
# Paths
# ---------------------------

PROJECT_ROOT = Path(__file__).resolve().parents[1]

DATA_DIR = PROJECT_ROOT / "data"
HANDOFF_STATE_PATH = DATA_DIR / "handoff_state.json"
EVAL_PAGES_DIR = DATA_DIR / "eval_pages"
EVAL_LABELS_PATH = DATA_DIR / "eval_labels.csv"


# ---------------------------
# Marketplaces
# ---------------------------

# Only these marketplaces can be searched; the others may still be a source.
SEARCH_URL_TEMPLATES: Dict[Marketplace, str] = {
    Marketplace.AMAZON: "https://www.amazon.com/s?k={term}",
    Marketplace.WALMART: "https://www.walmart.com/search?q={term}",
}

MARKETPLACE_BASE_URLS: Dict[Marketplace, str] = {
    Marketplace.AMAZON: "https://www.amazon.com",
    Marketplace.WALMART: "https://www.walmart.com",
    Marketplace.TARGET: "https://www.target.com",
    Marketplace.HOMEDEPOT: "https://www.homedepot.com",
}

# query-string parameter that carries the search term
SEARCH_QUERY_PARAMS: Dict[Marketplace, str] = {
    Marketplace.AMAZON: "k",
    Marketplace.WALMART: "q",
}


# ---------------------------
# Search defaults (env overridable)
# ---------------------------

DEFAULT_TIMEOUT_MS = int(os.getenv("MATCH_TIMEOUT_MS", "30000"))
DEFAULT_MIN_SIMILARITY = float(os.getenv("MATCH_MIN_SIMILARITY", "0.3"))
DEFAULT_INCLUDE_BRAND = True
DEFAULT_MAX_TITLE_WORDS = 10
DEFAULT_BELOW_THRESHOLD_POLICY = BelowThresholdPolicy.RETURN_ANYWAY

# "queue" serializes searches, "reject" answers BUSY while one is in flight
CONCURRENCY_POLICY = os.getenv("MATCH_CONCURRENCY_POLICY", "queue")

# time the extraction side waits for dynamic content after the page loads
CONTEXT_SETTLE_DELAY_MS = int(os.getenv("CONTEXT_SETTLE_DELAY_MS", "2000"))

# upper bound on context teardown so cleanup cannot outlive the search
CONTEXT_CLOSE_TIMEOUT_S = float(os.getenv("CONTEXT_CLOSE_TIMEOUT_S", "5.0"))

# batch matching: products per batch, pauses between products and batches
BATCH_SIZE = 5
BATCH_ITEM_DELAY_MS = 500
BATCH_DELAY_MS = 1000

# "memory" or "json"
HANDOFF_BACKEND = os.getenv("HANDOFF_BACKEND", "memory")

HANDOFF_SOURCE_KEY = "sourceProductForMatch"
HANDOFF_IN_PROGRESS_KEY = "matchInProgress"


# ---------------------------
# Similarity weights
# ---------------------------

TITLE_WEIGHT = 0.70
BRAND_WEIGHT = 0.30

MIN_TOKEN_LEN = 3             # tokens of length <= 2 are ignored
EXACT_MATCH_WEIGHT = 1.0
PARTIAL_MATCH_WEIGHT = 0.5    # containment either way
FUZZY_MATCH_WEIGHT = 0.5      # character overlap above threshold
CHAR_OVERLAP_THRESHOLD = 0.8
FUZZY_MIN_TOKEN_LEN = 4

BRAND_CONTAINMENT_FACTOR = 0.8

# title-only path: bonus when both titles open with the same brand-like token
LEADING_BRAND_BONUS_EXACT = 0.15
LEADING_BRAND_BONUS_PARTIAL = 0.10


# ---------------------------
# Informational relevance (ratings) & price sanity
# ---------------------------

RELEVANCE_SIMILARITY_POINTS = 100.0
RATING_POINTS_PER_STAR = 5.0
RATING_POINTS_CAP = 25.0
REVIEW_COUNT_POINTS_PER_DECADE = 10.0
REVIEW_COUNT_POINTS_CAP = 25.0

PRICE_RATIO_MIN = 0.6
PRICE_RATIO_MAX = 1.4


# ---------------------------
# Text processing
# ---------------------------

MAX_INPUT_CHARS = 20_000
MAX_TITLE_CHARS = 500


# ---------------------------
# Page fetch / HTTP hardening
# ---------------------------

HTTP_CONNECT_TIMEOUT = 3.0
HTTP_READ_TIMEOUT = 10.0
HTTP_MAX_REDIRECTS = 3
HTTP_MAX_BYTES = 5_000_000  # search pages are heavy

HTTP_USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0 Safari/537.36"
)
HTTP_ACCEPT_LANGUAGE = "en-US,en;q=0.9"


# ---------------------------
# Logging / observability
# ---------------------------

LOG_DIR = PROJECT_ROOT / "logs"
LOG_DIR.mkdir(exist_ok=True)
LOG_FILE = LOG_DIR / "matchfinder.log"
LOG_LEVEL = os.getenv("MATCH_LOG_LEVEL", "INFO")


# ---------------------------
# Pydantic models shared around the app
# ---------------------------

class SourceProduct(BaseModel):
    """
    The product the user is looking at. Immutable for the lifetime of one
    matching operation.
    """

    model_config = ConfigDict(frozen=True)

    title: str
    brand: Optional[str] = None
    price: Optional[float] = None
    marketplace: Optional[Marketplace] = None
    product_id: Optional[str] = None


class SearchOptions(BaseModel):
    timeout_ms: int = Field(default=DEFAULT_TIMEOUT_MS, gt=0)
    min_similarity: float = Field(default=DEFAULT_MIN_SIMILARITY, ge=0.0, le=1.0)
    include_brand: bool = DEFAULT_INCLUDE_BRAND
    max_title_words: int = Field(default=DEFAULT_MAX_TITLE_WORDS, ge=1)
    on_below_threshold: BelowThresholdPolicy = DEFAULT_BELOW_THRESHOLD_POLICY


class SearchRequest(BaseModel):
    """Created by the coordinator at call time; gone once the call resolves."""

    request_id: str
    source_product: SourceProduct
    target_marketplace: Marketplace
    options: SearchOptions
    search_url: str


class RawCandidate(BaseModel):
    """One listing as scraped from a search-results page."""

    title: Optional[str] = None
    price: Optional[float] = None
    url: Optional[str] = None
    image_url: Optional[str] = None
    ratings_average: Optional[float] = None
    ratings_count: Optional[int] = None
    brand: Optional[str] = None
    product_id: Optional[str] = None


class ScoredCandidate(RawCandidate):
    title_similarity: float = Field(ge=0.0, le=1.0)
    brand_similarity: float = Field(ge=0.0, le=1.0)
    combined_score: float = Field(ge=0.0, le=1.0)
    # informational only, never used for ranking
    relevance_score: float = 0.0
    price_reasonable: Optional[bool] = None


class MatchResult(BaseModel):
    """
    The only value that crosses back to the caller.
    """

    success: bool
    match: Optional[ScoredCandidate] = None
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    low_confidence: bool = False
    search_url: Optional[str] = None
    request_id: Optional[str] = None


class FindMatchRequest(BaseModel):
    """
    Request body for POST /match.
    """

    source_product: SourceProduct
    target_marketplace: str = Field(..., min_length=1)
    options: SearchOptions = Field(default_factory=SearchOptions)


class HealthResponse(BaseModel):
    """
    Response body for GET /health.
    """

    status: str
    active_searches: List[str] = Field(default_factory=list)
