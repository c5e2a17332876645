import pytest
from pydantic import ValidationError

from matchfinder import config
from matchfinder.config import (
    FindMatchRequest,
    HealthResponse,
    MatchResult,
    RawCandidate,
    SearchOptions,
    SourceProduct,
)
from matchfinder.pipeline_types import BelowThresholdPolicy, Marketplace


def test_source_product_is_immutable():
    p = SourceProduct(title="Acme Widget", marketplace="walmart")
    assert p.marketplace is Marketplace.WALMART
    with pytest.raises(ValidationError):
        p.title = "Changed"


def test_search_options_defaults():
    opts = SearchOptions()
    assert opts.timeout_ms == config.DEFAULT_TIMEOUT_MS
    assert opts.min_similarity == config.DEFAULT_MIN_SIMILARITY
    assert opts.include_brand is True
    assert opts.max_title_words == 10
    assert opts.on_below_threshold is BelowThresholdPolicy.RETURN_ANYWAY


def test_search_options_validation():
    with pytest.raises(ValidationError):
        SearchOptions(min_similarity=1.5)
    with pytest.raises(ValidationError):
        SearchOptions(timeout_ms=0)
    with pytest.raises(ValidationError):
        SearchOptions(on_below_threshold="warn")


def test_raw_candidate_fields_are_optional():
    c = RawCandidate()
    assert c.title is None and c.price is None and c.url is None


def test_find_match_request_requires_target():
    with pytest.raises(ValidationError):
        FindMatchRequest(source_product={"title": "x"}, target_marketplace="")


def test_match_result_defaults():
    r = MatchResult(success=False)
    assert r.match is None
    assert r.low_confidence is False


def test_health_response():
    health = HealthResponse(status="healthy")
    assert health.status == "healthy"
    assert health.active_searches == []
