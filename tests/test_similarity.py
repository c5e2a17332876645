import pytest

from matchfinder import config
from matchfinder.similarity import (
    brand_similarity,
    combined_score,
    detect_brand_in_title,
    leading_token_bonus,
    title_similarity,
)


def test_identical_normalized_titles_score_one():
    assert title_similarity("Acme Blue Widget", "acme   blue widget!") == 1.0


def test_disjoint_titles_score_zero():
    assert title_similarity("Red Shoes", "Blue Table") == 0.0


def test_empty_titles_score_zero():
    assert title_similarity("", "Acme") == 0.0
    assert title_similarity(None, None) == 0.0
    # only short tokens left
    assert title_similarity("a b", "a b c") == 0.0


def test_fuzzy_and_partial_tokens_get_half_credit():
    # chart exact (1.0) + colour~color fuzzy (0.5) over 2 tokens
    assert title_similarity("colour chart", "color chart") == pytest.approx(0.75)
    # widgets contains widget
    assert title_similarity("blue widgets", "blue widget") == pytest.approx(0.75)


def test_brand_similarity():
    assert brand_similarity("Acme", "ACME") == 1.0
    assert brand_similarity("Samsung", "Samsung Electronics") == pytest.approx(0.8 * 7 / 19)
    assert brand_similarity("Sony", "Sonny") == pytest.approx(0.8)
    assert brand_similarity("", "Sony") == 0.0


def test_detect_brand_in_title():
    assert detect_brand_in_title("Nike", "Nike Red Shoes Size 9") == "Nike"
    assert detect_brand_in_title("Nike", "Red Nike Shoes") is None
    assert detect_brand_in_title(None, "Nike Red Shoes") is None


def test_brand_detected_in_title_adds_brand_weight():
    s = combined_score("Red Shoes Size 9", "Nike Red Shoes Size 9", source_brand="Nike")
    assert s.brand_similarity == 1.0
    assert s.title_similarity == pytest.approx(0.75)
    assert s.combined_score == pytest.approx(config.TITLE_WEIGHT * 0.75 + config.BRAND_WEIGHT)
    assert s.brand_source == "title"


def test_leading_token_bonus_without_brands():
    assert leading_token_bonus("Logitech Mouse", "Logitech Wireless Mouse") == config.LEADING_BRAND_BONUS_EXACT
    assert leading_token_bonus("Logi Mouse", "Logitech Mouse") == config.LEADING_BRAND_BONUS_PARTIAL
    assert leading_token_bonus("12 pack", "12 pack") == 0.0

    s = combined_score("Logitech Mouse M185", "Logitech Wireless Mouse")
    assert s.brand_source == "none"
    assert s.combined_score == pytest.approx(2 / 3 + config.LEADING_BRAND_BONUS_EXACT)


@pytest.mark.parametrize(
    "a,b,ba,bb",
    [
        ("", "", None, None),
        ("Acme Widget", "", "Acme", None),
        ("Acme Widget", "Acme Widget", "Acme", "Acme"),
        ("Acme Widget Pro Max", "Acme Widget Pro Max Deluxe", None, None),
        (None, "x", "", ""),
    ],
)
def test_combined_score_in_unit_interval(a, b, ba, bb):
    s = combined_score(a, b, ba, bb)
    assert 0.0 <= s.combined_score <= 1.0
    assert 0.0 <= s.title_similarity <= 1.0
    assert 0.0 <= s.brand_similarity <= 1.0
