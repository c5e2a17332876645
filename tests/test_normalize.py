from matchfinder.normalize import (
    basic_clean,
    clamp_text_length,
    match_tokens,
    normalize_for_matching,
    simple_tokenize,
    strip_html,
    strip_punctuation,
)
from matchfinder.config import MAX_INPUT_CHARS


def test_strip_html_basic():
    html = "<p>Hello <b>world</b>!</p>"
    assert strip_html(html) == "Hello world!"


def test_basic_clean_trims_whitespace_and_html():
    raw = "   <div>Hello   world</div>\n"
    cleaned = basic_clean(raw)
    assert cleaned == "Hello world"


def test_basic_clean_handles_none():
    assert basic_clean(None) == ""


def test_normalize_for_matching_drops_punctuation_and_case():
    assert normalize_for_matching("  Acme Blue-Widget, 10oz! ") == "acme bluewidget 10oz"


def test_strip_punctuation_keeps_case_and_splits():
    assert strip_punctuation("Acme Blue-Widget, 10oz!") == "Acme Blue Widget 10oz"


def test_simple_tokenize_lowercases():
    tokens = simple_tokenize("Nike Red SHOES")
    assert tokens == ["nike", "red", "shoes"]


def test_match_tokens_drops_short_tokens():
    tokens = match_tokens("A pack of 12 AA batteries")
    # "a", "of", "12", "aa" are too short to count
    assert tokens == ["pack", "batteries"]


def test_clamp_text_length():
    text = "x" * (MAX_INPUT_CHARS + 100)
    clamped = clamp_text_length(text)
    assert len(clamped) == MAX_INPUT_CHARS
