from __future__ import annotations

"""
Text normalisation helpers shared across extraction, query building and scoring.

The goal is to have a single, well-defined place that turns scraped listing
titles / marketplace markup / user supplied product data into something
reasonably clean for matching.

Public helpers:

* basic_clean(text) -> str
    Light-weight clean used on anything scraped from a page.

* normalize_for_matching(text) -> str
    Heavier normalisation used before similarity scoring: lowercase,
    alphanumerics only, single spaces.

* match_tokens(text) -> List[str]
    Tokeniser for similarity scoring; mirrors the above normalisation and
    drops very short tokens.
"""

from typing import List
import re
import unicodedata

from bs4 import BeautifulSoup

from . import config

MAX_INPUT_CHARS: int = config.MAX_INPUT_CHARS

_NON_ALNUM_RE = re.compile(r"[^\w\s]|_")
_WS_RE = re.compile(r"\s+")
_SPACE_BEFORE_PUNCT_RE = re.compile(r"\s+([!?.,;:])")


# ---------------------------------------------------------------------------
# Low-level helpers
# ---------------------------------------------------------------------------


def strip_html(text: str | None) -> str:
    if not text:
        return ""
    if "<" not in text:
        return text.strip()
    soup = BeautifulSoup(text, "html.parser")
    return _SPACE_BEFORE_PUNCT_RE.sub(r"\1", soup.get_text(" ", strip=True))


def _normalise_unicode(text: str) -> str:
    # Normalise quotes, accents etc. into a consistent representation.
    text = unicodedata.normalize("NFKC", text)
    text = text.replace("\u2018", "'").replace("\u2019", "'")
    text = text.replace("\u201c", '"').replace("\u201d", '"')
    text = text.replace("\u2013", "-").replace("\u2014", "-")
    text = text.replace("\u00a0", " ")
    return text


def clamp_text_length(text: str, max_chars: int = MAX_INPUT_CHARS) -> str:
    if len(text) > max_chars:
        return text[:max_chars]
    return text


def collapse_whitespace(text: str) -> str:
    return _WS_RE.sub(" ", text).strip()


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def basic_clean(text: str | None) -> str:
    """Light-weight clean for scraped fields.

    * strips HTML
    * normalises unicode and whitespace
    * truncates excessively long inputs
    """
    if text is None:
        return ""
    if not isinstance(text, str):
        text = str(text)

    text = clamp_text_length(text)
    text = strip_html(text)
    text = _normalise_unicode(text)
    return collapse_whitespace(text)


def normalize_for_matching(text: str | None) -> str:
    """Lowercase, drop everything that is not a letter/digit, collapse spaces."""
    if not text:
        return ""
    norm = _normalise_unicode(clamp_text_length(str(text))).lower()
    norm = _NON_ALNUM_RE.sub("", norm)
    return collapse_whitespace(norm)


def strip_punctuation(text: str | None) -> str:
    """Replace punctuation with spaces, keeping case. Used for search terms."""
    if not text:
        return ""
    return collapse_whitespace(_NON_ALNUM_RE.sub(" ", _normalise_unicode(str(text))))


def simple_tokenize(text: str | None) -> List[str]:
    norm = normalize_for_matching(text)
    return norm.split() if norm else []


def match_tokens(text: str | None, min_len: int = config.MIN_TOKEN_LEN) -> List[str]:
    """Tokens that take part in title similarity (order preserved)."""
    return [t for t in simple_tokenize(text) if len(t) >= min_len]
