import math
import re
from typing import Optional

PRICE_PATTERNS = [
    r"\$\s*(\d{1,3}(?:,\d{3})+(?:\.\d{1,2})?|\d+(?:\.\d{1,2})?)",
    r"(\d{1,3}(?:,\d{3})+(?:\.\d{1,2})?|\d+(?:\.\d{1,2})?)",
]

_RATING_RE = re.compile(r"(\d+(?:\.\d+)?)\s*(?:out of\s*5|stars?)", re.I)
_PLAIN_NUMBER_RE = re.compile(r"(\d+(?:\.\d+)?)")
_WIDTH_RE = re.compile(r"width:?\s*(\d+(?:\.\d+)?)%")
_COUNT_RE = re.compile(r"(\d+(?:,\d{3})*(?:\.\d+)?)\s*([kKmM])?")


def _finite(value: float) -> Optional[float]:
    return value if math.isfinite(value) else None


def parse_price(text: Optional[str]) -> Optional[float]:
    """
    Parse a single price from listing text.
    Takes the first currency amount if several are present. Examples:
      '$1,299.99' -> 1299.99, 'Now $9.97 $12.00' -> 9.97, '$' -> None
    """
    if not text:
        return None
    t = text.strip()
    if not t or t == "$":
        return None
    for pat in PRICE_PATTERNS:
        m = re.search(pat, t)
        if m:
            try:
                return _finite(float(m.group(1).replace(",", "")))
            except ValueError:
                continue
    return None


def join_price_fragments(whole: Optional[str], fraction: Optional[str]) -> Optional[float]:
    """
    Join a price rendered as separate whole / fractional fragments.
      ('12', '99') -> 12.99, ('$1,049.', '00') -> 1049.0, ('7', None) -> 7.0
    """
    dollars = re.sub(r"[^\d]", "", whole or "")
    if not dollars:
        return None
    cents = re.sub(r"[^\d]", "", fraction or "")[:2]
    if not cents:
        cents = "00"
    return float(f"{int(dollars)}.{cents.ljust(2, '0')}")


def parse_rating(text: Optional[str], style: Optional[str] = None) -> Optional[float]:
    """
    '4.5 out of 5 stars' -> 4.5. Falls back to a CSS width percentage
    ('width: 90%' -> 4.5) which some star widgets use instead of text.
    """
    if text:
        m = _RATING_RE.search(text)
        if m:
            return _clamp_rating(float(m.group(1)))
    if style:
        m = _WIDTH_RE.search(style)
        if m:
            return _clamp_rating(float(m.group(1)) / 100.0 * 5.0)
    if text:
        m = _PLAIN_NUMBER_RE.search(text)
        if m:
            val = float(m.group(1))
            if 0 <= val <= 5:
                return val
    return None


def _clamp_rating(val: float) -> float:
    return max(0.0, min(5.0, val))


def parse_count(text: Optional[str]) -> Optional[int]:
    """
    '(1,234)' -> 1234, '2.3K ratings' -> 2300, 'no reviews' -> None
    """
    if not text:
        return None
    m = _COUNT_RE.search(text)
    if not m:
        return None
    val = float(m.group(1).replace(",", ""))
    suffix = (m.group(2) or "").lower()
    if suffix == "k":
        val *= 1_000
    elif suffix == "m":
        val *= 1_000_000
    return int(round(val))
