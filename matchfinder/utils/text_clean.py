# matchfinder/utils/text_clean.py
from __future__ import annotations
import re

from .. import config


def clean_title_text(t: str | None, max_len: int = config.MAX_TITLE_CHARS) -> str:
    """
    Minimal, safe title normaliser used on scraped listing titles:
    - collapse whitespace/newlines
    - trim
    - hard cap
    """
    t = "" if t is None else str(t)
    t = re.sub(r"\s+", " ", t).strip()
    if len(t) > max_len:
        t = t[:max_len].rstrip()
    return t
