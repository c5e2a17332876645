from __future__ import annotations

"""Shared vocabulary used across the extraction heuristics.

Kept in one place so the per-marketplace extractors and the URL helpers agree
on what counts as promotional markup without copy/paste drift.
"""

SPONSORED_TEXT_MARKERS = [
    "sponsored",
    "ad",
    "advertisement",
    "promoted",
]

# redirect/click-tracking paths that only ever carry ads
SPONSORED_URL_MARKERS = [
    "/sspa/click",
    "/gp/slredirect",
    "/sp/track",
    "sp_csd=",
    "adsredirect",
]

TRACKING_QUERY_PARAMS = [
    "ref",
    "ref_",
    "qid",
    "sr",
    "keywords",
    "crid",
    "sprefix",
    "athena",
    "adsSearchTerm",
    "from",
    "sid",
    "classType",
]

PRICE_NOISE_MARKERS = [
    "/count",
    "/oz",
    "/fl oz",
    "per ",
    "/lb",
    "each",
]
