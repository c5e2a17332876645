from __future__ import annotations

from typing import Dict, Type, Union

from ..pipeline_types import Marketplace
from ..query import UnsupportedMarketplaceError, resolve_marketplace
from .amazon import AmazonExtractor
from .base import CandidateExtractor
from .walmart import WalmartExtractor

EXTRACTORS: Dict[Marketplace, Type[CandidateExtractor]] = {
    Marketplace.AMAZON: AmazonExtractor,
    Marketplace.WALMART: WalmartExtractor,
}


def get_extractor(marketplace: Union[str, Marketplace]) -> CandidateExtractor:
    """Extractor for ``marketplace``; raises UnsupportedMarketplaceError if none."""
    mp = resolve_marketplace(marketplace)
    cls = EXTRACTORS.get(mp)
    if cls is None:
        raise UnsupportedMarketplaceError(mp.value)
    return cls()
