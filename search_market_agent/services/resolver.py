from __future__ import annotations

import logging
from typing import List, Protocol

from ..types import MarketRecord, SearchCandidate

logger = logging.getLogger(__name__)


class SearchProvider(Protocol):
    async def search(self, query: str) -> List[SearchCandidate]: ...


class MarketResolver:
    """Maps an unresolved market to the provider's ranked candidate list."""

    def __init__(self, search: SearchProvider):
        self.search = search

    async def resolve(self, market: MarketRecord) -> List[SearchCandidate]:
        candidates = await self.search.search(market.search_string)
        logger.info("query %r returned %d candidates", market.search_string, len(candidates))
        return candidates


__all__ = ["MarketResolver", "SearchProvider"]
