"""
Spread Extreme Finder.

Flags quotes priced as near-certain either way. These feed the
spread-farming strategy when a series has no arbitrage bundle.
"""

from dataclasses import dataclass
from typing import Optional

from edgebot.models.schemas import MarketQuote


@dataclass
class SpreadConfig:
    low_prob: float = 0.15
    high_prob: float = 0.85


class SpreadExtremeFinder:

    def __init__(self, config: Optional[SpreadConfig] = None):
        self.config = config or SpreadConfig()

    def find_extremes(self, quotes: list[MarketQuote]) -> list[MarketQuote]:
        """Quotes at or beyond either band, furthest from 0.5 first."""
        extremes = [
            q for q in quotes
            if q.implied_probability <= self.config.low_prob
            or q.implied_probability >= self.config.high_prob
        ]
        extremes.sort(key=lambda q: abs(q.implied_probability - 0.5), reverse=True)
        return extremes
