"""
Arbitrage Bundle Finder.

Buying YES on both teams of a game pays exactly one contract at
settlement, so a bundle whose combined price is below one (less a fee
buffer) locks in the difference. Best single prices stand in for
two-sided depth.
"""

from dataclasses import dataclass
from typing import Optional

import structlog

from edgebot.engine.identity import group_by_game
from edgebot.models.schemas import ArbitrageBundle, MarketQuote, TeamSide
from edgebot.utils.odds import implied_probability_from_price

logger = structlog.get_logger()


@dataclass
class ArbitrageConfig:
    fee_buffer: float = 0.01


class ArbitrageFinder:
    """Finds both-sides bundles priced below one."""

    def __init__(self, config: Optional[ArbitrageConfig] = None):
        self.config = config or ArbitrageConfig()
        self.logger = logger.bind(component="arbitrage_finder")

    def find_bundles(self, quotes: list[MarketQuote]) -> list[ArbitrageBundle]:
        """
        Pair home/away quotes per game and keep those below 1 - fee buffer.

        Returns:
            Bundles sorted by edge, best first
        """
        bundles = []
        limit = 1 - self.config.fee_buffer

        for key, sides in group_by_game(quotes).items():
            home = sides.get(TeamSide.HOME)
            away = sides.get(TeamSide.AWAY)
            if home is None or away is None:
                continue

            combined = self.buy_probability(home) + self.buy_probability(away)
            if combined >= limit:
                continue

            bundles.append(ArbitrageBundle(
                game_key=key,
                home_quote=home,
                away_quote=away,
                combined_probability=combined,
                edge_pct=(limit - combined) * 100,
            ))

        bundles.sort(key=lambda b: b.edge_pct, reverse=True)

        if bundles:
            self.logger.info(
                "Arbitrage bundles found",
                count=len(bundles),
                best_edge=f"{bundles[0].edge_pct:.2f}%",
            )
        return bundles

    @staticmethod
    def buy_probability(quote: MarketQuote) -> float:
        """Cost of buying YES: the ask when quoted, else the display price."""
        if quote.yes_ask:
            return implied_probability_from_price(quote.yes_ask)
        return quote.implied_probability
