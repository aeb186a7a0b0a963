"""
Mispricing Detector.

Compares venue quotes against reference moneyline odds for the same game.

    Reference probability = "truth" (sportsbook moneyline)
    Venue probability     = price to exploit
    Divergence            = |venue - reference| in percentage points

A side is flagged when its divergence, less the minimum edge required to
cover costs, reaches the threshold.
"""

from dataclasses import dataclass
from typing import Optional

import structlog

from edgebot.engine.identity import group_by_game
from edgebot.engine.teams import canonical_team
from edgebot.models.schemas import (
    GameComparison,
    MarketQuote,
    MispricingReport,
    Opportunity,
    ReferenceOdds,
    SideComparison,
    Sport,
    TeamSide,
)
from edgebot.utils.odds import probability_difference_pct

logger = structlog.get_logger()


@dataclass
class MispricingConfig:
    """Configuration for mispricing detection (fractions, 0.10 = 10pp)."""
    threshold_pct: float = 0.10
    min_edge_after_costs_pct: float = 0.0

    # Favourite band for the mid-edge scan
    mid_edge_min_prob: float = 0.50
    mid_edge_max_prob: float = 0.70


@dataclass
class _MatchedSide:
    quote: MarketQuote
    odds: ReferenceOdds
    ref_side: TeamSide
    divergence_pct: float


class MispricingDetector:
    """
    Detects venue quotes that diverge from reference odds.

    Games are joined to reference odds by team pair: an exact,
    order-independent match over all odds first, then a normalized match
    through the league's abbreviation table. Ties go to the first odds seen.
    """

    def __init__(self, config: Optional[MispricingConfig] = None):
        self.config = config or MispricingConfig()
        self.logger = logger.bind(component="mispricing_detector")

    # =========================================================================
    # Core Detection
    # =========================================================================

    def find_opportunities(
        self,
        quotes: list[MarketQuote],
        reference_odds: list[ReferenceOdds],
    ) -> MispricingReport:
        """
        Build the comparison table and flag opportunities.

        Returns:
            MispricingReport with a comparison row for every matched game
        """
        report = MispricingReport()
        threshold_pp = self.config.threshold_pct * 100
        cost_pp = self.config.min_edge_after_costs_pct * 100

        for key, sides in group_by_game(quotes).items():
            identity = next(iter(sides.values())).identity
            odds = self.match_reference(identity.sport, identity.away, identity.home, reference_odds)
            if odds is None:
                continue

            comparison = GameComparison(
                game_key=key,
                sport=identity.sport,
                away=identity.away,
                home=identity.home,
            )

            for side, quote in sides.items():
                matched = self._match_side(quote, odds)
                if matched is None:
                    continue

                edge_pp = matched.divergence_pct - cost_pp
                over = round(edge_pp, 6) >= round(threshold_pp, 6)
                row = SideComparison(
                    team=quote.identity.side_team or "",
                    symbol=quote.symbol,
                    reference_odds=odds.odds_for(matched.ref_side),
                    reference_probability=odds.probability_for(matched.ref_side),
                    quote_price=quote.price,
                    quote_probability=quote.implied_probability,
                    divergence_pct=matched.divergence_pct,
                    over_threshold=over,
                )
                if side == TeamSide.HOME:
                    comparison.home_side = row
                else:
                    comparison.away_side = row

                if over:
                    report.opportunities.append(self._to_opportunity(matched))

            report.comparisons.append(comparison)

        self.logger.info(
            "Mispricing scan",
            quotes=len(quotes),
            reference_games=len(reference_odds),
            matched_games=len(report.comparisons),
            opportunities=len(report.opportunities),
        )
        return report

    def find_mid_edge(
        self,
        quotes: list[MarketQuote],
        reference_odds: list[ReferenceOdds],
    ) -> list[Opportunity]:
        """Matched sides whose reference probability sits in the favourite band."""
        found = []
        for sides in group_by_game(quotes).values():
            identity = next(iter(sides.values())).identity
            odds = self.match_reference(identity.sport, identity.away, identity.home, reference_odds)
            if odds is None:
                continue
            for quote in sides.values():
                matched = self._match_side(quote, odds)
                if matched is None:
                    continue
                ref_prob = odds.probability_for(matched.ref_side)
                if self.config.mid_edge_min_prob <= ref_prob <= self.config.mid_edge_max_prob:
                    found.append(self._to_opportunity(matched))
        return found

    # =========================================================================
    # Matching
    # =========================================================================

    def match_reference(
        self,
        sport: Sport,
        away: str,
        home: str,
        reference_odds: list[ReferenceOdds],
    ) -> Optional[ReferenceOdds]:
        """Find reference odds for a team pair, exact match before fuzzy."""
        wanted = {away.strip().upper(), home.strip().upper()}
        candidates = [o for o in reference_odds if o.game.sport == sport]

        for odds in candidates:
            if {odds.game.home.strip().upper(), odds.game.away.strip().upper()} == wanted:
                return odds

        wanted_fuzzy = {canonical_team(sport, away), canonical_team(sport, home)}
        for odds in candidates:
            teams = {canonical_team(sport, odds.game.home), canonical_team(sport, odds.game.away)}
            if teams == wanted_fuzzy:
                return odds

        return None

    def _match_side(self, quote: MarketQuote, odds: ReferenceOdds) -> Optional[_MatchedSide]:
        """Map a quote's team onto the reference home/away side."""
        sport = quote.identity.sport
        team = quote.identity.side_team
        if not team:
            return None

        team = canonical_team(sport, team)
        if team == canonical_team(sport, odds.game.home):
            ref_side = TeamSide.HOME
        elif team == canonical_team(sport, odds.game.away):
            ref_side = TeamSide.AWAY
        else:
            return None

        divergence = probability_difference_pct(
            quote.implied_probability, odds.probability_for(ref_side)
        )
        return _MatchedSide(
            quote=quote,
            odds=odds,
            ref_side=ref_side,
            divergence_pct=round(divergence, 6),
        )

    def _to_opportunity(self, matched: _MatchedSide) -> Opportunity:
        quote = matched.quote
        ref_prob = matched.odds.probability_for(matched.ref_side)
        return Opportunity(
            game_key=quote.game_key,
            sport=quote.identity.sport,
            side=matched.ref_side,
            team=quote.identity.side_team or "",
            symbol=quote.symbol,
            quote_price=quote.price,
            quote_probability=quote.implied_probability,
            reference_odds=matched.odds.odds_for(matched.ref_side),
            reference_probability=ref_prob,
            divergence_pct=matched.divergence_pct,
            is_overvalued=quote.implied_probability > ref_prob,
        )
