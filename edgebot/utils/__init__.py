"""Utility modules."""

from edgebot.utils.logging import setup_logging
from edgebot.utils.odds import (
    american_odds_from_probability,
    implied_probability_from_american,
    implied_probability_from_price,
    probability_difference_pct,
)

__all__ = [
    "setup_logging",
    "american_odds_from_probability",
    "implied_probability_from_american",
    "implied_probability_from_price",
    "probability_difference_pct",
]
