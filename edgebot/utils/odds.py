"""
Odds and price conversions.

Venue prices are integer cents (0-100); reference odds are
American moneylines (+150, -200).
"""

MIN_PROBABILITY = 0.001
MAX_PROBABILITY = 0.999


def clamp_probability(p: float) -> float:
    return min(MAX_PROBABILITY, max(MIN_PROBABILITY, p))


def implied_probability_from_american(odds: float) -> float:
    """Convert American odds to a clamped implied probability."""
    if odds > 0:
        return clamp_probability(100 / (odds + 100))
    return clamp_probability(abs(odds) / (abs(odds) + 100))


def implied_probability_from_price(price_cents: float) -> float:
    """Convert a venue price in cents to a clamped probability."""
    return clamp_probability(price_cents / 100)


def american_odds_from_probability(p: float) -> int:
    """Convert a probability to the nearest American odds."""
    p = clamp_probability(p)
    if p >= 0.5:
        return round(-100 * p / (1 - p))
    return round(100 * (1 - p) / p)


def probability_difference_pct(a: float, b: float) -> float:
    """Absolute difference in percentage points."""
    return abs(a - b) * 100


def format_american(odds: float) -> str:
    return f"+{odds:.0f}" if odds > 0 else f"{odds:.0f}"
