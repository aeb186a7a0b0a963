"""Tests for odds and price conversions."""

import pytest

from edgebot.utils.odds import (
    american_odds_from_probability,
    format_american,
    implied_probability_from_american,
    implied_probability_from_price,
    probability_difference_pct,
)


class TestAmericanOdds:
    """American odds <-> probability."""

    def test_favorite(self):
        assert implied_probability_from_american(-150) == pytest.approx(0.6)

    def test_underdog(self):
        assert implied_probability_from_american(150) == pytest.approx(0.4)

    def test_even(self):
        assert implied_probability_from_american(100) == pytest.approx(0.5)
        assert implied_probability_from_american(-100) == pytest.approx(0.5)

    def test_extreme_odds_clamped(self):
        assert implied_probability_from_american(-100000) == pytest.approx(0.999)
        assert implied_probability_from_american(-100000) <= 0.999
        assert implied_probability_from_american(100000) == pytest.approx(0.001)
        assert implied_probability_from_american(100000) >= 0.001

    def test_probability_to_odds(self):
        assert american_odds_from_probability(0.67) == -203
        assert american_odds_from_probability(0.1) == 900
        assert american_odds_from_probability(0.5) == -100

    def test_format(self):
        assert format_american(150) == "+150"
        assert format_american(-203) == "-203"


class TestVenuePrice:
    """Venue price -> clamped probability."""

    def test_cents(self):
        assert implied_probability_from_price(45) == pytest.approx(0.45)

    def test_one_cent(self):
        assert implied_probability_from_price(1) == pytest.approx(0.01)

    def test_clamped(self):
        assert implied_probability_from_price(0) == pytest.approx(0.001)
        assert implied_probability_from_price(100) == pytest.approx(0.999)

    def test_monotonic(self):
        probs = [implied_probability_from_price(p) for p in range(0, 101)]
        assert probs == sorted(probs)
        assert all(0.001 <= p <= 0.999 for p in probs)

    def test_difference_pct(self):
        assert probability_difference_pct(0.30, 0.45) == pytest.approx(15.0)
        assert probability_difference_pct(0.45, 0.30) == pytest.approx(15.0)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
