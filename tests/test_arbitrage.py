"""Tests for the arbitrage bundle and spread extreme finders."""

import pytest

from edgebot.engine.arbitrage import ArbitrageConfig, ArbitrageFinder
from edgebot.engine.spread import SpreadConfig, SpreadExtremeFinder
from edgebot.models.schemas import Opportunity, Side

from tests.fakes import make_quote


@pytest.fixture
def finder():
    return ArbitrageFinder(ArbitrageConfig(fee_buffer=0.01))


class TestArbitrageFinder:
    """Both-sides bundles below par."""

    def test_bundle_edge(self, finder):
        quotes = [
            make_quote("KXNBAGAME-25NOV26MINOKC-OKC", 40),
            make_quote("KXNBAGAME-25NOV26MINOKC-MIN", 55),
        ]

        bundles = finder.find_bundles(quotes)

        assert len(bundles) == 1
        bundle = bundles[0]
        assert bundle.edge_pct == pytest.approx(4.0)
        assert bundle.combined_probability == pytest.approx(0.95)
        assert bundle.home_quote.symbol.endswith("-OKC")
        assert bundle.away_quote.symbol.endswith("-MIN")

    def test_no_bundle_at_par(self, finder):
        quotes = [
            make_quote("KXNBAGAME-25NOV26MINOKC-OKC", 50),
            make_quote("KXNBAGAME-25NOV26MINOKC-MIN", 50),
        ]
        assert finder.find_bundles(quotes) == []

    def test_fee_buffer_excludes_thin_edge(self, finder):
        quotes = [
            make_quote("KXNBAGAME-25NOV26MINOKC-OKC", 49),
            make_quote("KXNBAGAME-25NOV26MINOKC-MIN", 50),
        ]
        assert finder.find_bundles(quotes) == []

    def test_single_side_ignored(self, finder):
        assert finder.find_bundles([make_quote("KXNBAGAME-25NOV26MINOKC-OKC", 20)]) == []

    def test_ask_used_when_quoted(self, finder):
        quotes = [
            make_quote("KXNBAGAME-25NOV26MINOKC-OKC", 40, yes_ask=46),
            make_quote("KXNBAGAME-25NOV26MINOKC-MIN", 55),
        ]
        assert finder.find_bundles(quotes) == []

    def test_sorted_by_edge(self, finder):
        quotes = [
            make_quote("KXNBAGAME-25NOV26MINOKC-OKC", 45),
            make_quote("KXNBAGAME-25NOV26MINOKC-MIN", 50),
            make_quote("KXNBAGAME-25NOV26BOSNYK-BOS", 30),
            make_quote("KXNBAGAME-25NOV26BOSNYK-NYK", 40),
        ]

        bundles = finder.find_bundles(quotes)

        assert [b.edge_pct for b in bundles] == sorted((b.edge_pct for b in bundles), reverse=True)
        assert bundles[0].game_key == "NBA-25NOV26-BOS-NY"


class TestSpreadExtremeFinder:
    """Near-certain quotes."""

    def test_bands_and_order(self):
        finder = SpreadExtremeFinder(SpreadConfig(low_prob=0.15, high_prob=0.85))
        quotes = [
            make_quote("KXNBAGAME-25NOV26MINOKC-OKC", 90),
            make_quote("KXNBAGAME-25NOV26BOSNYK-BOS", 50),
            make_quote("KXNBAGAME-25NOV26DALPHX-DAL", 5),
            make_quote("KXNBAGAME-25NOV26MIAORL-ORL", 15),
        ]

        extremes = finder.find_extremes(quotes)

        assert [q.price for q in extremes] == [5, 90, 15]

    def test_extreme_opportunity_buys_the_likely_side(self):
        cheap = Opportunity.from_extreme(make_quote("KXNBAGAME-25NOV26DALPHX-DAL", 5))
        rich = Opportunity.from_extreme(make_quote("KXNBAGAME-25NOV26MINOKC-OKC", 92))

        assert cheap.trade_side == Side.NO
        assert rich.trade_side == Side.YES


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
