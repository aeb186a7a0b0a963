"""Tests for the risk service and its persisted daily counters."""

from datetime import datetime, timedelta, timezone

import orjson
import pytest

from edgebot.models.schemas import Action, Order, OrderStatus, Side
from edgebot.trading.risk import RiskLimits, RiskService


class MutableClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock():
    return MutableClock(datetime(2025, 11, 26, 18, 0, tzinfo=timezone.utc))


@pytest.fixture
def stats_path(tmp_path):
    return tmp_path / "daily_stats.json"


def make_service(stats_path, clock, **limits) -> RiskService:
    return RiskService(RiskLimits(**limits), stats_path=str(stats_path), clock=clock)


def resting_buy(symbol: str) -> Order:
    return Order(
        order_id=f"o-{symbol}",
        symbol=symbol,
        side=Side.YES,
        action=Action.BUY,
        quantity=5,
        remaining=5,
        status=OrderStatus.RESTING,
    )


class TestCanPlaceTrade:
    """Each limit and its rejection reason."""

    def test_no_limits_allows(self, stats_path, clock):
        assert make_service(stats_path, clock).can_place_trade(1000.0).allowed

    def test_max_positions(self, stats_path, clock):
        risk = make_service(stats_path, clock, max_positions_total=3)

        decision = risk.can_place_trade(5.0, total_open_positions=3)

        assert not decision.allowed
        assert decision.reason == "Max positions limit reached (3/3)"

    def test_working_buys_count_as_positions(self, stats_path, clock):
        risk = make_service(stats_path, clock, max_positions_total=3)
        orders = [resting_buy("A"), resting_buy("A"), resting_buy("B")]

        assert risk.can_place_trade(5.0, total_open_positions=0, orders=orders).allowed
        decision = risk.can_place_trade(5.0, total_open_positions=1, orders=orders)
        assert decision.reason == "Max positions limit reached (3/3)"

    def test_order_notional(self, stats_path, clock):
        risk = make_service(stats_path, clock, max_order_notional=20.0)

        decision = risk.can_place_trade(25.0)

        assert decision.reason == "Order notional ($25.00) exceeds max ($20.00)"
        assert risk.can_place_trade(20.0).allowed

    def test_daily_trades(self, stats_path, clock):
        risk = make_service(stats_path, clock, max_daily_trades=2)
        risk.record_trade(1.0)
        risk.record_trade(1.0)

        assert risk.can_place_trade(1.0).reason == "Max daily trades reached"

    def test_daily_notional(self, stats_path, clock):
        risk = make_service(stats_path, clock, max_daily_notional=50.0)
        risk.record_trade(40.0)

        assert risk.can_place_trade(10.0).allowed
        assert risk.can_place_trade(10.01).reason == "Daily notional would exceed limit"

    def test_daily_loss(self, stats_path, clock):
        risk = make_service(stats_path, clock, max_daily_loss=30.0)
        risk.update_realized_pnl(-30.0)

        assert risk.can_place_trade(1.0).reason == "Daily loss limit reached"

    def test_first_failure_wins(self, stats_path, clock):
        risk = make_service(stats_path, clock, max_positions_total=1, max_order_notional=1.0)

        decision = risk.can_place_trade(5.0, total_open_positions=1)

        assert decision.reason.startswith("Max positions")

    def test_balance_tracked(self, stats_path, clock):
        risk = make_service(stats_path, clock)
        risk.can_place_trade(1.0, balance=120.0)
        risk.can_place_trade(1.0, balance=110.0)

        assert risk.stats.start_balance == 120.0
        assert risk.stats.end_balance == 110.0


class TestPersistence:
    """Daily counters on disk."""

    def test_round_trip(self, stats_path, clock):
        risk = make_service(stats_path, clock)
        risk.record_trade(12.5)
        risk.update_realized_pnl(-3.0)

        reloaded = make_service(stats_path, clock)

        assert reloaded.stats.trades_count == 1
        assert reloaded.stats.notional_spent == pytest.approx(12.5)
        assert reloaded.stats.realized_pnl == pytest.approx(-3.0)

    def test_stale_file_resets(self, stats_path, clock):
        stats_path.write_bytes(orjson.dumps({
            "date": "2025-11-25",
            "trades_count": 9,
            "notional_spent": 400.0,
            "realized_pnl": -50.0,
        }))

        risk = make_service(stats_path, clock, max_daily_trades=5)

        assert risk.stats.date == "2025-11-26"
        assert risk.stats.trades_count == 0
        assert risk.can_place_trade(1.0).allowed

    def test_corrupt_file_resets(self, stats_path, clock):
        stats_path.write_text("{not json")

        risk = make_service(stats_path, clock)

        assert risk.stats.trades_count == 0

    def test_mid_run_rollover(self, stats_path, clock):
        risk = make_service(stats_path, clock, max_daily_trades=1)
        risk.record_trade(5.0)
        assert not risk.can_place_trade(1.0).allowed

        clock.now += timedelta(hours=7)

        assert risk.can_place_trade(1.0).allowed
        assert risk.stats.date == "2025-11-27"
        saved = orjson.loads(stats_path.read_bytes())
        assert saved["date"] == "2025-11-27"
        assert saved["trades_count"] == 0


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
