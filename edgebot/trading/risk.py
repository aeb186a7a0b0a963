"""
Risk Service.

Hard limits on open positions, order size, daily trade count, daily
notional and daily realized loss. Daily counters persist to a small JSON
file and reset once per UTC calendar day, including mid-run rollovers.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional

import orjson
import structlog
from pydantic import ValidationError

from edgebot.models.schemas import Action, DailyStats, Order, RiskDecision

logger = structlog.get_logger()


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class RiskLimits:
    """Hard limits; None disables a check."""
    max_positions_total: Optional[int] = None
    max_order_notional: Optional[float] = None
    max_daily_trades: Optional[int] = None
    max_daily_notional: Optional[float] = None
    max_daily_loss: Optional[float] = None


class RiskService:
    """
    Gatekeeper for new orders.

    Checks run in a fixed order and stop at the first failure:
    positions, order notional, daily trades, daily notional, daily loss.
    """

    def __init__(
        self,
        limits: Optional[RiskLimits] = None,
        stats_path: str = "daily_stats.json",
        clock: Callable[[], datetime] = _utc_now,
    ):
        self.limits = limits or RiskLimits()
        self.stats_path = Path(stats_path)
        self.clock = clock
        self.logger = logger.bind(component="risk_service")

        self._stats = self._load()

    # =========================================================================
    # Daily stats
    # =========================================================================

    def _today(self) -> str:
        return self.clock().astimezone(timezone.utc).strftime("%Y-%m-%d")

    def _load(self) -> DailyStats:
        today = self._today()
        if not self.stats_path.exists():
            return DailyStats(date=today)

        try:
            stats = DailyStats.model_validate(orjson.loads(self.stats_path.read_bytes()))
        except (OSError, orjson.JSONDecodeError, ValidationError) as e:
            self.logger.warning("Unreadable daily stats, starting fresh", error=str(e))
            return DailyStats(date=today)

        if stats.date != today:
            self.logger.info("New trading day, daily stats reset", previous_date=stats.date)
            return DailyStats(date=today)
        return stats

    def _save(self) -> None:
        try:
            self.stats_path.parent.mkdir(parents=True, exist_ok=True)
            self.stats_path.write_bytes(
                orjson.dumps(self._stats.model_dump(), option=orjson.OPT_INDENT_2)
            )
        except OSError as e:
            self.logger.error("Failed to persist daily stats", error=str(e))

    @property
    def stats(self) -> DailyStats:
        """Today's counters, rolled over if the UTC date changed."""
        today = self._today()
        if self._stats.date != today:
            self.logger.info(
                "Daily counters reset",
                previous_date=self._stats.date,
                previous_pnl=f"${self._stats.realized_pnl:.2f}",
            )
            self._stats = DailyStats(date=today)
            self._save()
        return self._stats

    def record_trade(self, notional: float) -> None:
        stats = self.stats
        stats.trades_count += 1
        stats.notional_spent += notional
        self._save()

    def update_realized_pnl(self, pnl: float) -> None:
        stats = self.stats
        stats.realized_pnl += pnl
        self._save()

    def update_balance(self, balance: float) -> None:
        """Track the first and latest balance seen today."""
        stats = self.stats
        if stats.start_balance is None:
            stats.start_balance = balance
        stats.end_balance = balance
        self._save()

    # =========================================================================
    # Checks
    # =========================================================================

    def can_place_trade(
        self,
        order_notional: float,
        balance: Optional[float] = None,
        total_open_positions: int = 0,
        orders: Optional[list[Order]] = None,
    ) -> RiskDecision:
        """
        Decide whether a new order of ``order_notional`` dollars may go out.

        Working buy orders on symbols count towards the open-position total.
        """
        limits = self.limits
        stats = self.stats

        if balance is not None:
            self.update_balance(balance)

        open_count = total_open_positions + self._pending_entries(orders)
        if limits.max_positions_total is not None and open_count >= limits.max_positions_total:
            return self._deny(
                f"Max positions limit reached ({open_count}/{limits.max_positions_total})"
            )

        if limits.max_order_notional is not None and order_notional > limits.max_order_notional:
            return self._deny(
                f"Order notional (${order_notional:.2f}) exceeds max (${limits.max_order_notional:.2f})"
            )

        if limits.max_daily_trades is not None and stats.trades_count >= limits.max_daily_trades:
            return self._deny("Max daily trades reached")

        if limits.max_daily_notional is not None:
            projected = stats.notional_spent + order_notional
            if projected > limits.max_daily_notional:
                return self._deny("Daily notional would exceed limit")

        if limits.max_daily_loss is not None and stats.realized_pnl <= -limits.max_daily_loss:
            return self._deny("Daily loss limit reached")

        return RiskDecision(allowed=True)

    def _pending_entries(self, orders: Optional[list[Order]]) -> int:
        if not orders:
            return 0
        return len({o.symbol for o in orders if o.action == Action.BUY and o.is_working})

    def _deny(self, reason: str) -> RiskDecision:
        self.logger.info("Risk check failed", reason=reason)
        return RiskDecision(allowed=False, reason=reason)

    def get_metrics(self) -> dict:
        stats = self.stats
        return {
            "date": stats.date,
            "trades_count": stats.trades_count,
            "notional_spent": round(stats.notional_spent, 2),
            "realized_pnl": round(stats.realized_pnl, 2),
        }
