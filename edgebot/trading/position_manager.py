"""
Position Manager.

Evaluates open positions against exit rules and sends exit orders.
Rules are checked in a fixed priority order, first hit wins:

    1. take-profit, cents per contract
    2. take-profit, % of cost
    3. stop-loss, % of cost
    4. max hold time
"""

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional
from uuid import uuid4

import structlog

from edgebot.feeds.base import VenueClient
from edgebot.models.schemas import (
    Action,
    ExitDecision,
    MarketSnapshot,
    Order,
    OrderSpec,
    OrderSubmission,
    Position,
    Side,
)
from edgebot.trading.allocator import DRY_RUN_ORDER_ID, clamp_price
from edgebot.trading.risk import RiskService

logger = structlog.get_logger()


@dataclass
class ExitConfig:
    """Exit rules; None disables a rule."""
    take_profit_cents: Optional[int] = 2
    take_profit_pct: Optional[float] = 10.0
    stop_loss_pct: Optional[float] = None
    max_hold_minutes: Optional[float] = 180.0
    improve_exit_by_one_tick: bool = True
    live_trades: bool = False


def _format_cents(value: float) -> str:
    return f"{value:.0f}" if float(value).is_integer() else f"{value:.1f}"


class PositionManager:

    def __init__(
        self,
        venue: VenueClient,
        config: Optional[ExitConfig] = None,
        risk: Optional[RiskService] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.venue = venue
        self.config = config or ExitConfig()
        self.risk = risk
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.logger = logger.bind(component="position_manager")

        self.exits_placed = 0

    # =========================================================================
    # Evaluation
    # =========================================================================

    async def evaluate_position_exit(
        self,
        position: Position,
        orders: list[Order],
    ) -> ExitDecision:
        """
        Decide whether a position should be sold now.

        Only the quantity not already covered by working sell orders is
        considered. Prices are for the held side: YES reads the YES book
        directly, NO reads its complement.
        """
        resting = sum(
            o.remaining for o in orders
            if o.symbol == position.symbol
            and o.action == Action.SELL
            and o.side == position.side
            and o.is_working
        )
        quantity = position.contracts - resting
        if quantity <= 0:
            return ExitDecision(should_exit=False, reason="Exit already working")

        snapshot = await self.venue.get_market(position.symbol)
        if snapshot is None:
            return ExitDecision(should_exit=False, reason="No market data", quantity=quantity)

        bid, _ask, current = self.held_side_prices(snapshot, position.side)
        entry = position.entry_price
        if entry is None or current is None:
            return ExitDecision(
                should_exit=False,
                reason="Missing entry or market price",
                quantity=quantity,
                entry_price=entry,
                best_bid=bid,
            )

        pnl_cents = current - entry
        pnl_pct = pnl_cents / entry * 100 if entry else 0.0

        decision = ExitDecision(
            should_exit=False,
            quantity=quantity,
            entry_price=entry,
            current_price=current,
            best_bid=bid,
            pnl_cents=pnl_cents,
            pnl_pct=pnl_pct,
        )

        reason = self._exit_reason(position, pnl_cents, pnl_pct)
        if reason:
            decision.should_exit = True
            decision.reason = reason
            self.logger.info(
                "Exit triggered",
                symbol=position.symbol,
                side=position.side.value,
                reason=reason,
                entry=f"{entry:.1f}¢",
                current=f"{current}¢",
                quantity=quantity,
            )
        return decision

    def _exit_reason(self, position: Position, pnl_cents: float, pnl_pct: float) -> str:
        cfg = self.config

        if cfg.take_profit_cents is not None and pnl_cents >= cfg.take_profit_cents:
            return f"TP: +{_format_cents(pnl_cents)}¢/contract"

        if cfg.take_profit_pct is not None and pnl_pct >= cfg.take_profit_pct:
            return f"TP: +{pnl_pct:.2f}% of cost"

        if cfg.stop_loss_pct is not None and pnl_pct <= -cfg.stop_loss_pct:
            return f"SL: {pnl_pct:.2f}% loss"

        if cfg.max_hold_minutes is not None and position.opened_at is not None:
            opened = position.opened_at
            if opened.tzinfo is None:
                opened = opened.replace(tzinfo=timezone.utc)
            held_minutes = (self.clock() - opened).total_seconds() / 60
            if held_minutes >= cfg.max_hold_minutes:
                return f"Max hold time: {held_minutes:.1f}min"

        return ""

    @staticmethod
    def held_side_prices(
        snapshot: MarketSnapshot,
        side: Side,
    ) -> tuple[Optional[int], Optional[int], Optional[int]]:
        """(bid, ask, current) in cents for the held side; current falls back to last trade."""
        if side == Side.YES:
            bid = snapshot.yes_bid
            ask = snapshot.yes_ask
            last = snapshot.last_price
        else:
            bid = snapshot.no_bid or (100 - snapshot.yes_ask if snapshot.yes_ask else None)
            ask = snapshot.no_ask or (100 - snapshot.yes_bid if snapshot.yes_bid else None)
            last = 100 - snapshot.last_price if snapshot.last_price else None
        current = bid if bid else last
        return bid, ask, current

    # =========================================================================
    # Execution
    # =========================================================================

    async def place_exit_order(
        self,
        position: Position,
        decision: ExitDecision,
    ) -> OrderSubmission:
        """Limit sell at the best bid, one tick lower when improving."""
        if not decision.best_bid:
            self.logger.warning("No bid to exit into", symbol=position.symbol)
            return OrderSubmission(success=False, error="No bid")

        price = math.floor(decision.best_bid)
        if self.config.improve_exit_by_one_tick:
            price -= 1
        price = clamp_price(price)

        spec = OrderSpec(
            symbol=position.symbol,
            side=position.side,
            action=Action.SELL,
            quantity=decision.quantity,
            price=price,
            client_order_id=f"exit-{uuid4().hex[:16]}",
        )

        if not self.config.live_trades:
            self.logger.info(
                "DRY RUN - exit not sent",
                symbol=spec.symbol,
                side=spec.side.value,
                price=f"{price}¢",
                quantity=spec.quantity,
                reason=decision.reason,
            )
            return OrderSubmission(success=True, order_id=DRY_RUN_ORDER_ID)

        submission = await self.venue.create_order(spec)
        if not submission.success:
            self.logger.error("Exit order failed", symbol=spec.symbol, error=submission.error)
            return submission

        self.exits_placed += 1
        if self.risk is not None and decision.entry_price is not None:
            # Estimated at the limit price
            self.risk.update_realized_pnl((price - decision.entry_price) * spec.quantity / 100)

        self.logger.info(
            "Exit order placed",
            symbol=spec.symbol,
            order_id=submission.order_id,
            price=f"{price}¢",
            quantity=spec.quantity,
            reason=decision.reason,
        )
        return submission

    async def manage_positions(
        self,
        positions: list[Position],
        orders: list[Order],
    ) -> int:
        """Evaluate every open position and send exits; returns exits sent."""
        sent = 0
        for position in positions:
            if position.quantity == 0:
                continue
            decision = await self.evaluate_position_exit(position, orders)
            if not decision.should_exit:
                continue
            submission = await self.place_exit_order(position, decision)
            if submission.success:
                sent += 1
        return sent
