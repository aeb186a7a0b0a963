"""
Strategy Capital Allocator & Order Placer.

Turns detector output into sized limit orders. Every entry passes through
the same sequence:

    1. game already entered this run        -> reject
    2. refresh open orders (best-effort)
    3. open position on symbol or its twin  -> reject
    4. working order on symbol or its twin  -> reject
    5. side: YES if undervalued, NO if overvalued
    6. price discovery
    7. stake sizing under market/strategy caps
    8. contract count
    9. risk gate
   10. dry-run: log + book theoretical spend
   11. live: submit, book spend, companion take-profit for spread farming

Checks and bookkeeping happen between awaits with no concurrent placement,
so the dedup rules hold within a run.
"""

from dataclasses import dataclass
from typing import Optional
from uuid import uuid4

import structlog

from edgebot.engine.identity import GameIdentityResolver
from edgebot.feeds.base import VenueClient
from edgebot.models.schemas import (
    Action,
    ArbitrageBundle,
    LedgerEntry,
    MarketSnapshot,
    Opportunity,
    Order,
    OrderSpec,
    OrderSubmission,
    Position,
    Side,
    Strategy,
    TradeResult,
)
from edgebot.trading.ledger import TradeLedger
from edgebot.trading.risk import RiskService
from edgebot.trading.session import TradingSession

logger = structlog.get_logger()


DRY_RUN_ORDER_ID = "dry-run-order-id"

REASON_GAME_TRADED = "Existing position: game already traded in this run"
REASON_EXISTING_POSITION = "Existing position found"
REASON_PENDING_ORDER = "Pending order found"
REASON_NO_PRICE = "No executable price"
REASON_CAPITAL_EXHAUSTED = "Strategy capital exhausted"

MIN_STAKE = 1.0


def clamp_price(price: int) -> int:
    return max(1, min(99, price))


def _valid(price: Optional[float]) -> Optional[int]:
    if price is None:
        return None
    price = int(price)
    return price if 1 <= price <= 99 else None


@dataclass
class AllocatorConfig:
    """Sizing and execution settings (dollars)."""
    live_trades: bool = False
    min_balance_to_bet: float = 10.0
    max_bet_size: Optional[float] = None
    max_per_market: Optional[float] = None

    # Live re-check of arbitrage bundles
    arbitrage_fee_buffer: float = 0.01

    # Companion take-profit for spread farming
    spread_take_profit_ticks: int = 2
    spread_take_profit_multiplier: float = 1.05


class OrderPlacer:
    """
    Sizes and submits entry orders for all strategies.

    Per-strategy capital and the set of entered games live in the
    ``TradingSession`` passed in; risk limits and the trade ledger are
    optional collaborators.
    """

    def __init__(
        self,
        venue: VenueClient,
        session: TradingSession,
        config: Optional[AllocatorConfig] = None,
        risk: Optional[RiskService] = None,
        ledger: Optional[TradeLedger] = None,
        resolver: Optional[GameIdentityResolver] = None,
    ):
        self.venue = venue
        self.session = session
        self.config = config or AllocatorConfig()
        self.risk = risk
        self.ledger = ledger
        self.resolver = resolver or GameIdentityResolver()
        self.logger = logger.bind(component="order_placer")

        # Latest balance seen by should_place_trade, fed to the risk gate
        self.balance: Optional[float] = None

        # Stats
        self.trades_placed = 0
        self.trades_rejected = 0

    def should_place_trade(self, balance: Optional[float]) -> bool:
        """Enough balance to trade at all."""
        self.balance = balance
        if balance is None:
            self.logger.warning("Balance unavailable, skipping trades")
            return False
        if balance < self.config.min_balance_to_bet:
            self.logger.info(
                "Balance below minimum",
                balance=f"${balance:.2f}",
                minimum=f"${self.config.min_balance_to_bet:.2f}",
            )
            return False
        return True

    # =========================================================================
    # Single-leg entries
    # =========================================================================

    async def place_trade(
        self,
        strategy: Strategy,
        opportunity: Opportunity,
        positions: list[Position],
        orders: list[Order],
        symbol: Optional[str] = None,
        desired_stake: Optional[float] = None,
    ) -> TradeResult:
        """
        Place one entry order for an opportunity.

        Returns:
            TradeResult; rejections carry a reason and never raise
        """
        symbol = symbol or opportunity.symbol
        game_key = opportunity.game_key

        rejection, orders = await self._check_exposure(game_key, [symbol], positions, orders)
        if rejection:
            return self._reject(strategy, symbol, rejection)

        side = opportunity.trade_side
        snapshot = await self.venue.get_market(symbol)
        price = self._entry_price(snapshot, side, opportunity.quote_price)
        if price is None:
            return self._reject(strategy, symbol, REASON_NO_PRICE)

        stake = self._size_stake(strategy, desired_stake, opportunity.divergence_pct)
        if stake is None:
            return self._reject(strategy, symbol, REASON_CAPITAL_EXHAUSTED)

        contracts = max(1, round(stake * 100) // price)
        notional = contracts * price / 100

        denial = self._risk_check(notional, positions, orders)
        if denial:
            return self._reject(strategy, symbol, denial)

        spec = OrderSpec(
            symbol=symbol,
            side=side,
            action=Action.BUY,
            quantity=contracts,
            price=price,
            client_order_id=self._client_order_id(strategy),
        )
        self.logger.info(
            "Placing entry order",
            strategy=strategy.value,
            symbol=symbol,
            side=side.value,
            direction=opportunity.direction,
            price=f"{price}¢",
            contracts=contracts,
            stake=f"${notional:.2f}",
            divergence=f"{opportunity.divergence_pct:.1f}pp",
            live=self.config.live_trades,
        )

        submission = await self._submit(spec)
        if not submission.success:
            self.trades_rejected += 1
            self.logger.error(
                "Order submission failed",
                strategy=strategy.value,
                symbol=symbol,
                error=submission.error,
            )
            return TradeResult(
                success=False,
                reason=f"Order submission failed: {submission.error}",
                strategy=strategy,
                symbol=symbol,
                side=side,
                price=price,
                contracts=contracts,
            )

        self._book_entry(strategy, game_key, [symbol], notional)
        if self.config.live_trades:
            self._record_ledger(
                submission.order_id or spec.client_order_id,
                strategy,
                spec,
                rationale=(
                    f"{opportunity.team or symbol} {opportunity.direction}: venue "
                    f"{opportunity.quote_probability:.1%} vs reference "
                    f"{opportunity.reference_probability:.1%}"
                ),
                edge=opportunity.divergence_pct,
            )

        result = TradeResult(
            success=True,
            order_id=submission.order_id,
            strategy=strategy,
            symbol=symbol,
            side=side,
            price=price,
            contracts=contracts,
            stake=notional,
        )

        if strategy == Strategy.SPREAD_FARM:
            result.take_profit_order_id = await self._place_take_profit(spec)

        return result

    # =========================================================================
    # Two-leg arbitrage entries
    # =========================================================================

    async def place_bundle(
        self,
        bundle: ArbitrageBundle,
        positions: list[Position],
        orders: list[Order],
        desired_stake: Optional[float] = None,
    ) -> TradeResult:
        """
        Buy an equal count of YES on both sides of a game.

        The two legs count as a single entry for the game.
        """
        strategy = Strategy.ARBITRAGE
        legs = [bundle.home_quote.symbol, bundle.away_quote.symbol]
        label = "/".join(legs)

        rejection, orders = await self._check_exposure(bundle.game_key, legs, positions, orders)
        if rejection:
            return self._reject(strategy, label, rejection)

        prices = []
        for quote in (bundle.home_quote, bundle.away_quote):
            snapshot = await self.venue.get_market(quote.symbol)
            price = self._entry_price(snapshot, Side.YES, quote.price)
            if price is None:
                return self._reject(strategy, label, REASON_NO_PRICE)
            prices.append(price)

        pair_cost = sum(prices)
        if pair_cost >= round((1 - self.config.arbitrage_fee_buffer) * 100):
            return self._reject(strategy, label, "Bundle no longer below par")

        stake = self._size_stake(strategy, desired_stake, bundle.edge_pct)
        if stake is None:
            return self._reject(strategy, label, REASON_CAPITAL_EXHAUSTED)

        contracts = max(1, round(stake * 100) // pair_cost)
        notional = contracts * pair_cost / 100

        denial = self._risk_check(notional, positions, orders)
        if denial:
            return self._reject(strategy, label, denial)

        self.logger.info(
            "Placing arbitrage bundle",
            game=bundle.game_key,
            prices=f"{prices[0]}¢+{prices[1]}¢",
            contracts=contracts,
            edge=f"{bundle.edge_pct:.2f}%",
            live=self.config.live_trades,
        )

        filled_cost = 0
        order_ids = []
        for symbol, price in zip(legs, prices):
            spec = OrderSpec(
                symbol=symbol,
                side=Side.YES,
                action=Action.BUY,
                quantity=contracts,
                price=price,
                client_order_id=self._client_order_id(strategy),
            )
            submission = await self._submit(spec)
            if not submission.success:
                self.logger.error("Bundle leg failed", symbol=symbol, error=submission.error)
                if filled_cost:
                    # First leg is on the book; keep the game marked
                    self._book_entry(strategy, bundle.game_key, legs[:1], contracts * filled_cost / 100)
                return TradeResult(
                    success=False,
                    reason=f"Order submission failed: {submission.error}",
                    strategy=strategy,
                    symbol=symbol,
                    side=Side.YES,
                    price=price,
                    contracts=contracts,
                )
            filled_cost += price
            order_ids.append(submission.order_id or spec.client_order_id)
            if self.config.live_trades:
                self._record_ledger(
                    order_ids[-1],
                    strategy,
                    spec,
                    rationale=f"Bundle {label} at {pair_cost}¢ per pair",
                    edge=bundle.edge_pct,
                )

        self._book_entry(strategy, bundle.game_key, legs, notional)
        return TradeResult(
            success=True,
            order_id=",".join(order_ids),
            strategy=strategy,
            symbol=label,
            side=Side.YES,
            price=pair_cost,
            contracts=contracts,
            stake=notional,
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _check_exposure(
        self,
        game_key: str,
        symbols: list[str],
        positions: list[Position],
        orders: list[Order],
    ) -> tuple[Optional[str], list[Order]]:
        """
        Dedup checks for a new entry.

        Returns the rejection reason, if any, and the order list the checks
        ran against: the venue refresh when it succeeds, else the snapshot.
        """
        if self.session.is_traded(game_key):
            return REASON_GAME_TRADED, orders

        try:
            fresh = await self.venue.get_orders()
            if fresh is not None:
                orders = fresh
        except Exception as e:
            self.logger.warning("Order refresh failed, using snapshot", error=str(e))

        for position in positions:
            if position.quantity == 0:
                continue
            if position.symbol in symbols or self.resolver.game_key(position.symbol) == game_key:
                return REASON_EXISTING_POSITION, orders

        for order in orders:
            if not order.is_working:
                continue
            if order.symbol in symbols or self.resolver.game_key(order.symbol) == game_key:
                return REASON_PENDING_ORDER, orders

        return None, orders

    def _entry_price(
        self,
        snapshot: Optional[MarketSnapshot],
        side: Side,
        cached_yes_price: Optional[int],
    ) -> Optional[int]:
        """
        Best executable price for buying ``side``.

        YES: ask, bid, last trade, cached quote. NO: its own ask and bid,
        then the complement of the YES bid, ask, last trade and cached quote.
        """
        s = snapshot or MarketSnapshot(symbol="")
        if side == Side.YES:
            chain = [s.yes_ask, s.yes_bid, s.last_price, cached_yes_price]
        else:
            chain = [s.no_ask, s.no_bid]
            for yes_price in (s.yes_bid, s.yes_ask, s.last_price, cached_yes_price):
                chain.append(100 - yes_price if yes_price else None)

        for candidate in chain:
            price = _valid(candidate)
            if price is not None:
                return price
        return None

    def _size_stake(
        self,
        strategy: Strategy,
        desired_stake: Optional[float],
        divergence_pct: float,
    ) -> Optional[float]:
        """Dollar stake after caps, or None when below the minimum."""
        if desired_stake is not None:
            stake = desired_stake
        elif self.config.max_bet_size:
            stake = self.config.max_bet_size
        else:
            stake = divergence_pct

        stake = max(stake, MIN_STAKE)

        if self.config.max_per_market is not None:
            stake = min(stake, self.config.max_per_market)

        remaining = self.session.remaining(strategy)
        if remaining is not None:
            stake = min(stake, remaining)

        if stake < MIN_STAKE:
            return None
        return stake

    def _risk_check(
        self,
        notional: float,
        positions: list[Position],
        orders: list[Order],
    ) -> Optional[str]:
        if self.risk is None:
            return None
        # Entries booked this run count even before the venue reports them
        open_symbols = {p.symbol for p in positions if p.quantity != 0}
        open_symbols |= self.session.entered_symbols
        pending = [o for o in orders if o.symbol not in open_symbols]
        decision = self.risk.can_place_trade(
            notional,
            balance=self.balance,
            total_open_positions=len(open_symbols),
            orders=pending,
        )
        return None if decision.allowed else decision.reason

    async def _submit(self, spec: OrderSpec) -> OrderSubmission:
        if not self.config.live_trades:
            self.logger.info(
                "DRY RUN - order not sent",
                symbol=spec.symbol,
                side=spec.side.value,
                action=spec.action.value,
                price=f"{spec.price}¢",
                contracts=spec.quantity,
            )
            return OrderSubmission(success=True, order_id=DRY_RUN_ORDER_ID)
        return await self.venue.create_order(spec)

    async def _place_take_profit(self, entry: OrderSpec) -> Optional[str]:
        """Resting sell at the nearer of entry + ticks and entry x multiplier."""
        by_ticks = entry.price + self.config.spread_take_profit_ticks
        by_multiplier = round(entry.price * self.config.spread_take_profit_multiplier)
        target = clamp_price(max(min(by_ticks, by_multiplier), entry.price + 1))

        spec = OrderSpec(
            symbol=entry.symbol,
            side=entry.side,
            action=Action.SELL,
            quantity=entry.quantity,
            price=target,
            client_order_id=self._client_order_id(Strategy.SPREAD_FARM, "tp"),
        )
        submission = await self._submit(spec)
        if not submission.success:
            self.logger.warning(
                "Take-profit order failed",
                symbol=entry.symbol,
                price=f"{target}¢",
                error=submission.error,
            )
            return None

        self.logger.info("Take-profit order placed", symbol=entry.symbol, price=f"{target}¢")
        return submission.order_id

    def _book_entry(
        self,
        strategy: Strategy,
        game_key: str,
        symbols: list[str],
        notional: float,
    ) -> None:
        self.session.mark_traded(game_key, symbols)
        self.session.register_spend(strategy, notional)
        if self.config.live_trades and self.risk is not None:
            self.risk.record_trade(notional)
        self.trades_placed += 1

    def _record_ledger(
        self,
        order_id: str,
        strategy: Strategy,
        spec: OrderSpec,
        rationale: str,
        edge: Optional[float],
    ) -> None:
        if self.ledger is None:
            return
        self.ledger.append(LedgerEntry(
            order_id=order_id,
            strategy=strategy,
            rationale=rationale,
            symbol=spec.symbol,
            side=spec.side,
            price=spec.price,
            quantity=spec.quantity,
            expected_edge_pct=edge,
        ))

    def _reject(self, strategy: Strategy, symbol: str, reason: str) -> TradeResult:
        self.trades_rejected += 1
        self.logger.info("Trade rejected", strategy=strategy.value, symbol=symbol, reason=reason)
        return TradeResult(success=False, reason=reason, strategy=strategy, symbol=symbol)

    @staticmethod
    def _client_order_id(strategy: Strategy, suffix: str = "") -> str:
        prefix = strategy.value.lower().replace("_", "-")
        if suffix:
            prefix = f"{prefix}-{suffix}"
        return f"{prefix}-{uuid4().hex[:16]}"

    def get_metrics(self) -> dict:
        return {
            "trades_placed": self.trades_placed,
            "trades_rejected": self.trades_rejected,
            **self.session.get_metrics(),
        }
