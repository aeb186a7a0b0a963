"""
Edge Bot - Main Entry Point.

Runs one detection/trading cycle per sport, one sport at a time:
1. Snapshot balance, positions and open orders
2. Fetch venue quotes and ESPN moneylines
3. Detect mispricings and place trades
4. Place arbitrage bundles, or farm spread extremes when there are none
5. Manage exits on open positions

Usage:
    python -m edgebot.main

Environment Variables:
    KALSHI__API_KEY_ID            - Required: venue API key id
    KALSHI__PRIVATE_KEY_PATH      - Required (or KALSHI__PRIVATE_KEY_PEM)
    TRADING__LIVE_TRADES          - true to send real orders (default: false)
    RUN_INTERVAL_SECONDS          - seconds between cycles, 0 = single cycle
"""

import asyncio
import signal
import sys
from typing import Optional

import structlog

from config.settings import ConfigurationError, Settings, get_settings
from edgebot.engine.arbitrage import ArbitrageConfig, ArbitrageFinder
from edgebot.engine.identity import GameIdentityResolver
from edgebot.engine.mispricing import MispricingConfig, MispricingDetector
from edgebot.engine.spread import SpreadConfig, SpreadExtremeFinder
from edgebot.engine.teams import LEAGUES
from edgebot.feeds.base import VenueClient
from edgebot.feeds.espn import EspnOddsFeed
from edgebot.feeds.kalshi import KalshiClient, build_quotes
from edgebot.models.schemas import (
    GameComparison,
    Opportunity,
    Order,
    Position,
    Sport,
    Strategy,
)
from edgebot.trading.allocator import AllocatorConfig, OrderPlacer
from edgebot.trading.ledger import TradeLedger
from edgebot.trading.position_manager import ExitConfig, PositionManager
from edgebot.trading.risk import RiskLimits, RiskService
from edgebot.trading.session import TradingSession
from edgebot.utils.logging import setup_logging
from edgebot.utils.odds import format_american

logger = structlog.get_logger()


class EdgeBot:
    """
    Wires detectors, risk and execution together for scheduled cycles.

    One ``TradingSession`` lives for the whole process so games entered in
    one cycle stay blocked in later ones.
    """

    def __init__(
        self,
        settings: Settings,
        venue: VenueClient,
        odds_feed: EspnOddsFeed,
    ):
        self.settings = settings
        self.venue = venue
        self.odds_feed = odds_feed
        self.logger = logger.bind(component="edge_bot")

        self.resolver = GameIdentityResolver()
        self.mispricing = MispricingDetector(MispricingConfig(
            threshold_pct=settings.signals.mispricing_threshold_pct,
            min_edge_after_costs_pct=settings.signals.min_edge_after_costs_pct,
            mid_edge_min_prob=settings.signals.mid_edge_min_prob,
            mid_edge_max_prob=settings.signals.mid_edge_max_prob,
        ))
        self.arbitrage = ArbitrageFinder(ArbitrageConfig(
            fee_buffer=settings.signals.arbitrage_fee_buffer,
        ))
        self.spread = SpreadExtremeFinder(SpreadConfig(
            low_prob=settings.signals.extreme_low_prob,
            high_prob=settings.signals.extreme_high_prob,
        ))

        risk_cfg = settings.risk
        self.risk = RiskService(
            RiskLimits(
                max_positions_total=risk_cfg.max_positions_total,
                max_order_notional=risk_cfg.max_order_notional,
                max_daily_trades=risk_cfg.max_daily_trades,
                max_daily_notional=risk_cfg.max_daily_notional,
                max_daily_loss=risk_cfg.max_daily_loss,
            ),
            stats_path=risk_cfg.stats_path,
        )

        trading = settings.trading
        self.session = TradingSession({
            Strategy.ARBITRAGE: trading.max_per_strategy_arbitrage,
            Strategy.SPREAD_FARM: trading.max_per_strategy_spread,
            Strategy.MISPRICING: trading.max_per_strategy_mispricing,
        })
        self.placer = OrderPlacer(
            venue,
            self.session,
            AllocatorConfig(
                live_trades=trading.live_trades,
                min_balance_to_bet=trading.min_balance_to_bet,
                max_bet_size=trading.max_bet_size,
                max_per_market=trading.max_per_market,
                arbitrage_fee_buffer=settings.signals.arbitrage_fee_buffer,
                spread_take_profit_ticks=trading.spread_take_profit_ticks,
                spread_take_profit_multiplier=trading.spread_take_profit_multiplier,
            ),
            risk=self.risk,
            ledger=TradeLedger(trading.ledger_path),
            resolver=self.resolver,
        )

        exits = settings.exits
        self.positions = PositionManager(
            venue,
            ExitConfig(
                take_profit_cents=exits.take_profit_cents,
                take_profit_pct=exits.take_profit_pct,
                stop_loss_pct=exits.stop_loss_pct,
                max_hold_minutes=exits.max_hold_minutes,
                improve_exit_by_one_tick=exits.improve_exit_by_one_tick,
                live_trades=trading.live_trades,
            ),
            risk=self.risk,
        )

        self._running = False
        self._stop_event: Optional[asyncio.Event] = None
        self.cycles_run = 0

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def run(self) -> None:
        """Run a single cycle, or loop until shutdown when an interval is set."""
        self._running = True
        self._stop_event = asyncio.Event()
        self.logger.info(
            "Starting edge bot",
            sports=self.settings.get_sports(),
            live=self.settings.trading.live_trades,
            interval=self.settings.run_interval_seconds,
        )
        try:
            while self._running:
                await self.run_cycle()
                if self.settings.run_interval_seconds <= 0:
                    break
                try:
                    await asyncio.wait_for(
                        self._stop_event.wait(),
                        timeout=self.settings.run_interval_seconds,
                    )
                except asyncio.TimeoutError:
                    pass
        finally:
            await self.venue.close()
            await self.odds_feed.close()
            self.logger.info("Edge bot stopped", cycles=self.cycles_run, **self.placer.get_metrics())

    def shutdown(self) -> None:
        """Request a graceful stop after the current cycle."""
        self._running = False
        if self._stop_event is not None:
            self._stop_event.set()

    # =========================================================================
    # Cycle
    # =========================================================================

    async def run_cycle(self) -> None:
        self.cycles_run += 1

        balance = await self.venue.get_balance()
        positions = await self.venue.get_positions() or []
        orders = await self.venue.get_orders() or []
        can_trade = self.placer.should_place_trade(balance)

        self.logger.info(
            "Cycle started",
            cycle=self.cycles_run,
            balance=f"${balance:.2f}" if balance is not None else None,
            positions=len(positions),
            open_orders=len(orders),
        )

        for code in self.settings.get_sports():
            sport = Sport.from_string(code)
            if sport is None:
                self.logger.warning("Unknown sport in settings", sport=code)
                continue
            if can_trade:
                await self._trade_sport(sport, positions, orders)

        exits = await self.positions.manage_positions(positions, orders)
        self.logger.info("Cycle complete", cycle=self.cycles_run, exits=exits, **self.risk.get_metrics())

    async def _trade_sport(
        self,
        sport: Sport,
        positions: list[Position],
        orders: list[Order],
    ) -> None:
        markets = await self.venue.get_markets(LEAGUES[sport].series_ticker)
        quotes = build_quotes(markets, self.resolver)
        reference = await self.odds_feed.get_reference_odds(sport)

        report = self.mispricing.find_opportunities(quotes, reference)
        for comparison in report.comparisons:
            self._log_comparison(comparison)

        for opportunity in report.opportunities:
            await self._place(Strategy.MISPRICING, opportunity, positions, orders)

        if self.settings.signals.mid_edge_enabled:
            for opportunity in self.mispricing.find_mid_edge(quotes, reference):
                await self._place(Strategy.MISPRICING, opportunity, positions, orders)

        bundles = self.arbitrage.find_bundles(quotes)
        if bundles:
            for bundle in bundles:
                result = await self.placer.place_bundle(bundle, positions, orders)
                if result.success:
                    self.logger.info("Bundle placed", game=bundle.game_key, order_id=result.order_id)
            return

        for quote in self.spread.find_extremes(quotes):
            await self._place(Strategy.SPREAD_FARM, Opportunity.from_extreme(quote), positions, orders)

    async def _place(
        self,
        strategy: Strategy,
        opportunity: Opportunity,
        positions: list[Position],
        orders: list[Order],
    ) -> None:
        result = await self.placer.place_trade(strategy, opportunity, positions, orders)
        if result.success:
            self.logger.info(
                "Trade placed",
                strategy=strategy.value,
                symbol=result.symbol,
                side=result.side.value if result.side else None,
                price=f"{result.price}¢",
                contracts=result.contracts,
                order_id=result.order_id,
            )

    def _log_comparison(self, comparison: GameComparison) -> None:
        for row in (comparison.away_side, comparison.home_side):
            if row is None:
                continue
            self.logger.info(
                "Comparison",
                game=f"{comparison.away} @ {comparison.home}",
                team=row.team,
                espn=f"{format_american(row.reference_odds)} ({row.reference_probability:.1%})",
                kalshi=f"{row.quote_price}¢ ({row.quote_probability:.1%})",
                diff=f"{row.divergence_pct:.1f}pp",
                flagged=row.over_threshold,
            )


def main():
    """Main entry point."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.json_logs)

    try:
        settings.require_credentials()
        venue = KalshiClient(settings.kalshi)
    except (ConfigurationError, OSError, ValueError) as e:
        logger.error("Configuration error", error=str(e))
        sys.exit(1)

    bot = EdgeBot(settings, venue, EspnOddsFeed(settings.espn))

    def signal_handler(sig, frame):
        logger.info("Shutdown requested", signal=sig)
        bot.shutdown()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        asyncio.run(bot.run())
    except KeyboardInterrupt:
        logger.warning("Interrupted")


if __name__ == "__main__":
    main()
