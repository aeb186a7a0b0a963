"""
Per-run trading session state.

Holds the strategy capital ledger and the set of games already entered in
this process run. Nothing here is persisted; a restart starts clean.
"""

from typing import Iterable, Optional

import structlog

from edgebot.models.schemas import Strategy

logger = structlog.get_logger()


class TradingSession:
    """
    Run-scoped exposure bookkeeping, passed explicitly to the order placer.

    Strategy caps are in dollars; a missing cap means uncapped.
    """

    def __init__(self, caps: Optional[dict[Strategy, Optional[float]]] = None):
        self.caps: dict[Strategy, Optional[float]] = dict(caps or {})
        self._used: dict[Strategy, float] = {s: 0.0 for s in Strategy}
        self._traded_games: set[str] = set()
        self._entered_symbols: set[str] = set()
        self.logger = logger.bind(component="trading_session")

    # =========================================================================
    # Strategy capital
    # =========================================================================

    def used(self, strategy: Strategy) -> float:
        return self._used[strategy]

    def remaining(self, strategy: Strategy) -> Optional[float]:
        """Dollars left under the strategy cap, or None when uncapped."""
        cap = self.caps.get(strategy)
        if cap is None:
            return None
        return max(0.0, cap - self._used[strategy])

    def register_spend(self, strategy: Strategy, amount: float) -> None:
        if amount <= 0:
            return
        self._used[strategy] += amount
        self.logger.debug(
            "Strategy spend registered",
            strategy=strategy.value,
            amount=f"${amount:.2f}",
            used=f"${self._used[strategy]:.2f}",
        )

    # =========================================================================
    # Traded games
    # =========================================================================

    def is_traded(self, game_key: str) -> bool:
        return game_key in self._traded_games

    def mark_traded(self, game_key: str, symbols: Iterable[str] = ()) -> None:
        self._traded_games.add(game_key)
        self._entered_symbols.update(symbols)

    @property
    def entered_symbols(self) -> frozenset[str]:
        """Symbols bought this run, whether or not the venue reports them yet."""
        return frozenset(self._entered_symbols)

    def get_metrics(self) -> dict:
        return {
            "traded_games": len(self._traded_games),
            "entered_symbols": len(self._entered_symbols),
            "used": {s.value: round(v, 2) for s, v in self._used.items()},
        }
