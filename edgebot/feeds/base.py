"""
Base class for venue connections.

The trading components only talk to the venue through this interface so
that tests can swap in an in-memory venue.
"""

from abc import ABC, abstractmethod
from typing import Optional

from edgebot.models.schemas import (
    MarketSnapshot,
    Order,
    OrderSpec,
    OrderSubmission,
    Position,
    RawMarket,
)


class VenueClient(ABC):
    """
    Async venue API.

    Reads return None (or an empty list for market listings) on failure
    and never raise; ``create_order`` reports failure in its result.
    """

    @abstractmethod
    async def get_markets(self, series_ticker: str) -> list[RawMarket]:
        """Open markets in a series."""

    @abstractmethod
    async def get_market(self, symbol: str) -> Optional[MarketSnapshot]:
        """Best prices for one market."""

    @abstractmethod
    async def get_balance(self) -> Optional[float]:
        """Available balance in dollars."""

    @abstractmethod
    async def get_positions(self) -> Optional[list[Position]]:
        pass

    @abstractmethod
    async def get_orders(self, status: Optional[str] = None) -> Optional[list[Order]]:
        pass

    @abstractmethod
    async def create_order(self, spec: OrderSpec) -> OrderSubmission:
        """Submit a limit order, single attempt."""

    async def close(self) -> None:
        """Release network resources."""
