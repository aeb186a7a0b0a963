"""In-memory venue and quote helpers for tests."""

from typing import Optional

from edgebot.engine.identity import parse_symbol
from edgebot.feeds.base import VenueClient
from edgebot.models.schemas import (
    MarketQuote,
    MarketSnapshot,
    Order,
    OrderSpec,
    OrderSubmission,
    Position,
    RawMarket,
)


class FakeVenue(VenueClient):
    """In-memory venue recording every submitted order."""

    def __init__(self):
        self.markets: dict[str, list[RawMarket]] = {}
        self.snapshots: dict[str, MarketSnapshot] = {}
        self.positions: list[Position] = []
        self.orders: list[Order] = []
        self.balance: Optional[float] = 100.0
        self.submitted: list[OrderSpec] = []
        self.fail_orders = False
        self.fail_order_refresh = False
        self.closed = False

    async def get_markets(self, series_ticker: str) -> list[RawMarket]:
        return self.markets.get(series_ticker, [])

    async def get_market(self, symbol: str) -> Optional[MarketSnapshot]:
        return self.snapshots.get(symbol)

    async def get_balance(self) -> Optional[float]:
        return self.balance

    async def get_positions(self) -> Optional[list[Position]]:
        return list(self.positions)

    async def get_orders(self, status: Optional[str] = None) -> Optional[list[Order]]:
        if self.fail_order_refresh:
            raise ConnectionError("venue unreachable")
        return list(self.orders)

    async def create_order(self, spec: OrderSpec) -> OrderSubmission:
        self.submitted.append(spec)
        if self.fail_orders:
            return OrderSubmission(success=False, error="insufficient balance")
        return OrderSubmission(success=True, order_id=f"ord-{len(self.submitted)}")

    async def close(self) -> None:
        self.closed = True


def make_quote(symbol: str, price: int, yes_ask: Optional[int] = None) -> MarketQuote:
    identity = parse_symbol(symbol)
    assert identity is not None, symbol
    return MarketQuote(identity=identity, symbol=symbol, price=price, yes_ask=yes_ask)
