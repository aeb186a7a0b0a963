"""
Data models and schemas for the edge bot.

Domain objects are plain dataclasses. Raw venue and odds-feed payloads are
validated at the ingestion boundary by the pydantic models at the bottom of
this module; nothing downstream touches untyped dicts.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import AliasChoices, BaseModel, Field

from edgebot.utils.odds import (
    implied_probability_from_american,
    implied_probability_from_price,
)


class Sport(str, Enum):
    """Supported leagues."""
    NBA = "NBA"
    NFL = "NFL"
    NHL = "NHL"
    NCAAB = "NCAAB"
    NCAAF = "NCAAF"

    @classmethod
    def from_string(cls, value: str) -> Optional["Sport"]:
        """Convert string to Sport enum."""
        value_upper = value.strip().upper()
        for sport in cls:
            if sport.value == value_upper:
                return sport
        return None


class Strategy(str, Enum):
    """Strategies competing for capital."""
    ARBITRAGE = "ARBITRAGE"
    SPREAD_FARM = "SPREAD_FARM"
    MISPRICING = "MISPRICING"


class Side(str, Enum):
    """Contract side."""
    YES = "yes"
    NO = "no"


class Action(str, Enum):
    """Order action."""
    BUY = "buy"
    SELL = "sell"


class OrderStatus(str, Enum):
    """Venue order lifecycle."""
    PENDING = "pending"
    RESTING = "resting"
    EXECUTED = "executed"
    CANCELED = "canceled"


class TeamSide(str, Enum):
    """Which team of a game a symbol refers to."""
    HOME = "home"
    AWAY = "away"


# =============================================================================
# Game identity and quotes
# =============================================================================

@dataclass(frozen=True)
class GameIdentity:
    """
    Canonical event identity parsed from a market symbol.

    Both sides' symbols of the same game produce the same ``game_key``.
    """
    sport: Sport
    away: str
    home: str
    game_key: str
    date_code: str = ""
    block: str = ""
    side_team: Optional[str] = None
    side: Optional[TeamSide] = None
    placeholder: bool = False

    @property
    def teams(self) -> tuple[str, str]:
        return self.away, self.home


@dataclass
class Game:
    """A scheduled game from the reference odds feed."""
    game_id: str
    sport: Sport
    home: str
    away: str
    scheduled_at: Optional[datetime] = None
    status: str = ""
    home_name: str = ""
    away_name: str = ""

    def get_display_name(self) -> str:
        return f"{self.away} @ {self.home}"


@dataclass
class ReferenceOdds:
    """Moneyline odds for both sides of a game."""
    game: Game
    home_odds: int
    away_odds: int

    @property
    def home_probability(self) -> float:
        return implied_probability_from_american(self.home_odds)

    @property
    def away_probability(self) -> float:
        return implied_probability_from_american(self.away_odds)

    def odds_for(self, side: TeamSide) -> int:
        return self.home_odds if side == TeamSide.HOME else self.away_odds

    def probability_for(self, side: TeamSide) -> float:
        return self.home_probability if side == TeamSide.HOME else self.away_probability


@dataclass
class MarketQuote:
    """A venue quote for one side of a game."""
    identity: GameIdentity
    symbol: str
    price: int  # cents, 0-100
    yes_bid: Optional[int] = None
    yes_ask: Optional[int] = None
    title: str = ""

    @property
    def implied_probability(self) -> float:
        return implied_probability_from_price(self.price)

    @property
    def side(self) -> Optional[TeamSide]:
        return self.identity.side

    @property
    def game_key(self) -> str:
        return self.identity.game_key


@dataclass
class MarketSnapshot:
    """Current best prices for a single market, in cents."""
    symbol: str
    yes_bid: Optional[int] = None
    yes_ask: Optional[int] = None
    no_bid: Optional[int] = None
    no_ask: Optional[int] = None
    last_price: Optional[int] = None


# =============================================================================
# Detector output
# =============================================================================

@dataclass
class Opportunity:
    """A flagged divergence between venue and reference probability."""
    game_key: str
    sport: Sport
    side: TeamSide
    team: str
    symbol: str
    quote_price: int
    quote_probability: float
    reference_odds: Optional[int]
    reference_probability: float
    divergence_pct: float  # percentage points
    is_overvalued: bool

    @property
    def direction(self) -> str:
        return "overvalues" if self.is_overvalued else "undervalues"

    @property
    def trade_side(self) -> Side:
        """Buy NO against an overvalued quote, YES against an undervalued one."""
        return Side.NO if self.is_overvalued else Side.YES

    @classmethod
    def from_extreme(cls, quote: MarketQuote) -> "Opportunity":
        """
        Wrap a near-certain quote for spread farming.

        A quote priced near zero is treated as overvalued so the NO side,
        the near-certain one, is bought.
        """
        prob = quote.implied_probability
        return cls(
            game_key=quote.game_key,
            sport=quote.identity.sport,
            side=quote.side or TeamSide.HOME,
            team=quote.identity.side_team or "",
            symbol=quote.symbol,
            quote_price=quote.price,
            quote_probability=prob,
            reference_odds=None,
            reference_probability=1.0 if prob >= 0.5 else 0.0,
            divergence_pct=abs(prob - 0.5) * 100,
            is_overvalued=prob < 0.5,
        )


@dataclass
class SideComparison:
    """Reference vs venue numbers for one side of a matched game."""
    team: str
    symbol: str
    reference_odds: int
    reference_probability: float
    quote_price: int
    quote_probability: float
    divergence_pct: float
    over_threshold: bool


@dataclass
class GameComparison:
    """Comparison row for a matched game."""
    game_key: str
    sport: Sport
    away: str
    home: str
    home_side: Optional[SideComparison] = None
    away_side: Optional[SideComparison] = None


@dataclass
class MispricingReport:
    opportunities: list[Opportunity] = field(default_factory=list)
    comparisons: list[GameComparison] = field(default_factory=list)


@dataclass
class ArbitrageBundle:
    """Both sides of a game whose combined price is below one."""
    game_key: str
    home_quote: MarketQuote
    away_quote: MarketQuote
    combined_probability: float
    edge_pct: float


# =============================================================================
# Account state and orders
# =============================================================================

@dataclass
class Position:
    """An open venue position. Quantity is signed: positive YES, negative NO."""
    symbol: str
    quantity: int
    average_price: Optional[float] = None  # cents
    total_cost: Optional[float] = None  # cents
    opened_at: Optional[datetime] = None

    @property
    def side(self) -> Side:
        return Side.YES if self.quantity > 0 else Side.NO

    @property
    def contracts(self) -> int:
        return abs(self.quantity)

    @property
    def entry_price(self) -> Optional[float]:
        """Entry price in cents: explicit average, else total cost / quantity."""
        if self.average_price:
            return self.average_price
        if self.total_cost and self.contracts:
            return self.total_cost / self.contracts
        return None


@dataclass
class Order:
    """A venue order."""
    order_id: str
    symbol: str
    side: Side
    action: Action
    quantity: int
    remaining: int
    price: Optional[int] = None
    client_order_id: Optional[str] = None
    status: OrderStatus = OrderStatus.PENDING

    @property
    def is_working(self) -> bool:
        return self.status in (OrderStatus.RESTING, OrderStatus.PENDING) and self.remaining > 0


@dataclass
class OrderSpec:
    """A limit order to submit."""
    symbol: str
    side: Side
    action: Action
    quantity: int
    price: int  # cents, 1-99
    client_order_id: str


@dataclass
class OrderSubmission:
    """Venue response to an order submission."""
    success: bool
    order_id: Optional[str] = None
    error: Optional[str] = None


@dataclass
class TradeResult:
    """Outcome of an entry attempt."""
    success: bool
    reason: str = ""
    order_id: Optional[str] = None
    strategy: Optional[Strategy] = None
    symbol: str = ""
    side: Optional[Side] = None
    price: Optional[int] = None
    contracts: int = 0
    stake: float = 0.0
    take_profit_order_id: Optional[str] = None


@dataclass
class RiskDecision:
    allowed: bool
    reason: str = ""


@dataclass
class ExitDecision:
    """Outcome of an exit evaluation."""
    should_exit: bool
    reason: str = ""
    quantity: int = 0
    entry_price: Optional[float] = None
    current_price: Optional[int] = None
    best_bid: Optional[int] = None
    pnl_cents: float = 0.0
    pnl_pct: float = 0.0


# =============================================================================
# Persisted records
# =============================================================================

def utc_today() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d")


class DailyStats(BaseModel):
    """Per-UTC-day risk counters, persisted as JSON."""
    date: str = Field(default_factory=utc_today)
    trades_count: int = 0
    notional_spent: float = 0.0
    realized_pnl: float = 0.0
    start_balance: Optional[float] = None
    end_balance: Optional[float] = None


class LedgerEntry(BaseModel):
    """One placed entry in the strategy trade ledger."""
    order_id: str
    strategy: Strategy
    rationale: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    symbol: str
    side: Side
    price: int
    quantity: int
    expected_edge_pct: Optional[float] = None


# =============================================================================
# Raw venue payloads
# =============================================================================

class RawMarket(BaseModel):
    """Market as returned by the venue."""
    ticker: str
    event_ticker: str = ""
    title: str = ""
    subtitle: str = ""
    yes_sub_title: str = ""
    status: str = ""
    yes_bid: Optional[int] = None
    yes_ask: Optional[int] = None
    no_bid: Optional[int] = None
    no_ask: Optional[int] = None
    last_price: Optional[int] = None

    @property
    def display_price(self) -> Optional[int]:
        """Last trade, then YES bid, then YES ask; zero counts as missing."""
        for price in (self.last_price, self.yes_bid, self.yes_ask):
            if price:
                return price
        return None

    def to_snapshot(self) -> MarketSnapshot:
        return MarketSnapshot(
            symbol=self.ticker,
            yes_bid=self.yes_bid or None,
            yes_ask=self.yes_ask or None,
            no_bid=self.no_bid or None,
            no_ask=self.no_ask or None,
            last_price=self.last_price or None,
        )


class RawPosition(BaseModel):
    """Market position as returned by the venue."""
    ticker: str
    position: int = 0
    avg_price: Optional[float] = None
    total_cost: Optional[float] = None
    market_exposure: Optional[float] = None
    opened_at: Optional[datetime] = Field(
        default=None,
        validation_alias=AliasChoices("open_ts", "open_time", "ts"),
    )

    def to_position(self) -> Position:
        return Position(
            symbol=self.ticker,
            quantity=self.position,
            average_price=self.avg_price,
            total_cost=self.total_cost if self.total_cost is not None else self.market_exposure,
            opened_at=self.opened_at,
        )


class RawOrder(BaseModel):
    """Order as returned by the venue."""
    order_id: str
    ticker: str
    side: Side = Side.YES
    action: Action = Action.BUY
    status: str = "pending"
    count: Optional[int] = Field(
        default=None,
        validation_alias=AliasChoices("count", "initial_count"),
    )
    remaining_count: int = 0
    yes_price: Optional[int] = None
    no_price: Optional[int] = None
    client_order_id: Optional[str] = None

    def to_order(self) -> Order:
        try:
            status = OrderStatus(self.status)
        except ValueError:
            status = OrderStatus.CANCELED
        return Order(
            order_id=self.order_id,
            symbol=self.ticker,
            side=self.side,
            action=self.action,
            quantity=self.count if self.count is not None else self.remaining_count,
            remaining=self.remaining_count,
            price=self.yes_price if self.side == Side.YES else self.no_price,
            client_order_id=self.client_order_id,
            status=status,
        )


# =============================================================================
# Raw ESPN scoreboard payloads
# =============================================================================

class EspnTeam(BaseModel):
    abbreviation: str = ""
    displayName: str = ""


class EspnCompetitor(BaseModel):
    homeAway: str = ""
    team: EspnTeam = Field(default_factory=EspnTeam)


class EspnTeamOdds(BaseModel):
    moneyLine: Optional[float] = None


class EspnLine(BaseModel):
    odds: Optional[str] = None


class EspnMoneylineSide(BaseModel):
    close: Optional[EspnLine] = None
    open: Optional[EspnLine] = None


class EspnMoneyline(BaseModel):
    home: Optional[EspnMoneylineSide] = None
    away: Optional[EspnMoneylineSide] = None


class EspnOdds(BaseModel):
    provider: Optional[dict] = None
    details: str = ""
    homeTeamOdds: Optional[EspnTeamOdds] = None
    awayTeamOdds: Optional[EspnTeamOdds] = None
    moneyline: Optional[EspnMoneyline] = None


class EspnCompetition(BaseModel):
    id: str = ""
    date: Optional[datetime] = None
    competitors: list[EspnCompetitor] = Field(default_factory=list)
    odds: list[EspnOdds] = Field(default_factory=list)


class EspnStatusType(BaseModel):
    name: str = ""


class EspnStatus(BaseModel):
    type: EspnStatusType = Field(default_factory=EspnStatusType)


class EspnEvent(BaseModel):
    id: str = ""
    date: Optional[datetime] = None
    competitions: list[EspnCompetition] = Field(default_factory=list)
    status: EspnStatus = Field(default_factory=EspnStatus)


class EspnScoreboard(BaseModel):
    events: list[EspnEvent] = Field(default_factory=list)
