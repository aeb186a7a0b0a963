"""
Game Identity Resolver.

Turns opaque venue symbols such as ``KXNBAGAME-25NOV26MINOKC-OKC`` into a
canonical game identity. The symbol is built from a series prefix, a date
code, a concatenated away/home team block and a trailing side code naming
the team the contract pays out on.

Resolution runs an ordered chain of parsers, first hit wins:

    event symbol -> market symbol -> market title -> placeholder

Unknown series prefixes never resolve.
"""

import re
from dataclasses import dataclass
from typing import Callable, Optional

import structlog

from edgebot.engine.teams import (
    BLOCK_OVERRIDES,
    SERIES_PREFIXES,
    TEAM_TABLES,
    resolve_code,
)
from edgebot.models.schemas import GameIdentity, MarketQuote, Sport, TeamSide

logger = structlog.get_logger()


SYMBOL_PATTERN = re.compile(
    r"^(?P<series>KX[A-Z]+?)GAME-(?P<date>\d{2}[A-Z]{3}\d{2})(?P<block>[A-Z]+)"
    r"(?:-(?P<side>[A-Z0-9]+))?$"
)

TITLE_PATTERN = re.compile(
    r"^\s*(?P<away>.+?)\s+(?:@|at|vs\.?|v\.?)\s+(?P<home>.+?)(?:\s+winner)?\s*\??\s*$",
    re.IGNORECASE,
)

# Candidate (away, home) lengths, tried in order
SPLIT_LENGTHS = [(3, 3), (3, 4), (4, 3), (3, 2), (2, 3), (4, 4), (2, 4), (4, 2), (2, 2)]

PLACEHOLDER_AWAY = "AWAY"
PLACEHOLDER_HOME = "HOME"


@dataclass
class SymbolParts:
    sport: Sport
    date_code: str
    block: str
    side_code: str = ""


@dataclass
class ResolveContext:
    """Everything the parser chain may look at for one market."""
    symbol: str
    event_symbol: str = ""
    title: str = ""


def split_symbol(symbol: str) -> Optional[SymbolParts]:
    """Split a market or event symbol into its parts; None for unknown series."""
    match = SYMBOL_PATTERN.match(symbol.strip().upper())
    if not match:
        return None
    sport = SERIES_PREFIXES.get(match.group("series"))
    if sport is None:
        return None
    return SymbolParts(
        sport=sport,
        date_code=match.group("date"),
        block=match.group("block"),
        side_code=match.group("side") or "",
    )


def sport_for_symbol(symbol: str) -> Optional[Sport]:
    symbol = symbol.strip().upper()
    # Longest prefix first so KXNCAAMB wins over shorter series
    for prefix in sorted(SERIES_PREFIXES, key=len, reverse=True):
        if symbol.startswith(prefix + "GAME"):
            return SERIES_PREFIXES[prefix]
    return None


def team_key(sport: Sport, date_code: str, away: str, home: str) -> str:
    first, second = sorted((away, home))
    return f"{sport.value}-{date_code}-{first}-{second}"


def block_key(sport: Sport, date_code: str, block: str) -> str:
    return f"{sport.value}-{date_code}-{block}"


class GameIdentityResolver:
    """
    Resolves venue symbols to canonical game identities.

    Leagues with an abbreviation table key games by date plus the sorted
    canonical team pair; leagues without one key by date plus the raw team
    block, which both sides of a game share.
    """

    def __init__(
        self,
        tables: Optional[dict[Sport, dict[str, str]]] = None,
        overrides: Optional[dict[Sport, dict[str, tuple[str, str]]]] = None,
    ):
        self.tables = TEAM_TABLES if tables is None else tables
        self.overrides = BLOCK_OVERRIDES if overrides is None else overrides
        self.logger = logger.bind(component="identity_resolver")

        self.parsers: list[Callable[[Sport, ResolveContext], Optional[GameIdentity]]] = [
            self._from_event_symbol,
            self._from_symbol,
            self._from_title,
            self._placeholder,
        ]

    # =========================================================================
    # Public API
    # =========================================================================

    def resolve(
        self,
        symbol: str,
        event_symbol: str = "",
        title: str = "",
    ) -> Optional[GameIdentity]:
        """Run the parser chain for one market."""
        sport = sport_for_symbol(symbol) or sport_for_symbol(event_symbol)
        if sport is None:
            return None

        ctx = ResolveContext(symbol=symbol, event_symbol=event_symbol, title=title)
        for parser in self.parsers:
            identity = parser(sport, ctx)
            if identity is not None:
                return identity

        self.logger.debug("Unresolvable symbol", symbol=symbol, title=title)
        return None

    def parse_symbol(self, symbol: str) -> Optional[GameIdentity]:
        return self.resolve(symbol)

    def game_key(self, symbol: str) -> str:
        """Side-independent key for a symbol; the symbol itself when unresolvable."""
        identity = self.resolve(symbol)
        return identity.game_key if identity else symbol

    # =========================================================================
    # Parsers
    # =========================================================================

    def _from_event_symbol(self, sport: Sport, ctx: ResolveContext) -> Optional[GameIdentity]:
        if not ctx.event_symbol:
            return None
        parts = split_symbol(ctx.event_symbol)
        if parts is None or parts.sport != sport:
            return None
        symbol_parts = split_symbol(ctx.symbol)
        side_code = symbol_parts.side_code if symbol_parts else ""
        return self._from_block(sport, parts.date_code, parts.block, side_code)

    def _from_symbol(self, sport: Sport, ctx: ResolveContext) -> Optional[GameIdentity]:
        parts = split_symbol(ctx.symbol)
        if parts is None:
            return None
        return self._from_block(sport, parts.date_code, parts.block, parts.side_code)

    def _from_title(self, sport: Sport, ctx: ResolveContext) -> Optional[GameIdentity]:
        match = TITLE_PATTERN.match(ctx.title or "")
        if not match:
            return None

        table = self.tables.get(sport)
        away = self._title_team(table, match.group("away"))
        home = self._title_team(table, match.group("home"))
        if not away or not home or away == home:
            return None

        parts = split_symbol(ctx.symbol) or split_symbol(ctx.event_symbol)
        date_code = parts.date_code if parts else ""
        side_code = parts.side_code if parts else ""

        if table is None and parts is not None:
            key = block_key(sport, date_code, parts.block)
        else:
            key = team_key(sport, date_code, away, home)

        side_team, side = self._resolve_side(table, away, home, side_code)
        return GameIdentity(
            sport=sport,
            away=away,
            home=home,
            game_key=key,
            date_code=date_code,
            block=parts.block if parts else "",
            side_team=side_team,
            side=side,
        )

    def _placeholder(self, sport: Sport, ctx: ResolveContext) -> Optional[GameIdentity]:
        if sport in self.tables:
            return None
        parts = split_symbol(ctx.symbol) or split_symbol(ctx.event_symbol)
        if parts is None:
            return None
        return GameIdentity(
            sport=sport,
            away=PLACEHOLDER_AWAY,
            home=PLACEHOLDER_HOME,
            game_key=block_key(sport, parts.date_code, parts.block),
            date_code=parts.date_code,
            block=parts.block,
            placeholder=True,
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    def _from_block(
        self,
        sport: Sport,
        date_code: str,
        block: str,
        side_code: str,
    ) -> Optional[GameIdentity]:
        table = self.tables.get(sport)
        if table is None:
            return self._from_untabled_block(sport, date_code, block, side_code)

        teams = self.overrides.get(sport, {}).get(block) or self._best_split(table, block, side_code)
        if teams is None:
            return None
        away, home = teams

        side_team, side = self._resolve_side(table, away, home, side_code)
        return GameIdentity(
            sport=sport,
            away=away,
            home=home,
            game_key=team_key(sport, date_code, away, home),
            date_code=date_code,
            block=block,
            side_team=side_team,
            side=side,
        )

    def _from_untabled_block(
        self,
        sport: Sport,
        date_code: str,
        block: str,
        side_code: str,
    ) -> Optional[GameIdentity]:
        """Split a college block at the side code, which is one of its ends."""
        if not side_code or len(side_code) >= len(block):
            return None
        if block.startswith(side_code):
            away, home, side = side_code, block[len(side_code):], TeamSide.AWAY
        elif block.endswith(side_code):
            away, home, side = block[:-len(side_code)], side_code, TeamSide.HOME
        else:
            return None
        return GameIdentity(
            sport=sport,
            away=away,
            home=home,
            game_key=block_key(sport, date_code, block),
            date_code=date_code,
            block=block,
            side_team=side_code,
            side=side,
        )

    def _best_split(
        self,
        table: dict[str, str],
        block: str,
        side_code: str,
    ) -> Optional[tuple[str, str]]:
        """
        Pick the split where both halves resolve.

        Exact table hits outrank prefix hits, and a half matching the side
        code breaks ties; among equals the earlier split length wins.
        """
        side = resolve_code(table, side_code) if side_code else None
        side_canonical = side[0] if side else None

        best: Optional[tuple[str, str]] = None
        best_score = 0
        for away_len, home_len in SPLIT_LENGTHS:
            if away_len + home_len != len(block):
                continue
            away = resolve_code(table, block[:away_len])
            home = resolve_code(table, block[away_len:])
            if away is None or home is None or away[0] == home[0]:
                continue
            score = away[1] + home[1]
            if side_canonical in (away[0], home[0]):
                score += 1
            if score > best_score:
                best, best_score = (away[0], home[0]), score
        return best

    def _resolve_side(
        self,
        table: Optional[dict[str, str]],
        away: str,
        home: str,
        side_code: str,
    ) -> tuple[Optional[str], Optional[TeamSide]]:
        if not side_code:
            return None, None

        canonical = side_code
        if table is not None:
            resolved = resolve_code(table, side_code)
            if resolved:
                canonical = resolved[0]

        candidates = ((away, TeamSide.AWAY), (home, TeamSide.HOME))
        for team, side in candidates:
            if team == canonical:
                return team, side
        for team, side in candidates:
            if team.startswith(side_code):
                return team, side
        return None, None

    def _title_team(self, table: Optional[dict[str, str]], name: str) -> Optional[str]:
        """Team from a title; tabled leagues only accept names the table resolves."""
        normalized = " ".join(name.split()).upper()
        if table is None:
            return normalized
        resolved = resolve_code(table, normalized.replace(" ", ""))
        return resolved[0] if resolved else None


_default_resolver = GameIdentityResolver()


def parse_symbol(symbol: str) -> Optional[GameIdentity]:
    """Parse a venue symbol with the default league tables."""
    return _default_resolver.parse_symbol(symbol)


def game_key(symbol: str) -> str:
    """Side-independent game key for a venue symbol."""
    return _default_resolver.game_key(symbol)


def group_by_game(quotes: list[MarketQuote]) -> dict[str, dict[TeamSide, MarketQuote]]:
    """
    Group quotes by game key and team side, in first-seen order.

    Quotes without a resolved side are skipped; the first quote seen for a
    side wins.
    """
    games: dict[str, dict[TeamSide, MarketQuote]] = {}
    for quote in quotes:
        if quote.side is None:
            continue
        sides = games.setdefault(quote.game_key, {})
        sides.setdefault(quote.side, quote)
    return games
