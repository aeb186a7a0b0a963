"""
ESPN scoreboard feed.

Pulls today's games and moneylines per league from the public scoreboard
endpoint, e.g. ``/basketball/nba/scoreboard``. Games without a moneyline
for both teams are skipped.
"""

import ssl
from typing import Optional

import certifi
import httpx
import structlog
from pydantic import ValidationError

from config.settings import EspnSettings
from edgebot.engine.teams import LEAGUES
from edgebot.models.schemas import (
    EspnCompetition,
    EspnEvent,
    EspnOdds,
    EspnScoreboard,
    Game,
    ReferenceOdds,
    Sport,
)

logger = structlog.get_logger()


def parse_american(value: Optional[object]) -> Optional[int]:
    """Parse American odds from a number or a string such as "+150" or "EVEN"."""
    if value is None:
        return None
    if isinstance(value, (int, float)):
        return int(value) if value else None
    text = str(value).strip().upper()
    if text in ("EVEN", "EV", "PK"):
        return 100
    try:
        odds = int(float(text.replace("+", "")))
    except ValueError:
        return None
    return odds or None


def _moneylines(odds: EspnOdds) -> tuple[Optional[int], Optional[int]]:
    """(home, away) moneyline from either scoreboard odds layout."""
    home = parse_american(odds.homeTeamOdds.moneyLine) if odds.homeTeamOdds else None
    away = parse_american(odds.awayTeamOdds.moneyLine) if odds.awayTeamOdds else None
    if home is not None and away is not None:
        return home, away

    if odds.moneyline:
        for side_name in ("home", "away"):
            side = getattr(odds.moneyline, side_name)
            if side is None:
                continue
            line = side.close or side.open
            value = parse_american(line.odds) if line else None
            if side_name == "home" and home is None:
                home = value
            elif side_name == "away" and away is None:
                away = value
    return home, away


def parse_scoreboard(sport: Sport, payload: dict) -> list[ReferenceOdds]:
    """Turn a scoreboard payload into reference odds."""
    try:
        scoreboard = EspnScoreboard.model_validate(payload)
    except ValidationError as e:
        logger.warning("Malformed scoreboard payload", sport=sport.value, error=str(e))
        return []

    results = []
    for event in scoreboard.events:
        odds = _parse_event(sport, event)
        if odds is not None:
            results.append(odds)
    return results


def _parse_event(sport: Sport, event: EspnEvent) -> Optional[ReferenceOdds]:
    if not event.competitions:
        return None
    competition: EspnCompetition = event.competitions[0]

    home = away = None
    for competitor in competition.competitors:
        if competitor.homeAway == "home":
            home = competitor.team
        elif competitor.homeAway == "away":
            away = competitor.team
    if home is None or away is None or not home.abbreviation or not away.abbreviation:
        return None

    for odds in competition.odds:
        home_odds, away_odds = _moneylines(odds)
        if home_odds is not None and away_odds is not None:
            return ReferenceOdds(
                game=Game(
                    game_id=event.id or competition.id,
                    sport=sport,
                    home=home.abbreviation.upper(),
                    away=away.abbreviation.upper(),
                    scheduled_at=competition.date or event.date,
                    status=event.status.type.name,
                    home_name=home.displayName,
                    away_name=away.displayName,
                ),
                home_odds=home_odds,
                away_odds=away_odds,
            )
    return None


class EspnOddsFeed:
    """
    Reference odds from the ESPN scoreboard.

    Usage:
        feed = EspnOddsFeed(settings.espn)
        odds = await feed.get_reference_odds(Sport.NBA)
    """

    def __init__(
        self,
        settings: Optional[EspnSettings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings or EspnSettings()
        self._transport = transport
        self.logger = logger.bind(feed="espn")
        self._http_client: Optional[httpx.AsyncClient] = None

    async def start(self) -> None:
        if self._http_client is not None:
            return
        if self._transport is not None:
            self._http_client = httpx.AsyncClient(
                transport=self._transport,
                timeout=self.settings.request_timeout_seconds,
            )
            return
        ssl_context = ssl.create_default_context(cafile=certifi.where())
        self._http_client = httpx.AsyncClient(
            verify=ssl_context,
            timeout=self.settings.request_timeout_seconds,
            headers={"Accept": "application/json"},
        )

    async def close(self) -> None:
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    async def get_reference_odds(self, sport: Sport) -> list[ReferenceOdds]:
        """Today's games with moneylines; empty on any failure."""
        if self._http_client is None:
            await self.start()

        url = f"{self.settings.base_url.rstrip('/')}/{LEAGUES[sport].espn_path}/scoreboard"
        try:
            response = await self._http_client.get(url)
        except httpx.HTTPError as e:
            self.logger.error("Scoreboard request failed", sport=sport.value, error=str(e))
            return []

        if response.status_code != 200:
            self.logger.warning(
                "Scoreboard error",
                sport=sport.value,
                status=response.status_code,
                body=response.text[:200],
            )
            return []

        try:
            payload = response.json()
        except ValueError as e:
            self.logger.error("Invalid scoreboard JSON", sport=sport.value, error=str(e))
            return []

        odds = parse_scoreboard(sport, payload)
        self.logger.info("Fetched reference odds", sport=sport.value, games=len(odds))
        return odds
