"""
League reference data.

Abbreviation tables map every known alias (venue codes, ESPN codes,
partial codes) to one canonical team code per league. Leagues without a
table (college) fall back to raw codes from the symbol.
"""

from dataclasses import dataclass
from typing import Optional

from edgebot.models.schemas import Sport


@dataclass(frozen=True)
class LeagueInfo:
    sport: Sport
    series_ticker: str  # venue series for game-winner markets
    espn_path: str  # ESPN scoreboard path


LEAGUES: dict[Sport, LeagueInfo] = {
    Sport.NBA: LeagueInfo(Sport.NBA, "KXNBAGAME", "basketball/nba"),
    Sport.NFL: LeagueInfo(Sport.NFL, "KXNFLGAME", "football/nfl"),
    Sport.NHL: LeagueInfo(Sport.NHL, "KXNHLGAME", "hockey/nhl"),
    Sport.NCAAB: LeagueInfo(Sport.NCAAB, "KXNCAAMBGAME", "basketball/mens-college-basketball"),
    Sport.NCAAF: LeagueInfo(Sport.NCAAF, "KXNCAAFGAME", "football/college-football"),
}

# Symbol prefix (before "GAME-") -> league
SERIES_PREFIXES: dict[str, Sport] = {
    "KXNBA": Sport.NBA,
    "KXNFL": Sport.NFL,
    "KXNHL": Sport.NHL,
    "KXNCAAMB": Sport.NCAAB,
    "KXNCAAB": Sport.NCAAB,
    "KXNCAAF": Sport.NCAAF,
}


def _table(canonical: str, aliases: dict[str, str]) -> dict[str, str]:
    table = {code: code for code in canonical.split()}
    table.update(aliases)
    return table


NBA_TEAMS = _table(
    "ATL BOS BKN CHA CHI CLE DAL DEN DET GS HOU IND LAC LAL MEM MIA "
    "MIL MIN NO NY OKC ORL PHI PHX POR SAC SA TOR UTA WAS",
    {
        "GSW": "GS",
        "NOP": "NO",
        "NYK": "NY",
        "SAS": "SA",
        "WSH": "WAS",
        "UTAH": "UTA",
        "BRK": "BKN",
        "PHO": "PHX",
        "CHO": "CHA",
    },
)

NFL_TEAMS = _table(
    "ARI ATL BAL BUF CAR CHI CIN CLE DAL DEN DET GB HOU IND JAX KC "
    "LAC LAR LV MIA MIN NE NO NYG NYJ PHI PIT SEA SF TB TEN WAS",
    {
        "WSH": "WAS",
        "LA": "LAR",
        "JAC": "JAX",
        "GNB": "GB",
        "KAN": "KC",
        "NWE": "NE",
        "NOR": "NO",
        "SFO": "SF",
        "TAM": "TB",
        "LVR": "LV",
    },
)

NHL_TEAMS = _table(
    "ANA BOS BUF CAR CBJ CGY CHI COL DAL DET EDM FLA LAK MIN MTL NJD "
    "NSH NYI NYR OTT PHI PIT SEA SJS STL TBL TOR UTA VAN VGK WPG WSH",
    {
        "LA": "LAK",
        "NJ": "NJD",
        "SJ": "SJS",
        "TB": "TBL",
        "WAS": "WSH",
        "UTAH": "UTA",
        "VEG": "VGK",
        "CLS": "CBJ",
        "MON": "MTL",
        "NAS": "NSH",
    },
)

TEAM_TABLES: dict[Sport, dict[str, str]] = {
    Sport.NBA: NBA_TEAMS,
    Sport.NFL: NFL_TEAMS,
    Sport.NHL: NHL_TEAMS,
}

# Team blocks whose split is ambiguous: block -> (away, home)
BLOCK_OVERRIDES: dict[Sport, dict[str, tuple[str, str]]] = {
    Sport.NFL: {"LAARI": ("LAR", "ARI")},
}

EXACT = 2
PREFIX = 1


def resolve_code(table: dict[str, str], code: str) -> Optional[tuple[str, int]]:
    """
    Resolve a code to (canonical code, match quality).

    Exact and alias hits rank above the prefix fallback, which only applies
    to short codes and only to canonical codes at most one letter longer.
    """
    code = code.strip().upper()
    if not code:
        return None
    if code in table:
        return table[code], EXACT
    if 2 <= len(code) <= 3:
        for key, canonical in table.items():
            if key == canonical and key.startswith(code) and len(key) <= len(code) + 1:
                return canonical, PREFIX
    return None


def canonical_team(sport: Sport, code: str) -> str:
    """Canonical code for a team, or the normalized input when unknown."""
    normalized = "".join(code.split()).upper()
    table = TEAM_TABLES.get(sport)
    if table is None:
        return normalized
    resolved = resolve_code(table, normalized)
    return resolved[0] if resolved else normalized
