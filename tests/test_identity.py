"""Tests for game identity resolution."""

import pytest

from edgebot.engine.identity import GameIdentityResolver, game_key, parse_symbol
from edgebot.models.schemas import Sport, TeamSide


@pytest.fixture
def resolver():
    return GameIdentityResolver()


class TestSymbolParsing:
    """Tabled leagues."""

    def test_nba_home_side(self):
        identity = parse_symbol("KXNBAGAME-25NOV26MINOKC-OKC")

        assert identity.sport == Sport.NBA
        assert identity.away == "MIN"
        assert identity.home == "OKC"
        assert identity.side == TeamSide.HOME
        assert identity.side_team == "OKC"
        assert identity.date_code == "25NOV26"

    def test_nba_away_side(self):
        identity = parse_symbol("KXNBAGAME-25NOV26MINOKC-MIN")
        assert identity.side == TeamSide.AWAY
        assert identity.side_team == "MIN"

    def test_alias_resolves_to_canonical(self):
        identity = parse_symbol("KXNBAGAME-25DEC01GSWLAL-GSW")
        assert identity.away == "GS"
        assert identity.home == "LAL"
        assert identity.side == TeamSide.AWAY

    def test_partial_code_split(self):
        """LACAR splits as LA (Rams) + CAR, not LAC + AR."""
        identity = parse_symbol("KXNFLGAME-25NOV30LACAR-LA")
        assert identity.away == "LAR"
        assert identity.home == "CAR"
        assert identity.side == TeamSide.AWAY

    def test_override_table(self):
        identity = parse_symbol("KXNFLGAME-25NOV30LAARI-ARI")
        assert (identity.away, identity.home) == ("LAR", "ARI")
        assert identity.side == TeamSide.HOME

    def test_two_letter_codes(self):
        identity = parse_symbol("KXNHLGAME-25NOV28NJTB-NJ")
        assert (identity.away, identity.home) == ("NJD", "TBL")
        assert identity.side == TeamSide.AWAY

    def test_unknown_sport_prefix(self):
        assert parse_symbol("KXMLBGAME-25APR01NYYBOS-NYY") is None


class TestGameKey:
    """Side-independent keys."""

    def test_both_sides_share_key(self):
        assert game_key("KXNBAGAME-25NOV26MINOKC-OKC") == game_key("KXNBAGAME-25NOV26MINOKC-MIN")

    def test_key_format(self):
        assert game_key("KXNBAGAME-25NOV26MINOKC-OKC") == "NBA-25NOV26-MIN-OKC"

    def test_different_dates_differ(self):
        assert game_key("KXNBAGAME-25NOV26MINOKC-OKC") != game_key("KXNBAGAME-25NOV28MINOKC-OKC")

    def test_unresolvable_symbol_is_its_own_key(self):
        assert game_key("SOMETHING-ELSE") == "SOMETHING-ELSE"


class TestFallbackChain:
    """Event symbol, title and placeholder fallbacks."""

    def test_college_split_at_side_code(self):
        away = parse_symbol("KXNCAAMBGAME-25NOV28DUKEUNC-DUKE")
        home = parse_symbol("KXNCAAMBGAME-25NOV28DUKEUNC-UNC")

        assert away.sport == Sport.NCAAB
        assert (away.away, away.home) == ("DUKE", "UNC")
        assert away.side == TeamSide.AWAY
        assert home.side == TeamSide.HOME
        assert away.game_key == home.game_key == "NCAAB-25NOV28-DUKEUNC"

    def test_college_placeholder(self):
        identity = parse_symbol("KXNCAAFGAME-25NOV29OSUMICH-TIE")

        assert identity.placeholder
        assert (identity.away, identity.home) == ("AWAY", "HOME")
        assert identity.side is None
        assert identity.game_key == "NCAAF-25NOV29-OSUMICH"

    def test_event_symbol_first(self, resolver):
        identity = resolver.resolve(
            "KXNBAGAME-25NOV26MINOKC-MIN",
            event_symbol="KXNBAGAME-25NOV26MINOKC",
        )
        assert (identity.away, identity.home) == ("MIN", "OKC")
        assert identity.side == TeamSide.AWAY

    def test_title_fallback(self, resolver):
        identity = resolver.resolve("KXNBAGAME-25NOV26XXXYYY-XXX", title="MIN @ OKC")

        assert (identity.away, identity.home) == ("MIN", "OKC")
        assert identity.game_key == "NBA-25NOV26-MIN-OKC"
        assert identity.side is None

    def test_tabled_league_without_anchor(self, resolver):
        assert resolver.resolve("KXNBAGAME-25NOV26XXXYYY-XXX") is None

    def test_title_with_unknown_full_names(self, resolver):
        identity = resolver.resolve(
            "KXNBAGAME-25NOV26XXXYYY-XXX",
            title="Minnesota at Oklahoma City Winner?",
        )

        assert identity is None

    def test_title_with_prefix_codes(self, resolver):
        identity = resolver.resolve("KXNBAGAME-25NOV26XXXYYY-XXX", title="MIN @ OK")

        assert identity.game_key == "NBA-25NOV26-MIN-OKC"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
