"""Venue and reference-odds clients."""

from edgebot.feeds.base import VenueClient
from edgebot.feeds.espn import EspnOddsFeed
from edgebot.feeds.kalshi import KalshiClient, build_quotes

__all__ = [
    "VenueClient",
    "EspnOddsFeed",
    "KalshiClient",
    "build_quotes",
]
