"""Detection engine: identity resolution and opportunity finders."""

from edgebot.engine.arbitrage import ArbitrageConfig, ArbitrageFinder
from edgebot.engine.identity import GameIdentityResolver, game_key, parse_symbol
from edgebot.engine.mispricing import MispricingConfig, MispricingDetector
from edgebot.engine.spread import SpreadConfig, SpreadExtremeFinder

__all__ = [
    "ArbitrageConfig",
    "ArbitrageFinder",
    "GameIdentityResolver",
    "game_key",
    "parse_symbol",
    "MispricingConfig",
    "MispricingDetector",
    "SpreadConfig",
    "SpreadExtremeFinder",
]
