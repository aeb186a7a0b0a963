"""
Kalshi sports edge bot.

Compares Kalshi game-winner prices against ESPN moneylines and trades the
divergences, with arbitrage bundles and spread farming as competing
strategies under shared capital and risk limits.

- engine/: identity resolution and opportunity detection
- feeds/: Kalshi and ESPN clients
- models/: data schemas
- trading/: capital allocation, risk, exits
"""

__version__ = "0.1.0"
