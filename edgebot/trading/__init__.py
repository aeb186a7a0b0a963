"""Capital allocation, risk limits and exits."""

from edgebot.trading.allocator import AllocatorConfig, OrderPlacer
from edgebot.trading.ledger import TradeLedger
from edgebot.trading.position_manager import ExitConfig, PositionManager
from edgebot.trading.risk import RiskLimits, RiskService
from edgebot.trading.session import TradingSession

__all__ = [
    "AllocatorConfig",
    "OrderPlacer",
    "TradeLedger",
    "ExitConfig",
    "PositionManager",
    "RiskLimits",
    "RiskService",
    "TradingSession",
]
