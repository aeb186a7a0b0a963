"""
Configuration settings for the Kalshi sports edge bot.
Uses pydantic-settings for validation and environment variable loading.

Nested sections map to environment variables with a double underscore,
e.g. ``TRADING__LIVE_TRADES=true`` or ``RISK__MAX_DAILY_LOSS=50``.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when required settings are missing at startup."""


class KalshiSettings(BaseSettings):
    """Settings for the Kalshi trade API."""

    api_base_url: str = "https://api.elections.kalshi.com/trade-api/v2"
    api_key_id: str = Field(default="", description="Kalshi API key id")
    private_key_path: str = Field(default="", description="Path to RSA private key (PEM)")
    private_key_pem: str = Field(default="", description="Inline RSA private key (PEM)")

    request_timeout_seconds: float = 10.0
    markets_page_limit: int = 200


class EspnSettings(BaseSettings):
    """Settings for the ESPN scoreboard feed."""

    base_url: str = "https://site.api.espn.com/apis/site/v2/sports"
    request_timeout_seconds: float = 10.0


class SignalSettings(BaseSettings):
    """Detection thresholds."""

    # Probability fractions: 0.10 = 10 percentage points
    mispricing_threshold_pct: float = 0.10
    min_edge_after_costs_pct: float = 0.05

    arbitrage_fee_buffer: float = 0.01

    # Spread-extreme bands
    extreme_low_prob: float = 0.15
    extreme_high_prob: float = 0.85

    # Favourite band for the mid-edge scan
    mid_edge_min_prob: float = 0.50
    mid_edge_max_prob: float = 0.70
    mid_edge_enabled: bool = False


class TradingSettings(BaseSettings):
    """Order placement and capital allocation."""

    live_trades: bool = False
    min_balance_to_bet: float = 10.0
    max_bet_size: Optional[float] = None
    max_per_market: Optional[float] = None

    # Per-strategy capital caps in dollars (None = uncapped)
    max_per_strategy_arbitrage: Optional[float] = None
    max_per_strategy_spread: Optional[float] = None
    max_per_strategy_mispricing: Optional[float] = None

    # Companion take-profit for spread farming
    spread_take_profit_ticks: int = 2
    spread_take_profit_multiplier: float = 1.05

    ledger_path: str = "strategy_ledger.jsonl"


class RiskSettings(BaseSettings):
    """Hard risk limits (None disables a limit)."""

    max_positions_total: Optional[int] = None
    max_order_notional: Optional[float] = None
    max_daily_trades: Optional[int] = None
    max_daily_notional: Optional[float] = None
    max_daily_loss: Optional[float] = None

    stats_path: str = "daily_stats.json"


class ExitSettings(BaseSettings):
    """Position exit rules."""

    take_profit_cents: Optional[int] = 2
    take_profit_pct: Optional[float] = 10.0
    stop_loss_pct: Optional[float] = None
    max_hold_minutes: Optional[float] = 180.0
    improve_exit_by_one_tick: bool = True


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore"
    )

    # Sports to scan each cycle (comma-separated)
    sports: str = Field(default="NBA,NFL,NHL", description="Comma-separated sports (NBA,NFL,NHL,NCAAB,NCAAF)")

    log_level: str = "INFO"
    json_logs: bool = False

    # 0 = run a single cycle and exit
    run_interval_seconds: float = 0.0

    # Sub-settings
    kalshi: KalshiSettings = Field(default_factory=KalshiSettings)
    espn: EspnSettings = Field(default_factory=EspnSettings)
    signals: SignalSettings = Field(default_factory=SignalSettings)
    trading: TradingSettings = Field(default_factory=TradingSettings)
    risk: RiskSettings = Field(default_factory=RiskSettings)
    exits: ExitSettings = Field(default_factory=ExitSettings)

    @field_validator("log_level")
    @classmethod
    def _upper_log_level(cls, v: str) -> str:
        return v.upper()

    def get_sports(self) -> list[str]:
        """Parse configured sports into a list of upper-case codes."""
        return [s.strip().upper() for s in self.sports.split(",") if s.strip()]

    def require_credentials(self) -> None:
        """Fail fast when the venue credentials are missing."""
        if not self.kalshi.api_base_url:
            raise ConfigurationError("Missing KALSHI__API_BASE_URL")
        if not self.kalshi.api_key_id:
            raise ConfigurationError("Missing KALSHI__API_KEY_ID")
        if not (self.kalshi.private_key_path or self.kalshi.private_key_pem):
            raise ConfigurationError(
                "Missing KALSHI__PRIVATE_KEY_PATH or KALSHI__PRIVATE_KEY_PEM"
            )


@lru_cache
def get_settings() -> Settings:
    """Load settings once per process."""
    return Settings()
