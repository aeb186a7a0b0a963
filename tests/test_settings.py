"""Tests for settings loading."""

import pytest

from config.settings import ConfigurationError, Settings


class TestSettings:

    def test_defaults(self):
        settings = Settings(_env_file=None)

        assert settings.get_sports() == ["NBA", "NFL", "NHL"]
        assert settings.trading.live_trades is False
        assert settings.signals.mispricing_threshold_pct == pytest.approx(0.10)
        assert settings.exits.take_profit_cents == 2
        assert settings.risk.max_daily_loss is None
        assert settings.signals.mid_edge_enabled is False

    def test_nested_environment(self, monkeypatch):
        monkeypatch.setenv("TRADING__LIVE_TRADES", "true")
        monkeypatch.setenv("RISK__MAX_DAILY_LOSS", "50")
        monkeypatch.setenv("SPORTS", "nba, ncaab")
        monkeypatch.setenv("LOG_LEVEL", "debug")

        settings = Settings(_env_file=None)

        assert settings.trading.live_trades is True
        assert settings.risk.max_daily_loss == pytest.approx(50.0)
        assert settings.get_sports() == ["NBA", "NCAAB"]
        assert settings.log_level == "DEBUG"

    def test_missing_credentials(self):
        settings = Settings(_env_file=None, kalshi={"api_key_id": "", "private_key_path": ""})

        with pytest.raises(ConfigurationError, match="API_KEY_ID"):
            settings.require_credentials()

    def test_missing_private_key(self):
        settings = Settings(_env_file=None, kalshi={"api_key_id": "key", "private_key_path": ""})

        with pytest.raises(ConfigurationError, match="PRIVATE_KEY"):
            settings.require_credentials()

    def test_credentials_present(self):
        settings = Settings(_env_file=None, kalshi={"api_key_id": "key", "private_key_path": "/keys/kalshi.pem"})
        settings.require_credentials()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
