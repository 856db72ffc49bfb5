"""Unit tests for application settings."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from corptrends.fetch.config import ScrapeConfig
from corptrends.ranker.models import ScoreWeights
from corptrends.settings.app import DEFAULT_USER_AGENT, AppSettings


def load(**kwargs: object) -> AppSettings:
    """Load settings from the environment only."""
    return AppSettings(_env_file=None, **kwargs)  # type: ignore[call-arg]


class TestDefaults:
    """Tests for default values."""

    def test_scraping_defaults(self) -> None:
        """Test the shared scraping defaults."""
        settings = load()

        assert settings.scraping_timeout == 30.0
        assert settings.scraping_max_retries == 3
        assert settings.scraping_retry_delay == 1.0
        assert settings.scraping_user_agent == DEFAULT_USER_AGENT
        assert settings.db_path == Path("data/corptrends.sqlite")

    def test_platform_rate_limits(self) -> None:
        """Test per-platform limits fall back to the shared limit."""
        settings = load()

        assert settings.rate_limit_for_platform("qiita") == 60
        assert settings.rate_limit_for_platform("zenn") == 30
        assert settings.rate_limit_for_platform("hatena") == 20
        assert settings.rate_limit_for_platform("other") == 30

    def test_period_days(self) -> None:
        """Test the default period day counts."""
        assert load().period_days() == {
            "1w": 7,
            "1m": 30,
            "3m": 90,
            "6m": 180,
            "1y": 365,
            "3y": 1095,
            "all": None,
        }


class TestEnvironment:
    """Tests for environment overrides."""

    def test_env_aliases(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test values are read from their environment variables."""
        monkeypatch.setenv("CORPTRENDS_DB_PATH", "/tmp/trends.sqlite")
        monkeypatch.setenv("SCRAPING_MAX_RETRIES", "5")
        monkeypatch.setenv("ZENN_SCRAPING_RATE_LIMIT", "12")
        monkeypatch.setenv("RANKING_PERIOD_DAYS_1W", "10")

        settings = load()

        assert settings.db_path == Path("/tmp/trends.sqlite")
        assert settings.scraping_max_retries == 5
        assert settings.rate_limit_for_platform("zenn") == 12
        assert settings.period_days()["1w"] == 10

    def test_platform_timeout_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test a platform timeout wins over the shared timeout."""
        monkeypatch.setenv("SCRAPING_TIMEOUT", "20")
        monkeypatch.setenv("HATENA_SCRAPING_TIMEOUT", "45")

        settings = load()

        assert settings.timeout_for_platform("hatena") == 45.0
        assert settings.timeout_for_platform("qiita") == 20.0

    def test_excluded_domains_list(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test excluded domains are read as a comma separated list."""
        monkeypatch.setenv("HATENA_EXCLUDED_DOMAINS", "YouTube.com, ,twitter.com")

        assert load().hatena_excluded_domains == ["youtube.com", "twitter.com"]

    def test_invalid_retries_rejected(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test out-of-range values fail validation."""
        monkeypatch.setenv("SCRAPING_MAX_RETRIES", "0")

        with pytest.raises(ValidationError):
            load()


class TestDerivedConfig:
    """Tests for objects built from settings."""

    def test_scrape_config_for_platform(self) -> None:
        """Test the engine config takes the platform's values."""
        settings = load(scraping_max_retries=2, scraping_retry_delay=0.25)

        config = ScrapeConfig.for_platform(settings, "hatena")

        assert config.requests_per_minute == 20
        assert config.max_retry_count == 2
        assert config.retry_delay_seconds == 0.25
        assert config.timeout_seconds == 30.0

    def test_score_weights(self) -> None:
        """Test score weights come from settings."""
        weights = ScoreWeights.from_settings(load(score_platform_weight_hatena=0.6))

        assert weights.platform_weight("hatena") == 0.6
        assert weights.platform_weight("qiita") == 1.0
        assert weights.platform_weight(None) == 0.5
        assert weights.time_decay_floor == 0.1
