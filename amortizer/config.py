"""Centralized configuration for the amortizer.

Limits used to validate session files and settings for the web app live
here. Environment variables are read when the configuration is built, so
``reload_config`` picks up changes made after import (useful in tests).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field


@dataclass
class SessionLimits:
    """Accepted ranges for values loaded from a session file."""

    version: int = 1
    max_file_size: int = 1024 * 1024  # 1 MiB
    max_loan_amount: float = 1e15
    max_interest_rate: float = 1000.0
    max_term_years: float = 1000.0
    max_property_name_length: int = 100
    max_currency_symbol_length: int = 5


@dataclass
class WebConfig:
    """Settings for the Flask front end."""

    secret_key: str = field(
        default_factory=lambda: os.environ.get("FLASK_SECRET_KEY", "dev-secret-key")
    )
    database_url: str = field(
        default_factory=lambda: os.environ.get(
            "SCENARIO_DATABASE_URL", "sqlite:///scenario_data.sqlite3"
        )
    )
    asset_version: str = field(default_factory=lambda: os.environ.get("ASSET_VERSION", "1"))
    max_scenarios_per_user: int = field(
        default_factory=lambda: int(os.environ.get("MAX_SCENARIOS_PER_USER", "10"))
    )
    preview_rows: int = 120


@dataclass
class AppConfig:
    """Main application configuration."""

    log_level: str = field(
        default_factory=lambda: os.environ.get("AMORTIZER_LOG_LEVEL", "WARNING").upper()
    )
    session: SessionLimits = field(default_factory=SessionLimits)
    web: WebConfig = field(default_factory=WebConfig)

    def __post_init__(self):
        self._validate()

    def _validate(self):
        if self.session.max_file_size <= 0:
            raise ValueError("max_file_size must be positive")
        if self.web.max_scenarios_per_user < 0:
            raise ValueError("MAX_SCENARIOS_PER_USER must not be negative")


config = AppConfig()


def get_config() -> AppConfig:
    """Return the global configuration instance."""
    return config


def reload_config() -> AppConfig:
    """Rebuild the configuration from environment variables."""
    global config
    config = AppConfig()
    return config
