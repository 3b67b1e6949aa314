"""Configuration management.

This module loads environment variables from a local ``.env`` file if one is
present so that settings such as the Discord webhook are available without
manual exports.  Values in the real environment take precedence over those in
the file.
"""

import os
from pathlib import Path
from typing import Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

SUPPORTED_DEPTHS = (70, 75, 90)


def _load_env_file(path: str = ".env") -> None:
    """Populate :mod:`os.environ` with key/value pairs from *path*.

    Lines starting with ``#`` or lacking an ``=`` separator are ignored.
    Existing keys are not overwritten. Values wrapped in single or double
    quotes are unquoted to match typical ``.env`` file behavior.
    """

    try:
        for line in Path(path).read_text().splitlines():
            line = line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            key, value = line.split("=", 1)
            value = value.strip()
            if (value.startswith('"') and value.endswith('"')) or (
                value.startswith("'") and value.endswith("'")
            ):
                value = value[1:-1]
            os.environ.setdefault(key.strip(), value)
    except FileNotFoundError:
        # Environment variables may be supplied via other means.
        pass


_load_env_file()


def _coerce_fraction(value: Any, default: float) -> float:
    """Return *value* as a non-negative float, or *default* when unparsable."""

    if value is None:
        return default
    if isinstance(value, str):
        raw = value.strip()
        if not raw:
            return default
        if raw.endswith("%"):
            try:
                return max(float(raw[:-1]) / 100.0, 0.0)
            except ValueError:
                return default
        value = raw
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if number != number:  # NaN
        return default
    return max(number, 0.0)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    env: str = "dev"
    log_level: str = "INFO"
    # Optional log file path; when set, logs also write to this file.
    log_file: str | None = "data/ladderfill.log"
    log_max_bytes: int = 1_000_000
    log_backup_count: int = 3

    sqlite_path: str = "ladderfill.db"
    prom_port: int = 9110

    discord_webhook_url: str | None = None
    discord_alert_notify: bool = True

    # Canonical reconciliation is strict; live highlighting is lenient.
    buy_fill_tolerance: float = 0.0
    sell_fill_tolerance: float = 0.0
    live_buy_tolerance: float = 0.03
    live_sell_tolerance: float = 0.03

    # Live price within this fraction of an unfilled level raises an alert.
    buy_alert_proximity: float = 0.015
    sell_alert_proximity: float = 0.03

    default_ladder_depth: int = 70
    default_growth: float = 1.25

    alert_interval_secs: int = 300
    price_currency: str = "usd"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="",
        extra="ignore",
    )

    @field_validator(
        "buy_fill_tolerance",
        "sell_fill_tolerance",
        "live_buy_tolerance",
        "live_sell_tolerance",
        "buy_alert_proximity",
        "sell_alert_proximity",
        mode="before",
    )
    @classmethod
    def _validate_fraction(cls, value: Any, info: Any) -> float:
        default = cls.model_fields[info.field_name].default
        return _coerce_fraction(value, default)

    @field_validator("default_ladder_depth", mode="before")
    @classmethod
    def _validate_depth(cls, value: Any) -> int:
        try:
            depth = int(float(value))
        except (TypeError, ValueError):
            return 70
        return depth if depth in SUPPORTED_DEPTHS else 70

    @field_validator("default_growth", mode="before")
    @classmethod
    def _validate_growth(cls, value: Any) -> float:
        try:
            growth = float(value)
        except (TypeError, ValueError):
            return 1.25
        return growth if growth >= 1.0 else 1.0

    @field_validator("price_currency", mode="before")
    @classmethod
    def _validate_currency(cls, value: Any) -> str:
        cleaned = str(value or "").strip().lower()
        return cleaned or "usd"


# Singleton settings instance populated on import.
settings = Settings()
