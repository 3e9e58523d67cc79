"""Configuration system using pydantic-settings with environment variable loading.

Resolution order for every value: explicit command-line flag, then the
environment variable (under an optional user-chosen prefix), then the default.
"""

from decimal import Decimal
from typing import Any, Literal

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from btcbot.exceptions import ConfigurationError


class StoreSettings(BaseSettings):
    """Location of the embedded SQLite ledger."""

    model_config = SettingsConfigDict(env_prefix="")

    database: str = ""


class ExchangeSettings(BaseSettings):
    """Price feed connection settings (any ccxt exchange id)."""

    model_config = SettingsConfigDict(env_prefix="EXCHANGE_")

    api_key: SecretStr = SecretStr("")
    api_secret: SecretStr = SecretStr("")
    exchange_id: str = "kraken"
    symbol: str = "BTC/USD"
    timeout_seconds: float = 10.0  # bound on a single price fetch


class EngineSettings(BaseSettings):
    """Decision engine parameters.

    settle_sales and record_buys are off by default: the engine reports
    sale candidates and buy triggers but only persists the lowered buy
    threshold. Turning them on makes sales and buys mutate the ledger.
    """

    model_config = SettingsConfigDict(env_prefix="ENGINE_")

    tick_interval: float = 5.0  # seconds slept after every tick
    fee_rate: Decimal = Decimal("0.0015")  # 0.15% deducted from sale proceeds
    settle_sales: bool = False
    record_buys: bool = False


class AppSettings(BaseSettings):
    """Root application settings, composing all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: str = "INFO"
    log_format: Literal["console", "json"] = "console"
    store: StoreSettings = StoreSettings()
    exchange: ExchangeSettings = ExchangeSettings()
    engine: EngineSettings = EngineSettings()


def _explicit(values: dict[str, Any] | None) -> dict[str, Any]:
    """Drop flags the user did not pass so they don't shadow the environment."""
    return {k: v for k, v in (values or {}).items() if v is not None}


def load_settings(
    prefix: str = "",
    store: dict[str, Any] | None = None,
    exchange: dict[str, Any] | None = None,
    engine: dict[str, Any] | None = None,
    **root: Any,
) -> AppSettings:
    """Build AppSettings with flag > environment > default precedence.

    Args:
        prefix: Prepended to every environment variable name, so that
            prefix "BOT1_" reads BOT1_DATABASE, BOT1_EXCHANGE_API_KEY, ...
        store: Explicit StoreSettings values (None entries ignored).
        exchange: Explicit ExchangeSettings values (None entries ignored).
        engine: Explicit EngineSettings values (None entries ignored).
        **root: Explicit top-level values such as log_level.
    """
    return AppSettings(
        _env_prefix=prefix,
        store=StoreSettings(_env_prefix=prefix, **_explicit(store)),
        exchange=ExchangeSettings(
            _env_prefix=f"{prefix}EXCHANGE_", **_explicit(exchange)
        ),
        engine=EngineSettings(_env_prefix=f"{prefix}ENGINE_", **_explicit(engine)),
        **_explicit(root),
    )


def validate_required(settings: AppSettings) -> None:
    """Raise ConfigurationError unless database, key and secret are all set."""
    missing = []
    if not settings.store.database:
        missing.append("database")
    if not settings.exchange.api_key.get_secret_value():
        missing.append("api_key")
    if not settings.exchange.api_secret.get_secret_value():
        missing.append("api_secret")
    if missing:
        raise ConfigurationError(
            "Please specify a database plus exchange API key and secret "
            f"(missing: {', '.join(missing)})"
        )
