"""Shared test fixtures for the BTC lot trading bot."""

from collections.abc import AsyncIterator, Awaitable, Callable
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

from btcbot.config import AppSettings, EngineSettings, ExchangeSettings, StoreSettings
from btcbot.data.database import TradingDatabase
from btcbot.data.store import TradingStore
from btcbot.exchange.client import PriceFeed


@pytest.fixture
def mock_settings(tmp_path) -> AppSettings:
    """Return AppSettings with test defaults (temp database, dummy API keys)."""
    return AppSettings(
        log_level="DEBUG",
        store=StoreSettings(database=str(tmp_path / "btcbot.db")),
        exchange=ExchangeSettings(
            api_key="test-api-key",  # type: ignore[arg-type]
            api_secret="test-api-secret",  # type: ignore[arg-type]
        ),
        engine=EngineSettings(tick_interval=0.0),
    )


@pytest_asyncio.fixture
async def database(tmp_path) -> AsyncIterator[TradingDatabase]:
    """Freshly created and seeded SQLite ledger in a temp directory."""
    async with TradingDatabase(str(tmp_path / "btcbot.db")) as db:
        yield db


@pytest.fixture
def store(database: TradingDatabase) -> TradingStore:
    return TradingStore(database)


@pytest.fixture
def mock_feed() -> AsyncMock:
    """Mock PriceFeed quoting $9300.000."""
    feed = AsyncMock(spec=PriceFeed)
    feed.fetch_last_price.return_value = Decimal("9300")
    return feed


@pytest.fixture
def set_config(database: TradingDatabase) -> Callable[..., Awaitable[None]]:
    """Overwrite config columns (usdbalance, buyrate, amount, stagnantwait)."""

    async def _set(**columns: int | str | None) -> None:
        assignments = ", ".join(f"{name} = ?" for name in columns)
        await database.db.execute(
            f"UPDATE config SET {assignments}", tuple(columns.values())
        )
        await database.db.commit()

    return _set
