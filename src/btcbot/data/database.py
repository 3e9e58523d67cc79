"""Async SQLite database manager for the lot ledger and trading config.

Uses aiosqlite for non-blocking database operations with WAL mode.
Creates the schema and seeds the default config row on first run.
"""

import os
from typing import Self

import aiosqlite

from btcbot.exceptions import StoreError
from btcbot.logging import get_logger

logger = get_logger(__name__)

# Default seed, fixed-point x1000: $1000.000 balance, $9200.000 buy rate,
# $100.000 margin, 24h stagnation window.
DEFAULT_USD_BALANCE = 1_000_000
DEFAULT_BUY_RATE = 9_200_000
DEFAULT_AMOUNT = 100_000
DEFAULT_STAGNANT_WAIT = 24

_CREATE_TABLES_SQL = """
CREATE TABLE IF NOT EXISTS btcprice (
    id INTEGER NOT NULL PRIMARY KEY,
    rate INTEGER,
    amount INTEGER,
    buytime DATETIME
);

CREATE INDEX IF NOT EXISTS btcprice_rate ON btcprice (rate);

CREATE TABLE IF NOT EXISTS config (
    id INTEGER NOT NULL PRIMARY KEY,
    usdbalance INTEGER,
    buyrate INTEGER,
    amount INTEGER,
    stagnantwait INTEGER
);
"""


class TradingDatabase:
    """Async SQLite connection manager for the trading ledger.

    Usage:
        async with TradingDatabase("/path/to/btcbot.db") as database:
            store = TradingStore(database)
            config = await store.get_config()

    Every failure here is wrapped in StoreError.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path
        self._connection: aiosqlite.Connection | None = None
        self.created = False

    @property
    def db(self) -> aiosqlite.Connection:
        """Access the raw aiosqlite connection.

        Raises StoreError if not connected.
        """
        if self._connection is None:
            raise StoreError("Database not connected. Call connect() first.")
        return self._connection

    async def connect(self) -> None:
        """Open the connection, configure pragmas, create schema and seed defaults."""
        try:
            db_dir = os.path.dirname(self._db_path)
            if db_dir:
                os.makedirs(db_dir, exist_ok=True)

            self._connection = await aiosqlite.connect(self._db_path)
            await self._connection.execute("PRAGMA journal_mode=WAL")
            await self._connection.execute("PRAGMA synchronous=NORMAL")

            await self._connection.executescript(_CREATE_TABLES_SQL)
            await self._connection.commit()
            self.created = await self._seed_config()
        except (aiosqlite.Error, OSError) as e:
            await self.close()
            raise StoreError(f"cannot open database {self._db_path}: {e}") from e

        logger.info("trading_db_connected", db_path=self._db_path)
        if self.created:
            logger.warning(
                "trading_db_seeded",
                db_path=self._db_path,
                usdbalance=DEFAULT_USD_BALANCE,
                buyrate=DEFAULT_BUY_RATE,
                amount=DEFAULT_AMOUNT,
                stagnantwait=DEFAULT_STAGNANT_WAIT,
                note="Edit the config table and restart to trade with other values.",
            )

    async def close(self) -> None:
        """Close the database connection if open."""
        if self._connection is not None:
            await self._connection.close()
            self._connection = None
            logger.info("trading_db_closed", db_path=self._db_path)

    async def _seed_config(self) -> bool:
        """Insert the default config row if the table is empty. Returns True if seeded."""
        assert self._connection is not None
        cursor = await self._connection.execute("SELECT COUNT(*) FROM config")
        row = await cursor.fetchone()
        if row is not None and row[0] > 0:
            return False
        await self._connection.execute(
            "INSERT INTO config (usdbalance, buyrate, amount, stagnantwait) "
            "VALUES (?, ?, ?, ?)",
            (
                DEFAULT_USD_BALANCE,
                DEFAULT_BUY_RATE,
                DEFAULT_AMOUNT,
                DEFAULT_STAGNANT_WAIT,
            ),
        )
        await self._connection.commit()
        return True

    async def __aenter__(self) -> Self:
        """Async context manager entry."""
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # type: ignore[no-untyped-def]
        """Async context manager exit."""
        await self.close()
