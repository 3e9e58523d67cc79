"""Typed SQLite read/write abstraction for lots and the trading config.

All SQL is isolated behind TradingStore. Every aiosqlite failure is
re-raised as StoreError, and every read-modify-write runs as a single
transaction that checks the row it read is still the row it writes, so a
second writer can never cause a lost update or a double sale.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import aiosqlite

from btcbot.data.database import TradingDatabase
from btcbot.exceptions import StoreError
from btcbot.logging import get_logger
from btcbot.models import Lot, SellDecision, TradingConfig

logger = get_logger(__name__)

_CONFIG_COLUMNS = ("usdbalance", "buyrate", "amount", "stagnantwait")


def _row_to_lot(row: aiosqlite.Row | tuple) -> Lot:
    acquired_at = datetime.fromisoformat(row[3]) if row[3] else None
    return Lot(id=row[0], rate=row[1], amount=row[2], acquired_at=acquired_at)


class TradingStore:
    """Async SQLite store for the btcprice ledger and the config row.

    Usage:
        async with TradingDatabase("btcbot.db") as database:
            store = TradingStore(database)
            lot = await store.find_sell_candidate(9_150_000)
    """

    def __init__(self, database: TradingDatabase) -> None:
        self._database = database

    @asynccontextmanager
    async def _transaction(self, operation: str) -> AsyncIterator[aiosqlite.Connection]:
        """Commit on success; roll back on any exception, translating aiosqlite errors."""
        db = self._database.db
        try:
            yield db
            await db.commit()
        except aiosqlite.Error as e:
            await db.rollback()
            raise StoreError(f"{operation} failed: {e}") from e
        except BaseException:
            # includes CancelledError between two statements of one transaction
            await db.rollback()
            raise

    async def _fetchone(self, operation: str, sql: str, params: tuple = ()) -> tuple | None:
        try:
            cursor = await self._database.db.execute(sql, params)
            return await cursor.fetchone()
        except aiosqlite.Error as e:
            raise StoreError(f"{operation} failed: {e}") from e

    # ──────────────────────────────────────────────
    # Read methods
    # ──────────────────────────────────────────────

    async def get_config(self) -> TradingConfig:
        """Load the single config row. A missing row is a StoreError."""
        row = await self._fetchone(
            "get_config",
            "SELECT id, usdbalance, buyrate, amount, stagnantwait "
            "FROM config ORDER BY id ASC LIMIT 1",
        )
        if row is None:
            raise StoreError("config row missing")
        for column, value in zip(_CONFIG_COLUMNS, row[1:]):
            if not isinstance(value, int) or value < 0:
                raise StoreError(
                    f"config column {column} must be a non-negative integer, got {value!r}"
                )
        return TradingConfig(
            id=row[0],
            cash_balance=row[1],
            buy_threshold=row[2],
            lot_margin=row[3],
            stagnant_window=row[4],
        )

    async def find_sell_candidate(self, threshold: int) -> Lot | None:
        """Return the lowest-rate lot with rate <= threshold, or None.

        Equal rates are broken by ascending id so the oldest lot sells first.
        """
        row = await self._fetchone(
            "find_sell_candidate",
            "SELECT id, rate, amount, buytime FROM btcprice "
            "WHERE rate <= ? ORDER BY rate ASC, id ASC LIMIT 1",
            (threshold,),
        )
        return _row_to_lot(row) if row is not None else None

    async def list_lots(self) -> list[Lot]:
        """All lots ordered by rate, then id."""
        try:
            cursor = await self._database.db.execute(
                "SELECT id, rate, amount, buytime FROM btcprice ORDER BY rate ASC, id ASC"
            )
            rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            raise StoreError(f"list_lots failed: {e}") from e
        return [_row_to_lot(row) for row in rows]

    # ──────────────────────────────────────────────
    # Write methods
    # ──────────────────────────────────────────────

    async def add_lot(
        self, rate: int, amount: int, acquired_at: datetime | None = None
    ) -> Lot:
        """Append a lot to the ledger without touching the config row."""
        if rate < 0 or amount < 0:
            raise ValueError("lot rate and amount must be non-negative")
        acquired_at = acquired_at or datetime.now(timezone.utc)
        async with self._transaction("add_lot") as db:
            cursor = await db.execute(
                "INSERT INTO btcprice (rate, amount, buytime) VALUES (?, ?, ?)",
                (rate, amount, acquired_at.isoformat()),
            )
            lot_id = cursor.lastrowid
        assert lot_id is not None
        return Lot(id=lot_id, rate=rate, amount=amount, acquired_at=acquired_at)

    async def save_buy_threshold(
        self, config: TradingConfig, threshold: int
    ) -> TradingConfig:
        """Persist a new buy threshold; fails if the row changed since `config` was read."""
        async with self._transaction("save_buy_threshold") as db:
            cursor = await db.execute(
                "UPDATE config SET buyrate = ? WHERE id = ? AND buyrate = ?",
                (threshold, config.id, config.buy_threshold),
            )
            if cursor.rowcount != 1:
                raise StoreError("config row changed concurrently; buy threshold not saved")
        logger.debug(
            "buy_threshold_saved",
            previous=config.buy_threshold,
            threshold=threshold,
        )
        return config.with_buy_threshold(threshold)

    async def settle_sale(
        self, config: TradingConfig, decision: SellDecision
    ) -> TradingConfig:
        """Delete the sold lot and credit its proceeds in one transaction."""
        updated = config.credited(decision.proceeds)
        async with self._transaction("settle_sale") as db:
            cursor = await db.execute(
                "DELETE FROM btcprice WHERE id = ?", (decision.lot.id,)
            )
            if cursor.rowcount != 1:
                raise StoreError(f"lot {decision.lot.id} already gone; sale not settled")
            cursor = await db.execute(
                "UPDATE config SET usdbalance = ? WHERE id = ? AND usdbalance = ?",
                (updated.cash_balance, config.id, config.cash_balance),
            )
            if cursor.rowcount != 1:
                raise StoreError("config row changed concurrently; sale not settled")
        logger.debug(
            "sale_settled",
            lot_id=decision.lot.id,
            proceeds=decision.proceeds,
            cash_balance=updated.cash_balance,
        )
        return updated

    async def record_buy(
        self,
        config: TradingConfig,
        price: int,
        acquired_at: datetime | None = None,
    ) -> tuple[TradingConfig, Lot]:
        """Insert a lot at `price`, debit its amount and lower the threshold atomically.

        The lot's amount is the config's lot_margin, which is also what the
        cash balance is debited by.
        """
        acquired_at = acquired_at or datetime.now(timezone.utc)
        updated = config.with_buy_threshold(price).credited(-config.lot_margin)
        async with self._transaction("record_buy") as db:
            cursor = await db.execute(
                "INSERT INTO btcprice (rate, amount, buytime) VALUES (?, ?, ?)",
                (price, config.lot_margin, acquired_at.isoformat()),
            )
            lot_id = cursor.lastrowid
            cursor = await db.execute(
                "UPDATE config SET buyrate = ?, usdbalance = ? "
                "WHERE id = ? AND buyrate = ? AND usdbalance = ?",
                (
                    updated.buy_threshold,
                    updated.cash_balance,
                    config.id,
                    config.buy_threshold,
                    config.cash_balance,
                ),
            )
            if cursor.rowcount != 1:
                raise StoreError("config row changed concurrently; buy not recorded")
        assert lot_id is not None
        lot = Lot(id=lot_id, rate=price, amount=config.lot_margin, acquired_at=acquired_at)
        logger.debug("buy_recorded", lot_id=lot.id, rate=price, amount=lot.amount)
        return updated, lot
