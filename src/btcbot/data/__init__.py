"""Ledger persistence layer -- SQLite schema management and the typed lot/config store."""

from btcbot.data.database import TradingDatabase
from btcbot.data.store import TradingStore

__all__ = ["TradingDatabase", "TradingStore"]
