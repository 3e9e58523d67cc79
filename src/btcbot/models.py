"""Shared data models for the BTC lot trading bot.

CRITICAL: All monetary fields are integers in fixed-point units (x1000).
Convert with btcbot.fixed_point, never with float arithmetic.
"""

from dataclasses import dataclass, replace
from datetime import datetime


@dataclass(frozen=True)
class Lot:
    """A single simulated acquisition, one row of the btcprice table."""

    id: int
    rate: int  # acquisition price
    amount: int  # margin/size parameter at acquisition time
    acquired_at: datetime | None = None


@dataclass(frozen=True)
class TradingConfig:
    """The single persisted row of mutable trading parameters.

    Frozen: every change produces a new value that the store writes back
    (see TradingStore.save_buy_threshold), so a tick never mutates shared
    state in place.
    """

    id: int
    cash_balance: int
    buy_threshold: int
    lot_margin: int
    stagnant_window: int  # hours; loaded and persisted, not used by the engine

    def with_buy_threshold(self, threshold: int) -> "TradingConfig":
        return replace(self, buy_threshold=threshold)

    def credited(self, amount: int) -> "TradingConfig":
        """Return a copy with `amount` added to the cash balance (negative debits)."""
        return replace(self, cash_balance=self.cash_balance + amount)


@dataclass(frozen=True)
class SellDecision:
    """A lot whose rate is at or below the sell floor for the current price."""

    lot: Lot
    price: int
    fee: int
    profit: int  # per unit: price - rate - fee
    proceeds: int = 0  # cash the lot returns when settled, after its own fee


@dataclass(frozen=True)
class BuyDecision:
    """A price at or below the buy trigger; the threshold ratchets down to it."""

    price: int
    previous_threshold: int


@dataclass
class TickResult:
    """Outcome of one engine tick, for logging and tests."""

    price: int | None = None
    sell: SellDecision | None = None
    buy: BuyDecision | None = None
    error: str | None = None
    settled: bool = False
    lot_recorded: bool = False
