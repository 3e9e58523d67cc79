"""Custom exceptions for the BTC lot trading bot.

Collaborators translate third-party errors (ccxt, aiosqlite) into these
at their boundary so the engine only has to reason about three kinds of
failure: configuration, price feed, and store.
"""


class BotError(Exception):
    """Base exception for all bot errors."""


class ConfigurationError(BotError):
    """Raised when required settings (database, API key/secret) are missing."""


class PriceFeedError(BotError):
    """Raised when the current price cannot be obtained.

    Recoverable: the engine logs it and skips the current tick.
    """


class StoreError(BotError):
    """Raised when a read or write against the embedded store fails.

    Fatal: the engine never continues on top of an untrustworthy ledger.
    """
