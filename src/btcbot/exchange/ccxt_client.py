"""Last-price feed implementation via ccxt async.

Wraps any ccxt.async_support exchange with credential pass-through,
rate limiting, a bounded per-call timeout and async cleanup.
"""

import asyncio
from decimal import Decimal, InvalidOperation

import ccxt.async_support as ccxt_async

from btcbot.config import ExchangeSettings
from btcbot.exceptions import ConfigurationError, PriceFeedError
from btcbot.exchange.client import PriceFeed
from btcbot.logging import get_logger

logger = get_logger(__name__)


class CcxtPriceFeed(PriceFeed):
    """Concrete price feed backed by a ccxt exchange selected by id."""

    def __init__(self, settings: ExchangeSettings) -> None:
        self._settings = settings

        exchange_class = getattr(ccxt_async, settings.exchange_id, None)
        if exchange_class is None:
            raise ConfigurationError(f"Unknown ccxt exchange id: {settings.exchange_id}")

        self._exchange = exchange_class(
            {
                "apiKey": settings.api_key.get_secret_value(),
                "secret": settings.api_secret.get_secret_value(),
                "enableRateLimit": True,
                "timeout": int(settings.timeout_seconds * 1000),
            }
        )

    @property
    def exchange(self) -> ccxt_async.Exchange:
        """Access the underlying ccxt exchange instance."""
        return self._exchange

    async def connect(self) -> None:
        """Load markets up front. Failure is logged, not raised.

        ccxt loads markets lazily on the first fetch as well, so a feed that
        is down at startup just turns into per-tick feed errors.
        """
        logger.info("connecting_to_exchange", exchange=self._settings.exchange_id)
        try:
            markets = await asyncio.wait_for(
                self._exchange.load_markets(), timeout=self._settings.timeout_seconds
            )
        except (ccxt_async.BaseError, asyncio.TimeoutError) as e:
            logger.warning(
                "exchange_connect_failed",
                exchange=self._settings.exchange_id,
                error=str(e) or type(e).__name__,
            )
            return
        logger.info(
            "exchange_connected",
            exchange=self._settings.exchange_id,
            market_count=len(markets),
        )

    async def close(self) -> None:
        """Clean up ccxt async resources. Must be called to avoid session leaks."""
        await self._exchange.close()
        logger.info("exchange_connection_closed", exchange=self._settings.exchange_id)

    async def fetch_last_price(self, symbol: str) -> Decimal:
        """Fetch the ticker and return its last price as Decimal."""
        try:
            ticker = await asyncio.wait_for(
                self._exchange.fetch_ticker(symbol),
                timeout=self._settings.timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise PriceFeedError(
                f"fetch_ticker({symbol}) timed out after {self._settings.timeout_seconds}s"
            ) from e
        except ccxt_async.BaseError as e:
            raise PriceFeedError(f"fetch_ticker({symbol}) failed: {e}") from e

        last = ticker.get("last")
        if last is None:
            raise PriceFeedError(f"no last price in ticker for {symbol}")
        try:
            price = Decimal(str(last))
        except InvalidOperation as e:
            raise PriceFeedError(f"invalid last price {last!r} for {symbol}") from e
        if price <= 0:
            raise PriceFeedError(f"non-positive last price {price} for {symbol}")
        return price
