"""Trading decision engine -- the fixed-cadence polling loop.

Each tick:
  1. FETCH: last traded price from the price feed (failure skips the tick)
  2. LOAD: the config row, fresh from the store
  3. SELL: find the cheapest lot at or below price - lot_margin
  4. BUY: ratchet the buy threshold down when price <= threshold - lot_margin
  5. SLEEP: a fixed interval, not compensated for the tick's own duration

Feed failures are logged and the loop carries on. A StoreError is logged
and re-raised out of run(), ending the process: every decision depends on
the ledger being truthful.

Sales and buys are report-only unless EngineSettings.settle_sales /
record_buys are set; the lowered buy threshold is always persisted.
"""

import asyncio
from collections.abc import Awaitable, Callable
from decimal import Decimal

from btcbot.config import EngineSettings
from btcbot.data.store import TradingStore
from btcbot.exceptions import PriceFeedError, StoreError
from btcbot.exchange.client import PriceFeed
from btcbot.fixed_point import fee_for, format_scaled, to_scaled
from btcbot.logging import get_logger
from btcbot.models import BuyDecision, Lot, SellDecision, TickResult, TradingConfig

logger = get_logger(__name__)

SleepFn = Callable[[float], Awaitable[None]]


def sell_threshold(price: int, config: TradingConfig) -> int:
    """Highest lot rate that is worth selling at `price`."""
    return price - config.lot_margin


def evaluate_sell(
    price: int,
    candidate: Lot | None,
    fee_rate: Decimal,
) -> SellDecision | None:
    """Price a sale of `candidate` at `price`.

    profit is per unit (price - rate - fee on price). proceeds is what the
    lot returns in cash: its amount grown by price / rate, less the fee on
    that value.
    """
    if candidate is None:
        return None
    fee = fee_for(price, fee_rate)
    value = candidate.amount * price // candidate.rate if candidate.rate > 0 else candidate.amount
    return SellDecision(
        lot=candidate,
        price=price,
        fee=fee,
        profit=price - candidate.rate - fee,
        proceeds=value - fee_for(value, fee_rate),
    )


def evaluate_buy(price: int, config: TradingConfig) -> BuyDecision | None:
    """Trigger a buy when price is at or below buy_threshold - lot_margin."""
    if price <= config.buy_threshold - config.lot_margin:
        return BuyDecision(price=price, previous_threshold=config.buy_threshold)
    return None


class TradingEngine:
    """Polls one market and applies the sell-match / buy-threshold rules.

    Args:
        store: Ledger and config persistence.
        feed: Last-price source.
        symbol: Market to track (e.g. "BTC/USD").
        settings: Tick interval, fee rate and mutation switches.
        sleep: Coroutine awaited between ticks. Defaults to waiting on the
            stop event with the tick interval as timeout, so stop() cuts
            the sleep short.
    """

    def __init__(
        self,
        store: TradingStore,
        feed: PriceFeed,
        symbol: str,
        settings: EngineSettings,
        sleep: SleepFn | None = None,
    ) -> None:
        self._store = store
        self._feed = feed
        self._symbol = symbol
        self._settings = settings
        self._sleep = sleep or self._wait_for_stop
        self._stop_event = asyncio.Event()

    @property
    def stopping(self) -> bool:
        return self._stop_event.is_set()

    def stop(self) -> None:
        """Request the loop to end before its next tick."""
        logger.info("engine_stop_requested")
        self._stop_event.set()

    async def _wait_for_stop(self, seconds: float) -> None:
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass

    async def run(self, max_ticks: int | None = None) -> int:
        """Run ticks until stop() is called (or max_ticks is reached).

        Returns:
            Number of ticks executed.

        Raises:
            StoreError: on any store failure; the loop does not continue.
        """
        logger.info(
            "engine_starting",
            symbol=self._symbol,
            tick_interval=self._settings.tick_interval,
            settle_sales=self._settings.settle_sales,
            record_buys=self._settings.record_buys,
        )
        ticks = 0
        while not self._stop_event.is_set():
            try:
                await self.tick()
            except StoreError:
                logger.critical("store_failure", ticks=ticks, exc_info=True)
                raise
            ticks += 1
            if max_ticks is not None and ticks >= max_ticks:
                break
            await self._sleep(self._settings.tick_interval)
        logger.info("engine_stopped", ticks=ticks)
        return ticks

    async def tick(self) -> TickResult:
        """Evaluate one tick. Feed errors are absorbed, store errors raised."""
        try:
            raw_price = await self._feed.fetch_last_price(self._symbol)
        except PriceFeedError as e:
            logger.warning("price_feed_error", symbol=self._symbol, error=str(e))
            return TickResult(error=str(e))
        except Exception as e:
            logger.warning("price_feed_error", symbol=self._symbol, exc_info=True)
            return TickResult(error=str(e) or type(e).__name__)

        price = to_scaled(raw_price)
        logger.info("price_fetched", symbol=self._symbol, price=format_scaled(price))
        result = TickResult(price=price)

        config = await self._store.get_config()
        config = await self._evaluate_sell(price, config, result)
        await self._evaluate_buy(price, config, result)
        return result

    async def _evaluate_sell(
        self, price: int, config: TradingConfig, result: TickResult
    ) -> TradingConfig:
        threshold = sell_threshold(price, config)
        candidate = await self._store.find_sell_candidate(threshold)
        decision = evaluate_sell(price, candidate, self._settings.fee_rate)
        if decision is None:
            return config

        result.sell = decision
        logger.info(
            "sell_candidate",
            lot_id=decision.lot.id,
            lot_amount=decision.lot.amount,
            lot_rate=decision.lot.rate,
            price=format_scaled(price),
            profit=decision.profit,
            profit_usd=format_scaled(decision.profit),
        )
        if not self._settings.settle_sales:
            return config

        config = await self._store.settle_sale(config, decision)
        result.settled = True
        logger.info(
            "sale_settled",
            lot_id=decision.lot.id,
            proceeds=format_scaled(decision.proceeds),
            cash_balance=format_scaled(config.cash_balance),
        )
        return config

    async def _evaluate_buy(
        self, price: int, config: TradingConfig, result: TickResult
    ) -> TradingConfig:
        decision = evaluate_buy(price, config)
        if decision is None:
            return config

        result.buy = decision
        logger.info(
            "buy_triggered",
            price=format_scaled(price),
            previous_threshold=format_scaled(decision.previous_threshold),
        )
        if self._settings.record_buys:
            if config.cash_balance >= config.lot_margin:
                config, lot = await self._store.record_buy(config, price)
                result.lot_recorded = True
                logger.info(
                    "lot_recorded",
                    lot_id=lot.id,
                    rate=format_scaled(lot.rate),
                    cash_balance=format_scaled(config.cash_balance),
                )
                return config
            logger.warning(
                "buy_skipped_insufficient_balance",
                cash_balance=format_scaled(config.cash_balance),
                lot_margin=format_scaled(config.lot_margin),
            )
        return await self._store.save_buy_threshold(config, price)
