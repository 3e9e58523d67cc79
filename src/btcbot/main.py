"""Entry point for the BTC lot trading bot.

Wires settings, logging, the SQLite ledger, the ccxt price feed and the
decision engine together, then runs the engine until SIGINT/SIGTERM.

Exit status:
    0  stopped by signal
    1  missing configuration or store failure
"""

import argparse
import asyncio
import signal
import sys

from btcbot.config import AppSettings, load_settings, validate_required
from btcbot.data.database import TradingDatabase
from btcbot.data.store import TradingStore
from btcbot.engine import TradingEngine
from btcbot.exceptions import ConfigurationError, StoreError
from btcbot.exchange.ccxt_client import CcxtPriceFeed
from btcbot.exchange.client import PriceFeed
from btcbot.logging import get_logger, setup_logging


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="btcbot",
        description="Watch one market and simulate lot sells and buy-threshold ratchets.",
    )
    ap.add_argument(
        "-p", "--prefix", default="", help="A prefix for the environment variables."
    )
    ap.add_argument(
        "-d", "--database", help="SQLite file to store progress in. Env: {prefix}DATABASE"
    )
    ap.add_argument("-k", "--key", help="Exchange API key. Env: {prefix}EXCHANGE_API_KEY")
    ap.add_argument(
        "-s", "--secret", help="Exchange API secret. Env: {prefix}EXCHANGE_API_SECRET"
    )
    ap.add_argument("--exchange", help="ccxt exchange id. Env: {prefix}EXCHANGE_EXCHANGE_ID")
    ap.add_argument("--symbol", help="Market symbol. Env: {prefix}EXCHANGE_SYMBOL")
    ap.add_argument(
        "--interval", type=float, help="Seconds between ticks. Env: {prefix}ENGINE_TICK_INTERVAL"
    )
    ap.add_argument("--log-level", help="Env: {prefix}LOG_LEVEL")
    return ap


def settings_from_args(args: argparse.Namespace) -> AppSettings:
    """Resolve settings with flag > environment > default precedence."""
    return load_settings(
        prefix=args.prefix,
        store={"database": args.database},
        exchange={
            "api_key": args.key,
            "api_secret": args.secret,
            "exchange_id": args.exchange,
            "symbol": args.symbol,
        },
        engine={"tick_interval": args.interval},
        log_level=args.log_level,
    )


def _setup_signal_handlers(engine: TradingEngine) -> None:
    """SIGINT/SIGTERM request a stop at the top of the next tick."""
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, engine.stop)


async def run(settings: AppSettings, feed: PriceFeed | None = None) -> int:
    """Run the bot until stopped. Returns the process exit status."""
    logger = get_logger("btcbot.main")

    try:
        validate_required(settings)
        feed = feed or CcxtPriceFeed(settings.exchange)
    except ConfigurationError as e:
        logger.error("configuration_error", error=str(e))
        return 1

    try:
        async with TradingDatabase(settings.store.database) as database:
            store = TradingStore(database)
            config = await store.get_config()
            logger.info(
                "trading_config_loaded",
                usdbalance=config.cash_balance,
                buyrate=config.buy_threshold,
                amount=config.lot_margin,
                stagnantwait=config.stagnant_window,
            )

            engine = TradingEngine(
                store=store,
                feed=feed,
                symbol=settings.exchange.symbol,
                settings=settings.engine,
            )
            _setup_signal_handlers(engine)

            await feed.connect()
            await engine.run()
    except StoreError as e:
        logger.critical("fatal_store_error", error=str(e))
        return 1
    finally:
        await feed.close()

    logger.info("btcbot_stopped")
    return 0


def main(argv: list[str] | None = None) -> None:
    """Synchronous entry point."""
    args = build_parser().parse_args(argv)
    settings = settings_from_args(args)
    setup_logging(settings.log_level, settings.log_format)
    sys.exit(asyncio.run(run(settings)))


if __name__ == "__main__":
    main()
