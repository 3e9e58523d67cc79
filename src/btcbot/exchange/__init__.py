"""Price feed layer -- last-traded price via ccxt."""

from btcbot.exchange.ccxt_client import CcxtPriceFeed
from btcbot.exchange.client import PriceFeed

__all__ = ["CcxtPriceFeed", "PriceFeed"]
