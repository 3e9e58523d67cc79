"""Abstract price feed interface.

The engine depends only on this contract: fetch the current last-traded
price for a market, or raise PriceFeedError.
"""

from abc import ABC, abstractmethod
from decimal import Decimal


class PriceFeed(ABC):
    """Abstract base class for last-price sources."""

    @abstractmethod
    async def connect(self) -> None:
        """Initialize the connection (load markets, warm up sessions)."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release network resources."""
        ...

    @abstractmethod
    async def fetch_last_price(self, symbol: str) -> Decimal:
        """Return the last traded price for `symbol`.

        Raises:
            PriceFeedError: on any network, authentication, rate-limit or
                timeout failure, or when the exchange reports no last price.
        """
        ...
