"""
cca/tickbook.py - Price-level book for the clearing auction.

Bids are aggregated into ticks: discrete prices at the floor price plus a
whole number of tick spacings. Initialized ticks form a singly linked chain
in strictly increasing price order, starting at the floor tick and ending
at the MAX_TICK_PTR sentinel.

Ticks live in an arena (a list) with a price -> id index, so following a
forward pointer is a dictionary lookup. A sorted price list is kept beside
it for off-chain hint lookups; the on-chain style insert still walks the
chain from a caller supplied hint.
"""

import logging
from bisect import bisect_left, insort
from dataclasses import dataclass, field
from typing import Iterator

from cca.errors import (
    TickNotInitializedError,
    TickPreviousPriceInvalidError,
    TickPriceNotAtBoundaryError,
)
from cca.fixed_point import MAX_TICK_PTR, ZERO_DEMAND, Demand

logger = logging.getLogger(__name__)


@dataclass
class Tick:
    """
    A single price level.

    Attributes:
        price: Q96 price of the level
        next_price: Price of the next initialized tick (MAX_TICK_PTR if none)
        demand: Aggregate demand of the bids whose max price is this price
    """

    price: int
    next_price: int = MAX_TICK_PTR
    demand: Demand = field(default_factory=lambda: ZERO_DEMAND)


class TickBook:
    """
    Ordered set of ticks above the floor price.

    Attributes:
        floor_price: Lowest price of the book (always initialized)
        tick_spacing: Distance between adjacent valid prices
        next_active_price: Lowest tick whose demand has not been absorbed into
            the clearing price (MAX_TICK_PTR when no such tick exists)
    """

    def __init__(self, floor_price: int, tick_spacing: int) -> None:
        self.floor_price = floor_price
        self.tick_spacing = tick_spacing
        self.next_active_price = MAX_TICK_PTR

        self._ticks: list[Tick] = []
        self._ids: dict[int, int] = {}
        self._prices: list[int] = []

        # The floor tick heads the chain and needs no hint
        self._store(Tick(price=floor_price))

    def __len__(self) -> int:
        return len(self._ticks)

    def __contains__(self, price: int) -> bool:
        return price in self._ids

    def __iter__(self) -> Iterator[Tick]:
        """Walk the forward-pointer chain from the floor tick."""
        price = self.floor_price
        while price != MAX_TICK_PTR:
            tick = self.get_tick(price)
            yield tick
            price = tick.next_price

    def get_tick(self, price: int) -> Tick:
        """
        Return the initialized tick at `price`.

        Raises:
            TickNotInitializedError: If no tick exists at that price
        """
        tick_id = self._ids.get(price)
        if tick_id is None:
            raise TickNotInitializedError(price)
        return self._ticks[tick_id]

    def demand_at(self, price: int) -> Demand:
        """Demand at `price`, zero when the tick does not exist."""
        tick_id = self._ids.get(price)
        if tick_id is None:
            return ZERO_DEMAND
        return self._ticks[tick_id].demand

    def is_valid_price(self, price: int) -> bool:
        """True if `price` sits on the tick grid above the floor."""
        return (
            self.floor_price < price < MAX_TICK_PTR
            and (price - self.floor_price) % self.tick_spacing == 0
        )

    def validate_insert(self, prev_price: int, price: int) -> None:
        """
        Check that `price` could be initialized from hint `prev_price`.

        An already initialized `price` needs no hint.

        Raises:
            TickPriceNotAtBoundaryError: If `price` is off the tick grid
            TickPreviousPriceInvalidError: If the hint is not an initialized
                tick strictly below `price`
        """
        if not self.is_valid_price(price):
            raise TickPriceNotAtBoundaryError(price, self.floor_price, self.tick_spacing)
        if price in self._ids:
            return
        if prev_price >= price or prev_price not in self._ids:
            raise TickPreviousPriceInvalidError(prev_price, price)

    def get_or_init_tick(self, prev_price: int, price: int) -> Tick:
        """
        Return the tick at `price`, initializing it if absent.

        The walk starts at the hint and follows forward pointers until the
        insertion point, so a hint just below `price` makes this O(1).

        Args:
            prev_price: An initialized tick price below `price`
            price: Tick price to find or create

        Returns:
            The tick at `price`
        """
        self.validate_insert(prev_price, price)
        if price in self._ids:
            return self.get_tick(price)

        prev = self.get_tick(prev_price)
        while prev.next_price < price:
            prev = self.get_tick(prev.next_price)

        tick = Tick(price=price, next_price=prev.next_price)
        prev.next_price = price
        self._store(tick)

        if price < self.next_active_price:
            self.next_active_price = price

        logger.debug(f"Initialized tick {price} after {prev.price}")
        return tick

    def add_demand(self, price: int, demand: Demand) -> Tick:
        """
        Add bid demand to an initialized tick.

        Raises:
            TickNotInitializedError: If the tick has not been initialized
        """
        tick = self.get_tick(price)
        tick.demand = tick.demand + demand
        return tick

    def hint_for(self, price: int) -> int:
        """
        Highest initialized price strictly below `price`.

        This is the hint a caller should pass to get_or_init_tick.
        """
        i = bisect_left(self._prices, price)
        if i == 0:
            return self.floor_price
        return self._prices[i - 1]

    def _store(self, tick: Tick) -> None:
        self._ids[tick.price] = len(self._ticks)
        self._ticks.append(tick)
        insort(self._prices, tick.price)
