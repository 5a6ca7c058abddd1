from __future__ import annotations

import random
from decimal import Decimal
from typing import Optional

from .errors import InvalidState
from .models import PricePoint
from .state import MarketState
from .utils import get_logger, quantize_8


class MockPriceGenerator:
    """Bounded random walk used in place of the oracle once enabled.

    Each step moves the base price by a uniform amount in
    [-mock_step, +mock_step] and clamps it into [mock_floor, mock_ceiling].
    """

    def __init__(self, state: MarketState, rng: Optional[random.Random] = None) -> None:
        self.state = state
        self.settings = state.settings
        self.rng = rng or random.Random()
        self.base_price: Decimal = self.settings.mock_base_price
        self.log = get_logger("mock_feed")

    @property
    def enabled(self) -> bool:
        return self.state.mock_enabled

    def enable(self) -> Decimal:
        """Switch the sandbox to mock prices (there is no way back). Returns the current price."""
        if not self.state.mock_enabled:
            self.state.mock_enabled = True
            self.log.info("mock_enabled", extra={"base_price": str(self.base_price)})
        return self.current_price()

    def current_price(self) -> Decimal:
        latest = self.state.history.latest()
        if latest is not None:
            return latest.price
        if self.state.reference_price is not None:
            return self.state.reference_price
        return self.base_price

    def step(self) -> PricePoint:
        """Advance the walk one step. Only valid once mock mode is enabled."""
        if not self.state.mock_enabled:
            raise InvalidState("mock price simulation is not enabled")
        step = float(self.settings.mock_step)
        change = quantize_8(Decimal(str(self.rng.uniform(-step, step))))
        price = self.base_price + change
        if price < self.settings.mock_floor:
            price = self.settings.mock_floor
        if price > self.settings.mock_ceiling:
            price = self.settings.mock_ceiling
        self.base_price = price
        point = self.state.record_price(price)
        self.log.debug("mock_price", extra={"price": str(price)})
        return point
