from __future__ import annotations

import random
import time
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional

import httpx

from .config import Settings
from .engine import MatchingEngine
from .mock_feed import MockPriceGenerator
from .models import Order, OrderStatus, PricePoint, PriceResolution, PriceSource, Side, StatsView
from .oracle import PriceOracle
from .scheduler import Scheduler
from .state import MarketState
from .utils import setup_logging


class Sandbox:
    """One self-contained trading sandbox: state, price sources, engine and scheduler.

    This is the surface the HTTP layer talks to. Nothing in here is global,
    so tests build as many as they like.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        client: Optional[httpx.AsyncClient] = None,
        clock: Callable[[], float] = time.monotonic,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.settings = settings or Settings()
        setup_logging(self.settings.log_level)
        self.state = MarketState(self.settings)
        self.engine = MatchingEngine(self.state)
        self.oracle = PriceOracle(self.state, client=client, clock=clock)
        self.mock = MockPriceGenerator(self.state, rng=rng)
        self.scheduler = Scheduler(self.engine, self.oracle, self.mock)

    async def start(self) -> None:
        # Initial price before the periodic cycles take over
        await self.scheduler.run_price_refresh()
        self.scheduler.start()

    async def stop(self) -> None:
        await self.scheduler.stop()
        await self.oracle.aclose()

    # Reads
    def wallet(self) -> Dict[str, str]:
        return self.state.wallet.snapshot()

    async def current_price(self) -> PriceResolution:
        if self.mock.enabled:
            return PriceResolution(self.mock.current_price(), PriceSource.mock)
        return await self.oracle.resolve_price()

    def price_history(self) -> List[PricePoint]:
        return self.state.history.points()

    def orders(self) -> List[Order]:
        return self.state.book.all(newest_first=True)

    def order(self, order_id: str) -> Order:
        return self.state.book.get(order_id)

    def price_status(self) -> Dict[str, Any]:
        status = self.oracle.status()
        status["mock_enabled"] = self.mock.enabled
        ref = self.state.reference_price
        status["reference_price"] = None if ref is None else str(ref)
        return status

    def stats(self) -> StatsView:
        book = self.state.book
        ref = self.state.reference_price
        value: Optional[Decimal] = None
        if ref is not None:
            value = self.state.wallet.fiat + self.state.wallet.asset * ref
        return StatsView(
            total_orders=book.count(),
            pending_orders=book.count(OrderStatus.pending),
            filled_orders=book.count(OrderStatus.filled),
            cancelled_orders=book.count(OrderStatus.cancelled),
            portfolio_value=None if value is None else str(value),
            reference_price=None if ref is None else str(ref),
        )

    # Writes
    def submit_order(self, side: Side, price: Any, amount: Any) -> Order:
        return self.engine.submit_order(side, price, amount)

    def cancel_order(self, order_id: str) -> Order:
        return self.engine.cancel_order(order_id)

    def enable_mock(self) -> Decimal:
        return self.mock.enable()

    def tick(self) -> List[Order]:
        return self.engine.tick()
