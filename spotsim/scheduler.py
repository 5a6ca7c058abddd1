from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Dict, List

from .engine import MatchingEngine
from .mock_feed import MockPriceGenerator
from .oracle import PriceOracle
from .utils import get_logger


class Scheduler:
    """Drives the sandbox with three periodic cycles on the running event loop.

    - price refresh: one mock step in mock mode, otherwise an oracle fetch
      followed by a matching tick when the reference price moved
    - matching: a tick whenever a reference price is known
    - mock: one step plus a tick, only in mock mode

    Every cycle can also be run once directly, which is what tests do.
    """

    def __init__(self, engine: MatchingEngine, oracle: PriceOracle, mock: MockPriceGenerator) -> None:
        self.engine = engine
        self.oracle = oracle
        self.mock = mock
        self.state = engine.state
        self.settings = engine.state.settings
        self.log = get_logger("scheduler")
        self.tasks: Dict[str, asyncio.Task] = {}

    async def run_price_refresh(self) -> None:
        if self.mock.enabled:
            self.mock.step()
            return
        before = self.state.reference_price
        await self.oracle.resolve_price()
        if self.mock.enabled:
            return
        if self.state.reference_price is not None and self.state.reference_price != before:
            self.engine.tick()

    async def run_matching(self) -> None:
        if self.state.reference_price is not None and self.state.reference_price > 0:
            self.engine.tick()

    async def run_mock_cycle(self) -> None:
        if self.mock.enabled:
            self.mock.step()
            self.engine.tick()

    async def _loop(self, name: str, interval: float, cycle: Callable[[], Awaitable[None]]) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                await cycle()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                self.log.error("scheduler_cycle_error", extra={"cycle": name, "error": repr(e)})

    def start(self) -> None:
        if self.tasks:
            return
        plan = (
            ("price_refresh", self.settings.price_refresh_interval, self.run_price_refresh),
            ("matching", self.settings.matching_interval, self.run_matching),
            ("mock", self.settings.mock_interval, self.run_mock_cycle),
        )
        for name, interval, cycle in plan:
            self.tasks[name] = asyncio.create_task(self._loop(name, interval, cycle), name=f"spotsim-{name}")
        self.log.info("scheduler_started", extra={name: interval for name, interval, _ in plan})

    async def stop(self) -> None:
        tasks: List[asyncio.Task] = list(self.tasks.values())
        self.tasks.clear()
        for t in tasks:
            t.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    @property
    def running(self) -> bool:
        return bool(self.tasks)
