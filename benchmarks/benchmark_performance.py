import random
import time
from decimal import Decimal

from spotsim.config import Settings
from spotsim.engine import MatchingEngine
from spotsim.models import Side
from spotsim.state import MarketState


def run_benchmark(n_orders: int = 10000, ticks: int = 100) -> None:
    state = MarketState(Settings(initial_fiat=Decimal("1e12"), initial_asset=Decimal("1e9")))
    eng = MatchingEngine(state)

    # Resting orders far from the price so they stay pending
    for i in range(n_orders):
        if i % 2 == 0:
            eng.submit_order(Side.buy, Decimal("1000") + Decimal(random.randint(0, 500)), Decimal("0.01"))
        else:
            eng.submit_order(Side.sell, Decimal("9000") + Decimal(random.randint(0, 500)), Decimal("0.01"))
    state.record_price(Decimal("3500"))

    t0 = time.perf_counter()
    for _ in range(ticks):
        eng.tick()
    dt = time.perf_counter() - t0
    print(f"{ticks} ticks over {n_orders} pending orders in {dt:.3f}s -> {ticks * n_orders / dt:.1f} evaluations/sec")


if __name__ == "__main__":
    run_benchmark()
