from __future__ import annotations

from collections import deque
from datetime import datetime
from decimal import Decimal
from typing import Deque, List, Optional

from .config import Settings
from .models import PricePoint
from .orderbook import OrderBook
from .utils import utcnow
from .wallet import Wallet


class PriceHistory:
    """Chronological ring buffer of observed prices; oldest points drop off first."""

    def __init__(self, capacity: int = 100) -> None:
        self.capacity = capacity
        self._points: Deque[PricePoint] = deque(maxlen=capacity)

    def append(self, point: PricePoint) -> None:
        self._points.append(point)

    def latest(self) -> Optional[PricePoint]:
        return self._points[-1] if self._points else None

    def points(self) -> List[PricePoint]:
        return list(self._points)

    def __len__(self) -> int:
        return len(self._points)


class MarketState:
    """Everything one sandbox owns: wallet, orders, reference price and history.

    Price sources write the reference price through ``record_price``; the
    matching engine is the only writer of wallet balances and order fills.
    """

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self.settings = settings or Settings()
        self.wallet = Wallet(self.settings.initial_fiat, self.settings.initial_asset)
        self.book = OrderBook()
        self.history = PriceHistory(self.settings.history_capacity)
        self.reference_price: Optional[Decimal] = None
        self.mock_enabled = False

    def record_price(self, price: Decimal, at: Optional[datetime] = None) -> PricePoint:
        point = PricePoint(price=price, timestamp=at or utcnow())
        self.reference_price = price
        self.history.append(point)
        return point
