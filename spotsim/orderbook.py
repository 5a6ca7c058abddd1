from __future__ import annotations

import itertools
from decimal import Decimal
from typing import Dict, Iterator, List, Optional

from sortedcontainers import SortedKeyList

from .errors import InvalidState, NotFound
from .models import Order, OrderStatus, Side
from .utils import next_id, utcnow


class OrderBook:
    """Append-only order store. Orders are never removed, only transitioned."""

    def __init__(self) -> None:
        # dict preserves insertion order, which is the matching order
        self._orders: Dict[str, Order] = {}
        self._by_created: SortedKeyList = SortedKeyList(key=lambda o: (o.created_at, o.seq))
        self._seq = itertools.count(1)

    # Basic operations
    def create(self, side: Side, limit_price: Decimal, amount: Decimal) -> Order:
        order = Order(
            order_id=next_id("ord"),
            side=side,
            limit_price=limit_price,
            amount=amount,
            seq=next(self._seq),
            created_at=utcnow(),
        )
        self._orders[order.order_id] = order
        self._by_created.add(order)
        return order

    def get(self, order_id: str) -> Order:
        order = self._orders.get(order_id)
        if order is None:
            raise NotFound("Order not found")
        return order

    def cancel(self, order_id: str) -> Order:
        order = self.get(order_id)
        if not order.is_pending():
            raise InvalidState("Order cannot be cancelled")
        order.status = OrderStatus.cancelled
        return order

    def pending(self) -> Iterator[Order]:
        """Pending orders in submission order (snapshot, safe to mutate while iterating)."""
        return iter([o for o in self._orders.values() if o.is_pending()])

    def all(self, newest_first: bool = True) -> List[Order]:
        if newest_first:
            return list(reversed(self._by_created))
        return list(self._by_created)

    def count(self, status: Optional[OrderStatus] = None) -> int:
        if status is None:
            return len(self._orders)
        return sum(1 for o in self._orders.values() if o.status == status)

    def __len__(self) -> int:
        return len(self._orders)

    def __contains__(self, order_id: object) -> bool:
        return order_id in self._orders
