from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, List, Optional, Tuple

from .errors import InsufficientFunds, InvalidInput
from .models import Order, OrderStatus, Side
from .state import MarketState
from .utils import as_decimal, get_logger, utcnow


class MatchingEngine:
    """Fills pending limit orders against the reference price of a MarketState.

    An order whose price condition holds but whose balance does not cover it
    stays pending and is retried on every tick. Balances are checked once at
    submission and again at fill time; nothing is reserved in between.
    """

    def __init__(self, state: MarketState) -> None:
        self.state = state
        self.log = get_logger("engine")

    def _validate(self, price: Any, amount: Any) -> Tuple[Decimal, Decimal]:
        settings = self.state.settings
        p = as_decimal(price)
        a = as_decimal(amount)
        if p is None or a is None or not p.is_finite() or not a.is_finite() or p <= 0 or a <= 0:
            raise InvalidInput("Invalid amount or price")
        # bounded so that price * amount always fits the decimal context
        if p > settings.max_price or a > settings.max_quantity:
            raise InvalidInput("Invalid amount or price")
        return p, a

    def submit_order(self, side: Side, price: Any, amount: Any) -> Order:
        try:
            limit_price, qty = self._validate(price, amount)
        except InvalidInput:
            self.log.info("order_rejected", extra={"side": side.value, "reason": "invalid_input"})
            raise

        wallet = self.state.wallet
        if side == Side.buy and not wallet.can_cover_buy(limit_price * qty):
            self.log.info("order_rejected", extra={"side": side.value, "reason": "insufficient_fiat"})
            raise InsufficientFunds("Insufficient fiat balance")
        if side == Side.sell and not wallet.can_cover_sell(qty):
            self.log.info("order_rejected", extra={"side": side.value, "reason": "insufficient_asset"})
            raise InsufficientFunds("Insufficient asset balance")

        order = self.state.book.create(side, limit_price, qty)
        self.log.info(
            "order_accepted",
            extra={"order_id": order.order_id, "side": side.value, "price": str(limit_price), "amount": str(qty)},
        )
        return order

    def cancel_order(self, order_id: str) -> Order:
        order = self.state.book.cancel(order_id)
        self.log.info("order_cancelled", extra={"order_id": order_id})
        return order

    def tick(self, now: Optional[datetime] = None) -> List[Order]:
        """Evaluate every pending order once. Returns the orders filled."""
        price = self.state.reference_price
        if price is None or price <= 0:
            return []
        now = now or utcnow()
        filled: List[Order] = []
        for order in self.state.book.pending():
            if self._try_fill(order, price, now):
                filled.append(order)
        return filled

    def _try_fill(self, order: Order, price: Decimal, now: datetime) -> bool:
        wallet = self.state.wallet
        notional = order.notional
        if order.side == Side.buy:
            if price > order.limit_price:
                return False
            if not wallet.can_cover_buy(notional):
                self.log.debug("order_starved", extra={"order_id": order.order_id, "need": str(notional)})
                return False
            wallet.settle_buy(notional, order.amount)
        else:
            if price < order.limit_price:
                return False
            if not wallet.can_cover_sell(order.amount):
                self.log.debug("order_starved", extra={"order_id": order.order_id, "need": str(order.amount)})
                return False
            wallet.settle_sell(notional, order.amount)

        order.status = OrderStatus.filled
        order.filled_price = price
        order.filled_at = now
        self.log.info(
            "order_filled",
            extra={
                "order_id": order.order_id,
                "side": order.side.value,
                "amount": str(order.amount),
                "limit": str(order.limit_price),
                "filled_price": str(price),
            },
        )
        return True
