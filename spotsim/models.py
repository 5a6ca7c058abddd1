from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict

from .utils import iso, utcnow


class Side(str, Enum):
    buy = "buy"
    sell = "sell"


class OrderStatus(str, Enum):
    pending = "pending"
    filled = "filled"
    cancelled = "cancelled"


class PriceSource(str, Enum):
    """Which branch of the oracle's decision produced a price."""

    fetched = "fetched"
    cached = "cached"
    throttled = "throttled"
    stale_fallback = "stale_fallback"
    default = "default"
    mock = "mock"


@dataclass(frozen=True)
class PricePoint:
    price: Decimal
    timestamp: datetime = field(default_factory=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {"price": str(self.price), "timestamp": iso(self.timestamp)}


@dataclass(frozen=True)
class PriceResolution:
    price: Decimal
    source: PriceSource
    # set when the upstream call failed during this resolution
    error: Optional[str] = None

    @property
    def cached(self) -> bool:
        return self.source is not PriceSource.fetched and self.source is not PriceSource.mock


@dataclass
class Order:
    order_id: str
    side: Side
    limit_price: Decimal
    amount: Decimal
    seq: int
    status: OrderStatus = OrderStatus.pending
    created_at: datetime = field(default_factory=utcnow)
    filled_at: Optional[datetime] = None
    filled_price: Optional[Decimal] = None

    def is_pending(self) -> bool:
        return self.status == OrderStatus.pending

    @property
    def notional(self) -> Decimal:
        return self.limit_price * self.amount

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.order_id,
            "side": self.side.value,
            "amount": str(self.amount),
            "price": str(self.limit_price),
            "status": self.status.value,
            "created_at": iso(self.created_at),
            "filled_at": iso(self.filled_at),
            "filled_price": None if self.filled_price is None else str(self.filled_price),
        }


class OrderRequest(BaseModel):
    model_config = ConfigDict(json_schema_extra={"example": {
        "amount": "0.5",
        "price": "3450",
    }})
    # Kept loose so that missing or non-positive values surface as InvalidInput
    amount: Optional[Any] = None
    price: Optional[Any] = None


class WalletView(BaseModel):
    fiat: str
    asset: str


class StatsView(BaseModel):
    total_orders: int
    pending_orders: int
    filled_orders: int
    cancelled_orders: int
    portfolio_value: Optional[str] = None
    reference_price: Optional[str] = None
