from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation, getcontext, ROUND_HALF_UP
import itertools
import logging
import os
from typing import Any, Dict, Optional

# Decimal configuration for financial calculations
getcontext().prec = 28
getcontext().rounding = ROUND_HALF_UP

_DECIMAL_QUANT = Decimal("0.00000001")

_id_counter = itertools.count(1)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def iso(ts: Optional[datetime]) -> Optional[str]:
    """Render a UTC datetime as ISO8601 with Z suffix."""
    if ts is None:
        return None
    return ts.isoformat().replace("+00:00", "Z")


def now_ts() -> str:
    """Return a UTC ISO8601 timestamp with Z suffix."""
    return iso(utcnow())


def as_decimal(value: Any) -> Optional[Decimal]:
    """Coerce user or upstream input to Decimal; None when it is not a number."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None


def quantize_8(d: Decimal) -> Decimal:
    return d.quantize(_DECIMAL_QUANT)


def next_id(prefix: str = "ord") -> str:
    return f"{prefix}_{next(_id_counter)}"


class _DefaultExtraFilter(logging.Filter):
    # third-party loggers (httpx, uvicorn) do not go through StructuredAdapter
    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "extra"):
            record.extra = {}
        return True


def setup_logging(level: Optional[str] = None) -> None:
    level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format=(
            "%(asctime)sZ %(levelname)s %(name)s "
            "event=%(message)s extra=%(extra)s"
        ),
        datefmt="%Y-%m-%dT%H:%M:%S",
    )
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, _DefaultExtraFilter) for f in handler.filters):
            handler.addFilter(_DefaultExtraFilter())


class StructuredAdapter(logging.LoggerAdapter):
    def process(self, msg: str, kwargs: Dict[str, Any]):
        extra = kwargs.get("extra", {})
        kwargs["extra"] = {"extra": extra}
        return msg, kwargs


def get_logger(name: str) -> StructuredAdapter:
    return StructuredAdapter(logging.getLogger(name), {})
