from __future__ import annotations

import os
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

ENV_PREFIX = "SPOTSIM_"


class Settings(BaseModel):
    """Runtime configuration. Defaults reproduce the reference sandbox."""

    # Wallet seed
    initial_fiat: Decimal = Decimal("10000")
    initial_asset: Decimal = Decimal("5000")
    default_price: Decimal = Decimal("3500")

    # Order limits
    max_price: Decimal = Decimal("10000000")
    max_quantity: Decimal = Decimal("1000000")

    # Upstream oracle
    upstream_url: str = "https://api.coingecko.com/api/v3/simple/price"
    asset_id: str = "ethereum"
    fiat_code: str = "usd"
    user_agent: str = "CryptoTradingBot/1.0"
    cache_duration: float = Field(10.0, gt=0)
    min_request_interval: float = Field(15.0, gt=0)
    request_timeout: float = Field(10.0, gt=0)
    history_capacity: int = Field(100, gt=0)

    # Mock feed
    mock_base_price: Decimal = Decimal("3500")
    mock_step: Decimal = Decimal("10")
    mock_floor: Decimal = Decimal("3000")
    mock_ceiling: Decimal = Decimal("4500")

    # Scheduler intervals (seconds)
    price_refresh_interval: float = Field(20.0, gt=0)
    matching_interval: float = Field(5.0, gt=0)
    mock_interval: float = Field(3.0, gt=0)

    # HTTP
    host: str = "0.0.0.0"
    port: int = 3001
    cors_origins: List[str] = ["*"]
    log_level: str = "INFO"

    @field_validator("initial_fiat", "initial_asset")
    @classmethod
    def _non_negative(cls, v: Decimal) -> Decimal:
        if v < 0:
            raise ValueError("seed balance must be non-negative")
        return v

    @field_validator("default_price", "mock_base_price", "mock_step", "max_price", "max_quantity")
    @classmethod
    def _positive(cls, v: Decimal) -> Decimal:
        if v <= 0:
            raise ValueError("must be positive")
        return v

    @model_validator(mode="after")
    def _check_mock_range(self) -> "Settings":
        if not (0 < self.mock_floor <= self.mock_ceiling):
            raise ValueError("mock_floor must be positive and not above mock_ceiling")
        return self

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None, **overrides: Any) -> "Settings":
        """Build settings from SPOTSIM_* variables (LOG_LEVEL is read unprefixed)."""
        env = os.environ if environ is None else environ
        values: Dict[str, Any] = {}
        for name in cls.model_fields:
            raw = env.get(ENV_PREFIX + name.upper())
            if raw is None:
                continue
            if name == "cors_origins":
                values[name] = [o.strip() for o in raw.split(",") if o.strip()]
            else:
                values[name] = raw
        if "log_level" not in values and env.get("LOG_LEVEL"):
            values["log_level"] = env["LOG_LEVEL"]
        values.update(overrides)
        return cls(**values)
