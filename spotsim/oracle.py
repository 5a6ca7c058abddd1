from __future__ import annotations

import asyncio
import time
from decimal import Decimal
from typing import Any, Callable, Dict, Optional

import httpx

from .errors import UpstreamUnavailable
from .models import PriceResolution, PriceSource
from .state import MarketState
from .utils import as_decimal, get_logger


class PriceOracle:
    """Best-effort spot price from one upstream source, paced and cached.

    Two windows guard the upstream: within ``cache_duration`` of the last
    successful fetch the cached price is served; past it but still within
    ``min_request_interval`` no request is made either. Failures never reach
    the caller, who always gets a usable price back.
    """

    def __init__(
        self,
        state: MarketState,
        client: Optional[httpx.AsyncClient] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.state = state
        self.settings = state.settings
        self.clock = clock
        self.log = get_logger("oracle")
        self._client = client
        self._owns_client = client is None
        self._fetch_lock = asyncio.Lock()
        self.cached_price: Optional[Decimal] = None
        self.last_fetch: Optional[float] = None
        self.last_error: Optional[str] = None
        self.fetch_count = 0
        self.failure_count = 0

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.settings.request_timeout,
                headers={"Accept": "application/json", "User-Agent": self.settings.user_agent},
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def get_current_price(self) -> Decimal:
        return (await self.resolve_price()).price

    def _age(self) -> Optional[float]:
        if self.last_fetch is None:
            return None
        return self.clock() - self.last_fetch

    def _guarded(self) -> Optional[PriceResolution]:
        """Resolve without network when a window still applies."""
        age = self._age()
        if age is None:
            return None
        if self.cached_price is not None and age < self.settings.cache_duration:
            self.log.debug("price_cache_hit", extra={"age": round(age, 3)})
            return PriceResolution(self.cached_price, PriceSource.cached)
        if age < self.settings.min_request_interval:
            self.log.info("price_throttled", extra={"age": round(age, 3)})
            if self.cached_price is not None:
                return PriceResolution(self.cached_price, PriceSource.throttled)
            return self.fallback()
        return None

    async def resolve_price(self) -> PriceResolution:
        hit = self._guarded()
        if hit is not None:
            return hit
        async with self._fetch_lock:
            # another caller may have fetched while we waited
            hit = self._guarded()
            if hit is not None:
                return hit
            try:
                price = await self.fetch()
            except UpstreamUnavailable as exc:
                self.failure_count += 1
                self.last_error = exc.kind
                if exc.rate_limited:
                    self.log.warning("upstream_rate_limited", extra={"status": exc.status_code})
                else:
                    self.log.warning("price_fetch_failed", extra={"error": exc.message, "status": exc.status_code})
                return self.fallback(error=exc.kind)
            self._apply(price)
            return PriceResolution(price, PriceSource.fetched)

    def fallback(self, error: Optional[str] = None) -> PriceResolution:
        if self.cached_price is not None:
            return PriceResolution(self.cached_price, PriceSource.stale_fallback, error)
        if self.state.reference_price is not None:
            return PriceResolution(self.state.reference_price, PriceSource.stale_fallback, error)
        return PriceResolution(self.settings.default_price, PriceSource.default, error)

    def _apply(self, price: Decimal) -> None:
        self.cached_price = price
        self.last_fetch = self.clock()
        self.last_error = None
        self.fetch_count += 1
        if self.state.mock_enabled:
            # mock mode was switched on while the request was in flight
            self.log.info("price_discarded", extra={"price": str(price), "reason": "mock_enabled"})
            return
        self.state.record_price(price)
        self.log.info("price_fetched", extra={"price": str(price)})

    async def fetch(self) -> Decimal:
        """One upstream request. Raises UpstreamUnavailable on any failure."""
        params = {"ids": self.settings.asset_id, "vs_currencies": self.settings.fiat_code}
        try:
            resp = await self.client.get(
                self.settings.upstream_url,
                params=params,
                timeout=self.settings.request_timeout,
            )
            resp.raise_for_status()
            payload = resp.json()
        except httpx.HTTPStatusError as exc:
            raise UpstreamUnavailable(
                f"upstream returned {exc.response.status_code}", exc.response.status_code
            ) from exc
        except httpx.HTTPError as exc:
            raise UpstreamUnavailable(f"{type(exc).__name__}: {exc}") from exc
        except ValueError as exc:
            raise UpstreamUnavailable("upstream returned invalid JSON") from exc
        return self._parse(payload)

    def _parse(self, payload: Any) -> Decimal:
        try:
            raw = payload[self.settings.asset_id][self.settings.fiat_code]
        except (KeyError, TypeError) as exc:
            raise UpstreamUnavailable("price missing from upstream payload") from exc
        price = as_decimal(raw)
        if price is None or not price.is_finite() or price <= 0:
            raise UpstreamUnavailable(f"unusable upstream price {raw!r}")
        return price

    def status(self) -> Dict[str, Any]:
        age = self._age()
        return {
            "cached_price": None if self.cached_price is None else str(self.cached_price),
            "last_fetch_age": None if age is None else round(age, 3),
            "last_error": self.last_error,
            "fetch_count": self.fetch_count,
            "failure_count": self.failure_count,
        }
