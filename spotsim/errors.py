from __future__ import annotations

from typing import Optional


class SandboxError(Exception):
    """Base class for failures reported back to the caller."""

    code = "sandbox_error"
    http_status = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidInput(SandboxError):
    code = "invalid_input"
    http_status = 400


class InsufficientFunds(SandboxError):
    code = "insufficient_funds"
    http_status = 400


class NotFound(SandboxError):
    code = "not_found"
    http_status = 404


class InvalidState(SandboxError):
    code = "invalid_state"
    http_status = 400


class UpstreamUnavailable(SandboxError):
    """Price fetch failure. Absorbed by the oracle, never returned to callers."""

    code = "upstream_unavailable"
    http_status = 503

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code

    @property
    def rate_limited(self) -> bool:
        return self.status_code == 429

    @property
    def kind(self) -> str:
        return "rate_limited" if self.rate_limited else "unavailable"
