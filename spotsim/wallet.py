from __future__ import annotations

from decimal import Decimal
from typing import Dict

from .errors import InsufficientFunds, InvalidInput


class Wallet:
    """Fiat and asset balances. Neither may ever go below zero."""

    def __init__(self, fiat: Decimal = Decimal("0"), asset: Decimal = Decimal("0")) -> None:
        if fiat < 0 or asset < 0:
            raise InvalidInput("wallet balances must be non-negative")
        self._fiat = fiat
        self._asset = asset

    @property
    def fiat(self) -> Decimal:
        return self._fiat

    @property
    def asset(self) -> Decimal:
        return self._asset

    def can_cover_buy(self, cost: Decimal) -> bool:
        return self._fiat >= cost

    def can_cover_sell(self, amount: Decimal) -> bool:
        return self._asset >= amount

    def settle_buy(self, cost: Decimal, amount: Decimal) -> None:
        if not self.can_cover_buy(cost):
            raise InsufficientFunds("Insufficient fiat balance")
        self._fiat -= cost
        self._asset += amount

    def settle_sell(self, proceeds: Decimal, amount: Decimal) -> None:
        if not self.can_cover_sell(amount):
            raise InsufficientFunds("Insufficient asset balance")
        self._asset -= amount
        self._fiat += proceeds

    def snapshot(self) -> Dict[str, str]:
        return {"fiat": str(self._fiat), "asset": str(self._asset)}

    def __repr__(self) -> str:
        return f"Wallet(fiat={self._fiat}, asset={self._asset})"
