"""Token balances for every currency and holder in a simulation."""

import logging
from typing import Dict, Tuple

from ..core.addresses import address_of
from ..core.errors import InsufficientBalance
from ..core.types import Currency

logger = logging.getLogger(__name__)


class TokenLedger:
    """Balances keyed by (currency, holder address); native currency included"""

    def __init__(self) -> None:
        self._balances: Dict[Tuple[Currency, str], int] = {}

    def balance_of(self, currency: Currency, holder) -> int:
        return self._balances.get((currency, address_of(holder)), 0)

    def mint(self, currency: Currency, to, amount: int) -> None:
        """Credit new tokens; used to fund airlocks, traders and custody in simulations"""
        if amount < 0:
            raise ValueError(f"Cannot mint negative amount {amount}")
        key = (currency, address_of(to))
        self._balances[key] = self._balances.get(key, 0) + amount

    def transfer(self, currency: Currency, sender, to, amount: int) -> None:
        if amount < 0:
            raise ValueError(f"Cannot transfer negative amount {amount}")
        if amount == 0:
            return

        source = address_of(sender)
        available = self.balance_of(currency, source)
        if available < amount:
            raise InsufficientBalance(currency, source, amount, available)

        self._balances[(currency, source)] = available - amount
        key = (currency, address_of(to))
        self._balances[key] = self._balances.get(key, 0) + amount
        logger.debug("transfer %s %d %s -> %s", currency, amount, source, key[1])

    # Pool manager transition participation
    def snapshot(self):
        return dict(self._balances)

    def restore(self, snapshot) -> None:
        self._balances = dict(snapshot)
