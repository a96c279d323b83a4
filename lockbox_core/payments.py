"""
lockbox_core.payments
---------------------
Single fungible-value transfer port used for refunds and withdrawals.

The lock only ever pushes value out; incoming payment is the ``paid_amount``
attached to a subscribe call. A ``ValueTransfer`` may call back into the lock
(the way a payable recipient can), so the lock finishes all state changes
before calling ``transfer``.
"""

from __future__ import annotations
from collections import defaultdict
from typing import Callable, Dict, List, Optional, Tuple

from .errors import TransferFailed
from .logger import get_logger

log = get_logger("LB.Payments")


class ValueTransfer:
    def transfer(self, to: str, amount: int) -> None:
        raise NotImplementedError


class InMemoryBank(ValueTransfer):
    """
    Records every outgoing transfer and credits the recipient.

    ``on_transfer`` is invoked after crediting, which is where a recipient
    would re-enter the lock.
    """

    def __init__(self, on_transfer: Optional[Callable[[str, int], None]] = None):
        self.balances: Dict[str, int] = defaultdict(int)
        self.transfers: List[Tuple[str, int]] = []
        self.on_transfer = on_transfer
        self.fail_for = set()

    def transfer(self, to: str, amount: int) -> None:
        if to in self.fail_for:
            raise TransferFailed(to, amount, "recipient rejected value")
        self.balances[to] += amount
        self.transfers.append((to, amount))
        log.debug(f"[BANK] {amount} -> {to}")
        if self.on_transfer:
            self.on_transfer(to, amount)

    def received(self, to: str) -> int:
        return self.balances.get(to, 0)
