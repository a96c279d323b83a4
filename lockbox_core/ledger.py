"""
lockbox_core.ledger
-------------------
SubscriptionLedger: per-subscriber expirations, pricing, and revenue.

Renewal rule: ``new_expiration = max(current_expiration, now) + duration``.
Every mutating call follows checks -> effects -> interactions: all ledger
writes (and access-listener grants) happen before any value leaves the lock.
Callers are expected to wrap each call in a store transaction; the
AccessCoordinator does this.
"""

from __future__ import annotations
from typing import Callable, List, Optional

from .constants import EV_PURCHASED, EV_RENEWED, EV_PARAMS_UPDATED, EV_WITHDRAWN
from .errors import (
    ContentKeyNotSet,
    InsufficientPayment,
    InvalidDuration,
    InvalidPrice,
    NoFundsToWithdraw,
    NotOwner,
    TransferFailed,
)
from .logger import get_logger
from .payments import ValueTransfer
from .storage import LockParams, Receipt, StorageProvider, SubscriptionDetails, SubscriptionRecord
from .utils import now_epoch, now_ts

log = get_logger("LB.Ledger")

AccessListener = Callable[[str], None]


def validate_params(price: int, duration: int) -> None:
    if not isinstance(duration, int) or duration <= 0:
        raise InvalidDuration(duration)
    if not isinstance(price, int) or price < 0:
        raise InvalidPrice(price)


class SubscriptionLedger:
    def __init__(
        self,
        store: StorageProvider,
        bank: ValueTransfer,
        clock: Callable[[], int] = now_epoch,
        key_is_set: Optional[Callable[[], bool]] = None,
    ):
        self.store = store
        self.bank = bank
        self.clock = clock
        self._key_is_set = key_is_set
        self._listeners: List[AccessListener] = []

    def add_access_listener(self, fn: AccessListener) -> None:
        self._listeners.append(fn)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    @property
    def params(self) -> LockParams:
        return self.store.get_params()

    def expiration_of(self, identity: str) -> int:
        rec = self.store.get_subscription(identity)
        return rec.expiration_timestamp if rec else 0

    def is_valid(self, identity: str) -> bool:
        return self.expiration_of(identity) > self.clock()

    def get_subscription_details(self, identity: str) -> SubscriptionDetails:
        exp = self.expiration_of(identity)
        return SubscriptionDetails(expiration_timestamp=exp, is_valid=exp > self.clock())

    @property
    def balance(self) -> int:
        return self.store.get_balance()

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def subscribe(self, identity: str, paid_amount: int) -> Receipt:
        params = self.params
        price = params.price
        if paid_amount < price:
            raise InsufficientPayment(price, paid_amount)
        self._require_key()

        receipt = self._extend(identity, params.duration)
        receipt.amount_charged = price
        receipt.refund = paid_amount - price
        self.store.set_balance(self.store.get_balance() + price)
        self._emit(receipt)

        # interactions last
        if receipt.refund:
            self._send(identity, receipt.refund)
        log.info(f"[LEDGER] {receipt.event} identity={identity} exp={receipt.expiration_timestamp} "
                 f"paid={paid_amount} refund={receipt.refund}")
        return receipt

    def grant(self, caller: str, identity: str, duration: int) -> Receipt:
        self._only_owner(caller)
        if not isinstance(duration, int) or duration <= 0:
            raise InvalidDuration(duration)
        self._require_key()

        receipt = self._extend(identity, duration)
        self._emit(receipt)
        log.info(f"[LEDGER] granted identity={identity} exp={receipt.expiration_timestamp}")
        return receipt

    def update_params(self, caller: str, new_price: int, new_duration: int) -> LockParams:
        params = self._only_owner(caller)
        validate_params(new_price, new_duration)
        params.price = new_price
        params.duration = new_duration
        self.store.put_params(params)
        self.store.log_event(EV_PARAMS_UPDATED, {"price": str(new_price), "duration": new_duration})
        log.info(f"[LEDGER] params updated price={new_price} duration={new_duration}")
        return params

    def withdraw(self, caller: str) -> int:
        params = self._only_owner(caller)
        amount = self.store.get_balance()
        if amount == 0:
            raise NoFundsToWithdraw()

        self.store.set_balance(0)
        self.store.log_event(EV_WITHDRAWN, {"to": params.owner, "amount": str(amount)})
        self._send(params.owner, amount)
        log.info(f"[LEDGER] withdrawn amount={amount} to={params.owner}")
        return amount

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _only_owner(self, caller: str) -> LockParams:
        params = self.params
        if not params.is_owner(caller):
            raise NotOwner(caller)
        return params

    def _require_key(self) -> None:
        if self._key_is_set is not None and not self._key_is_set():
            raise ContentKeyNotSet()

    def _extend(self, identity: str, duration: int) -> Receipt:
        now = self.clock()
        rec = self.store.get_subscription(identity)
        renewed = rec is not None and rec.expiration_timestamp > 0
        if rec is None:
            rec = SubscriptionRecord(identity=identity)

        rec.expiration_timestamp = max(rec.expiration_timestamp, now) + duration
        rec.updated_at = now_ts()
        self.store.upsert_subscription(rec)

        for fn in self._listeners:
            fn(identity)
        return Receipt(identity=identity, expiration_timestamp=rec.expiration_timestamp, renewed=renewed)

    def _emit(self, receipt: Receipt) -> None:
        self.store.log_event(
            EV_RENEWED if receipt.renewed else EV_PURCHASED,
            {"identity": receipt.identity, "expiration": receipt.expiration_timestamp},
        )

    def _send(self, to: str, amount: int) -> None:
        try:
            self.bank.transfer(to, amount)
        except TransferFailed:
            raise
        except Exception as e:
            log.error(f"[LEDGER] transfer failed to={to} amount={amount}: {e}")
            raise TransferFailed(to, amount, str(e)) from e
