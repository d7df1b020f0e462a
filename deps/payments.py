# deps/payments.py
from __future__ import annotations

from fastapi import Depends

from app.payments.service import CallbackReceiver, StkInitiator
from app.payments.store import PaymentStore, PgPaymentStore
from app.providers.base import StkProvider
from app.providers.mpesa.factory import get_stk_provider


def get_payment_store() -> PaymentStore:
    return PgPaymentStore()


def get_provider() -> StkProvider:
    return get_stk_provider()


def get_initiator(
    store: PaymentStore = Depends(get_payment_store),
    provider: StkProvider = Depends(get_provider),
) -> StkInitiator:
    return StkInitiator(provider=provider, store=store)


def get_callback_receiver(store: PaymentStore = Depends(get_payment_store)) -> CallbackReceiver:
    return CallbackReceiver(store=store)
