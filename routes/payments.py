# routes/payments.py
from fastapi import APIRouter, Depends, HTTPException

from app.payments.store import PaymentStore
from deps.auth import Viewer, get_viewer, require_viewer_of
from deps.payments import get_payment_store
from schemas import PaymentStatusResponse

router = APIRouter(prefix="/payments", tags=["payments"])


@router.get("/{public_id}", response_model=PaymentStatusResponse)
def get_payment_status(
    public_id: str,
    viewer: Viewer = Depends(get_viewer),
    store: PaymentStore = Depends(get_payment_store),
):
    require_viewer_of(public_id, viewer)

    status = store.get_status(public_id=public_id)
    if status is None:
        raise HTTPException(status_code=404, detail="PAYMENT_NOT_FOUND")
    return PaymentStatusResponse(public_id=public_id, status=status)
