# routes/sessions.py
from __future__ import annotations

import logging

from fastapi import APIRouter

from schemas import SessionRequest, SessionResponse
from security import create_viewer_token
from settings import settings

router = APIRouter(tags=["sessions"])
logger = logging.getLogger("stkpay.sessions")


@router.post("/session", response_model=SessionResponse)
def create_session(body: SessionRequest):
    """
    Anonymous session scoped to a single public_id; knowing the id is the only credential.
    """
    public_id = body.public_id.strip()
    token = create_viewer_token(public_id)
    logger.info("viewer_session_created public_id=%s", public_id)
    return SessionResponse(
        access_token=token,
        public_id=public_id,
        expires_in=int(settings.VIEWER_SESSION_MINUTES) * 60,
    )
