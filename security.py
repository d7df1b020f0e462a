from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import jwt, JWTError

from settings import settings

VIEWER_SCOPE = "payment:watch"


# -----------------------
# Viewer sessions (JWT)
# -----------------------
def create_viewer_token(public_id: str, minutes: Optional[int] = None) -> str:
    """
    Anonymous, short-lived session that may read exactly one payment.
    """
    exp_minutes = minutes or settings.VIEWER_SESSION_MINUTES
    now = datetime.now(timezone.utc)
    payload = {
        "sub": f"viewer:{public_id}",
        "public_id": public_id,
        "scope": VIEWER_SCOPE,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=exp_minutes)).timestamp()),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALG)


def decode_token(token: str) -> Dict[str, Any]:
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALG])
    except JWTError:
        return {}
