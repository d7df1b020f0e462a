# deps/auth.py
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from security import VIEWER_SCOPE, decode_token

bearer = HTTPBearer(auto_error=False)


class Viewer:
    def __init__(self, public_id: str):
        self.public_id = public_id


def get_viewer(
    creds: HTTPAuthorizationCredentials = Depends(bearer),
) -> Viewer:
    if not creds:
        raise HTTPException(status_code=401, detail="UNAUTHORIZED")

    # must be "Bearer"
    if (creds.scheme or "").lower() != "bearer":
        raise HTTPException(status_code=401, detail="UNAUTHORIZED")

    payload = decode_token(creds.credentials)
    public_id = payload.get("public_id")
    if not public_id or payload.get("scope") != VIEWER_SCOPE:
        raise HTTPException(status_code=401, detail="UNAUTHORIZED")
    return Viewer(public_id=str(public_id))


def require_viewer_of(public_id: str, viewer: Viewer) -> None:
    if viewer.public_id != public_id:
        raise HTTPException(status_code=403, detail="FORBIDDEN")
