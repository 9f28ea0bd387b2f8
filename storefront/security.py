import hmac
from fastapi import HTTPException, Header
from storefront.config import settings


def require_bearer_token(authorization: str | None = Header(None, alias="Authorization")):
    """
    FastAPI dependency to enforce Authorization: Bearer <token> when configured.
    """
    if not settings.bearer_token:
        return
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Unauthorized")
    token = authorization.split(" ", 1)[1].strip()
    if not hmac.compare_digest(token, settings.bearer_token):
        raise HTTPException(status_code=401, detail="Unauthorized")


def require_user_id(x_user_id: str | None = Header(None, alias="X-User-Id")) -> str:
    """
    FastAPI dependency returning the acting user's id, as forwarded by the authentication proxy.
    """
    user_id = (x_user_id or "").strip()
    if not user_id:
        raise HTTPException(status_code=401, detail="missing user id")
    return user_id
