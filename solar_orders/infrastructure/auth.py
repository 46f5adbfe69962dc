from datetime import datetime, timedelta, timezone
from typing import Optional
import jwt
from fastapi import Request, HTTPException
from solar_orders.core_settings import get_settings
from solar_orders.core.logging_config import set_request_context

settings = get_settings()

BEARER_PREFIX = "Bearer "

def create_access_token(subject: str, role: str = "admin", expires_minutes: int = 60) -> str:
    now = datetime.now(timezone.utc)
    payload = {"sub": subject, "role": role, "iat": now, "exp": now + timedelta(minutes=expires_minutes)}
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALG)

def decode_access_token(token: str) -> Optional[dict]:
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALG])
    except jwt.PyJWTError:
        return None

def require_admin(request: Request) -> dict:
    """Route dependency: a valid bearer token whose role is an admin role."""
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith(BEARER_PREFIX):
        raise HTTPException(status_code=401, detail="Missing token")
    token_data = decode_access_token(auth_header.split(" ", 1)[1])
    if not token_data:
        raise HTTPException(status_code=401, detail="Invalid token")
    if token_data.get("role") not in settings.ADMIN_ROLES:
        raise HTTPException(status_code=403, detail="Unauthorized")
    set_request_context(user_id=token_data.get("sub"))
    return token_data
