"""
Bearer-token authentication for user accounts.

Tokens are compact HS256 JWTs signed with AUTH_SECRET whose subject is the
username. Login checks credentials through UserService.
"""
import base64
import hashlib
import hmac
import json
import time
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from gamevault.api.v1.errors import handle_service_error
from gamevault.config import Settings, get_settings
from gamevault.db.database import get_db
from gamevault.models.request import LoginRequest, TokenResponse
from gamevault.models.user import User
from gamevault.services.errors import GamevaultError
from gamevault.services.user_service import UserService

router = APIRouter(prefix="/auth", tags=["auth"])

# ── Minimal JWT (HS256) ────────────────────────────────────


def _b64url_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode()


def _b64url_decode(s: str) -> bytes:
    s += "=" * (-len(s) % 4)
    return base64.urlsafe_b64decode(s)


def _sign(secret: str, message: str) -> str:
    return _b64url_encode(hmac.new(secret.encode(), message.encode(), hashlib.sha256).digest())


def create_token(username: str, settings: Settings) -> str:
    """Create a signed token for username."""
    header = _b64url_encode(json.dumps({"alg": "HS256", "typ": "JWT"}).encode())
    payload = _b64url_encode(json.dumps({
        "sub": username,
        "exp": int(time.time()) + settings.auth_token_expires_hours * 3600,
    }).encode())
    return f"{header}.{payload}.{_sign(settings.auth_secret, f'{header}.{payload}')}"


def verify_token(token: str, settings: Settings) -> dict:
    """Check signature and expiry; returns the payload."""
    parts = token.split(".")
    if len(parts) != 3:
        raise ValueError("Invalid token format")
    header, payload, sig = parts
    if not hmac.compare_digest(sig, _sign(settings.auth_secret, f"{header}.{payload}")):
        raise ValueError("Invalid signature")
    data = json.loads(_b64url_decode(payload))
    if data.get("exp", 0) < time.time():
        raise ValueError("Token expired")
    return data


# ── FastAPI dependencies ────────────────────────────────────

security = HTTPBearer(auto_error=False)


async def get_current_username(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    settings: Settings = Depends(get_settings),
) -> Optional[str]:
    """Username from the bearer token; None when authentication is disabled."""
    if settings.testing_authentication_disabled:
        return None
    if not credentials:
        raise HTTPException(status_code=401, detail="Not authenticated")
    try:
        return verify_token(credentials.credentials, settings)["sub"]
    except (ValueError, KeyError) as e:
        raise HTTPException(status_code=401, detail=str(e))


async def get_current_user(
    username: Optional[str] = Depends(get_current_username),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> Optional[User]:
    if username is None:
        return None
    try:
        return await UserService(db, settings).get_by_username_or_fail(username)
    except GamevaultError:
        raise HTTPException(status_code=401, detail="User of this token no longer exists")


async def require_admin(
    user: Optional[User] = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
) -> Optional[User]:
    if settings.testing_authentication_disabled:
        return user
    if user is None or not user.is_admin:
        raise HTTPException(status_code=403, detail="Administrator role required")
    return user


# ── Routes ──────────────────────────────────────────────────


@router.post("/login", response_model=TokenResponse)
async def login(
    req: LoginRequest,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    try:
        user = await UserService(db, settings).login(req.username, req.password)
    except GamevaultError as e:
        raise handle_service_error(e)
    return TokenResponse(token=create_token(user.username, settings))
