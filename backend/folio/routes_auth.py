"""
Simple authentication routes.

Login by email (the user row is created on first login) and, when
ADMIN_PASSWORD is configured, the shared password. Tokens live in memory.
"""

import hashlib
import secrets
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, field_validator
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from folio.db import get_session
from folio.models import User
from folio.settings import get_settings

router = APIRouter(prefix="/api/auth", tags=["auth"])
security = HTTPBearer(auto_error=False)
SessionDep = Depends(get_session)

# token -> (user id, expiry); in production use Redis or DB
_tokens: dict[str, tuple[int, datetime]] = {}


class LoginRequest(BaseModel):
    email: str
    password: str | None = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        value = value.strip().lower()
        if "@" not in value:
            raise ValueError("invalid email")
        return value


class LoginResponse(BaseModel):
    token: str
    expires_at: str
    user_id: int


def _hash_password(password: str) -> str:
    """Hash password with SHA256."""
    return hashlib.sha256(password.encode()).hexdigest()


def _generate_token() -> str:
    """Generate a secure random token."""
    return secrets.token_urlsafe(32)


def _cleanup_expired_tokens():
    """Remove expired tokens from memory."""
    now = datetime.now(timezone.utc)
    expired = [t for t, (_, exp) in _tokens.items() if exp < now]
    for t in expired:
        del _tokens[t]


def issue_token(user_id: int) -> tuple[str, datetime]:
    _cleanup_expired_tokens()
    token = _generate_token()
    expires_at = datetime.now(timezone.utc) + timedelta(hours=get_settings().token_expiry_hours)
    _tokens[token] = (user_id, expires_at)
    return token, expires_at


@router.post("/login", response_model=LoginResponse)
async def login(request: LoginRequest, session: AsyncSession = SessionDep):
    """
    Login with email (and the admin password when one is configured).
    Returns a bearer token valid for TOKEN_EXPIRY_HOURS.
    """
    admin_password = get_settings().admin_password
    if admin_password and _hash_password(request.password or "") != _hash_password(admin_password):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid password")

    user = (await session.execute(select(User).where(User.email == request.email))).scalar_one_or_none()
    if user is None:
        user = User(email=request.email, display_name=request.email.split("@")[0])
        session.add(user)
        await session.commit()
        await session.refresh(user)

    token, expires_at = issue_token(user.id)
    return LoginResponse(token=token, expires_at=expires_at.isoformat(), user_id=user.id)


@router.post("/logout")
async def logout(credentials: HTTPAuthorizationCredentials = Depends(security)):
    """Invalidate current token."""
    if credentials and credentials.credentials in _tokens:
        del _tokens[credentials.credentials]
    return {"status": "logged out"}


def require_user(credentials: HTTPAuthorizationCredentials | None = Depends(security)) -> int:
    """Dependency that requires a valid bearer token; returns the user id."""
    if not credentials:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")

    _cleanup_expired_tokens()
    entry = _tokens.get(credentials.credentials)
    if entry is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token")
    return entry[0]


@router.get("/me")
async def get_current_user(user_id: int = Depends(require_user), session: AsyncSession = SessionDep):
    """Check if current token is valid."""
    user = await session.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token")
    return {
        "authenticated": True,
        "user_id": user.id,
        "email": user.email,
        "display_name": user.display_name,
    }
