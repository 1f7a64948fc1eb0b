"""JWT Authentication for API endpoints.

Every CRM record belongs to the user named in the bearer token's ``sub``.
The Gmail OAuth round trip carries the same identity in a short-lived,
signed ``state`` token because Google's redirect has no bearer header.
"""

from __future__ import annotations

import warnings
from datetime import datetime, timedelta, timezone
from typing import Annotated

import jwt
from fastapi import Depends, HTTPException, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel

from realty_crm.config import get_settings


# HTTP Bearer security scheme
security = HTTPBearer(auto_error=False)
security_required = HTTPBearer(auto_error=True)

ACCESS_TOKEN = "access"
OAUTH_STATE_TOKEN = "oauth_state"
OAUTH_STATE_TTL = timedelta(minutes=10)


class TokenPayload(BaseModel):
    """JWT token payload."""

    sub: str  # CRM user id
    exp: datetime
    iat: datetime
    type: str = ACCESS_TOKEN
    scopes: list[str] = []


class AuthenticatedUser(BaseModel):
    """Authenticated CRM user."""

    id: str
    scopes: list[str] = []
    token_type: str = ACCESS_TOKEN


def get_secret_key() -> str:
    """Get JWT secret key from settings.

    Raises:
        ValueError: If no secret key is configured in production environment.
    """
    settings = get_settings()
    secret = settings.security.jwt_secret_key

    if not secret:
        if settings.environment in ("production", "staging", "prod"):
            raise ValueError(
                "JWT secret key must be configured in production! "
                "Set CRM_SECURITY__JWT_SECRET_KEY environment variable."
            )
        warnings.warn(
            "Using insecure default JWT secret. "
            "Set CRM_SECURITY__JWT_SECRET_KEY for production!",
            RuntimeWarning,
            stacklevel=2,
        )
        secret = "INSECURE-DEV-SECRET-DO-NOT-USE-IN-PRODUCTION"

    return secret


def get_algorithm() -> str:
    """Get JWT algorithm."""
    return get_settings().security.jwt_algorithm


def create_access_token(
    subject: str,
    scopes: list[str] | None = None,
    expires_delta: timedelta | None = None,
    token_type: str = ACCESS_TOKEN,
) -> str:
    """Create a new JWT token.

    Args:
        subject: The CRM user id
        scopes: List of permission scopes
        expires_delta: Optional custom expiration time
        token_type: ``access`` or ``oauth_state``

    Returns:
        Encoded JWT token string
    """
    if expires_delta is None:
        expires_delta = timedelta(minutes=get_settings().security.jwt_expiry_minutes)

    now = datetime.now(timezone.utc)
    payload = {
        "sub": subject,
        "exp": now + expires_delta,
        "iat": now,
        "type": token_type,
        "scopes": scopes or [],
    }
    return jwt.encode(payload, get_secret_key(), algorithm=get_algorithm())


def decode_token(token: str) -> TokenPayload:
    """Decode and validate a JWT token.

    Raises:
        HTTPException: If token is invalid or expired
    """
    try:
        payload = jwt.decode(
            token,
            get_secret_key(),
            algorithms=[get_algorithm()],
        )
        return TokenPayload(**payload)
    except jwt.ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except jwt.InvalidTokenError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid token: {str(e)}",
            headers={"WWW-Authenticate": "Bearer"},
        )


def _user_from(payload: TokenPayload) -> AuthenticatedUser:
    if payload.type != ACCESS_TOKEN:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Access token required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return AuthenticatedUser(id=payload.sub, scopes=payload.scopes, token_type=payload.type)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Security(security_required),
) -> AuthenticatedUser:
    """Dependency to get the current authenticated user.

    Usage:
        @router.get("/automation/rules")
        async def list_rules(user: AuthenticatedUser = Depends(get_current_user)):
            ...
    """
    return _user_from(decode_token(credentials.credentials))


async def get_optional_user(
    credentials: HTTPAuthorizationCredentials | None = Security(security),
) -> AuthenticatedUser | None:
    """Dependency to optionally get the current user.

    Returns None if no token is provided.
    """
    if credentials is None:
        return None
    return _user_from(decode_token(credentials.credentials))


CurrentUser = Annotated[AuthenticatedUser, Depends(get_current_user)]


def create_state_token(user_id: str) -> str:
    """Signed OAuth ``state`` naming the user who started the flow."""
    return create_access_token(user_id, expires_delta=OAUTH_STATE_TTL, token_type=OAUTH_STATE_TOKEN)


def decode_state_token(state: str) -> str:
    """User id carried by an OAuth ``state`` token.

    Raises:
        HTTPException: If the state is forged, expired or not a state token
    """
    payload = decode_token(state)
    if payload.type != OAUTH_STATE_TOKEN:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid OAuth state",
        )
    return payload.sub
