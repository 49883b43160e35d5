"""
JWT Token Authentication

Tokens are issued elsewhere (identity provider, or the CLI for local use);
this module only verifies them and resolves the caller's SessionContext.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from ..config import AuthConfig, ServiceConfig
from ..errors import NotFoundError
from ..pipeline.context import SessionContext, context_for
from .deps import get_config, get_db

security = HTTPBearer()


def create_access_token(
    config: AuthConfig,
    subject: str,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Create a JWT access token for a profile id."""
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=config.access_token_expire_minutes)
    )
    return jwt.encode(
        {"sub": subject, "exp": expire},
        config.secret_key,
        algorithm=config.algorithm,
    )


def verify_token(config: AuthConfig, token: str) -> str:
    """Verify and decode a JWT token. Returns the subject (profile id)."""
    try:
        payload = jwt.decode(token, config.secret_key, algorithms=[config.algorithm])
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
        )
    subject = payload.get("sub")
    if subject is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
        )
    return subject


async def get_session_context(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
    config: ServiceConfig = Depends(get_config),
) -> SessionContext:
    """Resolve the caller: role from the profile, admin flag from user_roles."""
    user_id = verify_token(config.auth, credentials.credentials)
    try:
        return context_for(db, user_id)
    except NotFoundError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )


async def get_admin_context(
    ctx: SessionContext = Depends(get_session_context),
) -> SessionContext:
    """Require admin role"""
    if not ctx.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return ctx
