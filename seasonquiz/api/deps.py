"""FastAPI dependencies shared across routes."""

import uuid

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from seasonquiz.core.errors import RateLimitedError
from seasonquiz.core.security import decode_access_token
from seasonquiz.db.models import RoleEnum, User
from seasonquiz.db.session import get_db
from seasonquiz.services import rate_limiter
from seasonquiz.services.attempt_engine import AttemptEngine

# Tokens are issued by the auth collaborator, so there is no tokenUrl here
bearer_scheme = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    """Decode JWT and return the authenticated user, or 401."""
    if credentials is None:
        raise _unauthorized("Not authenticated")
    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise _unauthorized("Invalid or expired token")
    try:
        user_id = uuid.UUID(str(payload.get("sub")))
    except ValueError:
        raise _unauthorized("Invalid token payload")

    user = db.get(User, user_id)
    if user is None or not user.is_active:
        raise _unauthorized("User not found or inactive")
    return user


def require_admin(current_user: User = Depends(get_current_user)) -> User:
    """Raise 403 unless the caller is an admin."""
    if current_user.role != RoleEnum.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required"
        )
    return current_user


def get_attempt_engine(db: Session = Depends(get_db)) -> AttemptEngine:
    return AttemptEngine(db)


def require_submit_rate_limit(
    attempt_id: uuid.UUID, current_user: User = Depends(get_current_user)
) -> None:
    """429 when the caller floods one attempt with submissions."""
    if not rate_limiter.allow_submission(current_user.id, attempt_id):
        raise RateLimitedError("Too many submissions for this attempt, please slow down")
