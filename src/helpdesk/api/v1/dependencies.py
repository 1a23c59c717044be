"""Shared API dependencies for authentication and common functionality."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.orm import Session

from helpdesk.core.security import decode_access_token
from helpdesk.core.settings import settings
from helpdesk.db.session import get_db
from helpdesk.models import User
from helpdesk.services.captcha import CaptchaStore, get_captcha_store
from helpdesk.services.email import EmailService, get_email_service
from helpdesk.services.rate_limit import SubmissionRateLimiter, get_rate_limiter

# HTTP Bearer scheme for JWT authentication; missing headers become our own 401
bearer_scheme = HTTPBearer(auto_error=False)

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]

CaptchaStoreDep = Annotated[CaptchaStore, Depends(get_captcha_store)]
RateLimiterDep = Annotated[SubmissionRateLimiter, Depends(get_rate_limiter)]
EmailServiceDep = Annotated[EmailService, Depends(get_email_service)]


def _credentials_error(detail: str = "Could not validate credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    db: SessionDep,
) -> User:
    """Get the current authenticated user from JWT token.

    Args:
        credentials: HTTP Bearer token credentials, if any were sent
        db: Database session

    Returns:
        User object for the authenticated user

    Raises:
        HTTPException: 401 if the token is missing, invalid or names no user
    """
    if credentials is None:
        raise _credentials_error("Not authenticated")
    try:
        payload = decode_access_token(credentials.credentials)
    except JWTError as err:
        raise _credentials_error() from err

    subject = payload.get("sub")
    if subject is None or not str(subject).isdigit():
        raise _credentials_error()

    user = db.get(User, int(subject))
    if user is None:
        raise _credentials_error("User not found")
    return user


# Type alias for current user dependency
CurrentUserDep = Annotated[User, Depends(get_current_user)]


def get_admin_user(user: CurrentUserDep) -> User:
    """Require the authenticated user to hold the ADMIN role."""
    if not user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return user


AdminUserDep = Annotated[User, Depends(get_admin_user)]


def get_client_ip(request: Request) -> str:
    """Return the caller's address used as the throttling key.

    ``X-Forwarded-For`` is honoured only when ``TRUST_PROXY_HEADERS`` is set;
    otherwise a client could pick its own key. Callers without a peer address
    all map to ``"unknown"`` and so share one CAPTCHA penalty and one submission
    window; deployments behind a proxy should enable ``TRUST_PROXY_HEADERS``.
    """
    if settings.trust_proxy_headers:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            first = forwarded.split(",")[0].strip()
            if first:
                return first
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


ClientIpDep = Annotated[str, Depends(get_client_ip)]
