"""
Shared FastAPI dependencies: caller identity and external service clients.

Tests replace the service providers through app.dependency_overrides.
"""

from datetime import datetime
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from sitegen.models.base import get_db_dependency, get_session_maker
from sitegen.models.user import AuthSession
from sitegen.services.claude_service import ClaudeService
from sitegen.services.netlify_service import NetlifyService
from sitegen.utils.logger import get_logger

logger = get_logger(__name__)


def get_current_user_id(
    authorization: Optional[str] = Header(None),
    db: Session = Depends(get_db_dependency)
) -> str:
    """
    Resolve the caller from a bearer token.

    Raises:
        HTTPException: 401 if the token is missing, unknown or expired
    """
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"}
        )

    token = authorization[7:].strip()
    session = db.query(AuthSession).filter(AuthSession.token == token).first()

    if session is None or session.expires_at <= datetime.utcnow():
        logger.warning("Rejected request with unknown or expired session token")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"}
        )

    return session.user_id


def get_claude_service() -> ClaudeService:
    return ClaudeService()


def get_netlify_service():
    service = NetlifyService()
    try:
        yield service
    finally:
        service.close()


def get_session_factory():
    """Session factory for work that outlives the request-scoped session."""
    return get_session_maker()
