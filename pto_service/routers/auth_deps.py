"""
Caller identity for the REST API.

Callers identify themselves with the chat platform id in the X-User-Id
header (the chat adapter and internal tools sit in front of this API).
"""
import logging
from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from pto_service.core.exceptions import AccessDeniedError, AuthenticationError
from pto_service.database import get_db
from pto_service.models.user import User
from pto_service.services.leave_lifecycle import LeaveLifecycleService
from pto_service.services.user_store import UserStore

logger = logging.getLogger(__name__)


def get_current_user(
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
    db: Session = Depends(get_db)
) -> User:
    """Resolve the calling user from the X-User-Id header."""
    if not x_user_id:
        logger.warning("Authentication failed: missing X-User-Id header")
        raise AuthenticationError("Missing X-User-Id header")

    user = UserStore(db).get_by_external_id(x_user_id)
    if user is None:
        logger.warning(f"Authentication failed: user {x_user_id} not registered")
        raise AuthenticationError("User not registered in the PTO tool")
    return user


def require_admin(current_user: User = Depends(get_current_user)) -> User:
    if not current_user.is_admin:
        raise AccessDeniedError()
    return current_user


def get_lifecycle(db: Session = Depends(get_db)) -> LeaveLifecycleService:
    return LeaveLifecycleService(db)


def get_user_store(db: Session = Depends(get_db)) -> UserStore:
    return UserStore(db)
