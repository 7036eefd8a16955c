"""
Caller identity dependencies.

Authentication happens upstream; the authenticated user id arrives in the
``X-User-Id`` header.
"""

import logging
from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from ...core.exceptions import UnauthorizedException
from ...core.ulid_helper import is_valid_ulid
from ...models.user import User
from ...repositories.factory import RepositoryFactory
from .database import get_db

logger = logging.getLogger(__name__)

USER_ID_HEADER = "X-User-Id"


def get_current_user_id_optional(
    x_user_id: Optional[str] = Header(default=None, alias=USER_ID_HEADER),
) -> Optional[str]:
    """The caller's user id when present; no database lookup."""
    if x_user_id is None or not x_user_id.strip():
        return None
    return x_user_id.strip()


def get_current_user(
    user_id: Optional[str] = Depends(get_current_user_id_optional),
    db: Session = Depends(get_db),
) -> User:
    """
    Resolve the authenticated user.

    Raises:
        HTTPException: 401 when the header is missing or the user is unknown
    """
    if user_id is None:
        raise UnauthorizedException("Authentication required").to_http_exception()
    if not is_valid_ulid(user_id):
        raise UnauthorizedException("Malformed user id").to_http_exception()
    user = RepositoryFactory.create_user_repository(db).get_by_id(user_id)
    if user is None:
        logger.info("Rejected request for unknown user id %s", user_id)
        raise UnauthorizedException("Unknown user").to_http_exception()
    return user
