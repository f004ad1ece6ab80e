"""Request identity as a FastAPI dependency.

Public interface:
    ``require_auth`` -- returns AuthContext or raises 401.

Authentication itself happens upstream. The API trusts the user id in the
configured header (``settings.user_id_header``) and only checks that it
names a known user.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from .config import settings
from ..database import get_db
from ..exceptions import AuthenticationError
from ..repositories.user_repository import UserRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthContext:
    """The acting user, available to every endpoint."""

    user_id: int
    username: str


def _parse_user_id(raw: Optional[str]) -> Optional[int]:
    if raw is None:
        return None
    raw = raw.strip()
    if not raw.isdigit():
        return None
    return int(raw)


def require_auth(request: Request, db: Session = Depends(get_db)) -> AuthContext:
    """Resolve the acting user from the identity header, or raise 401."""
    raw = request.headers.get(settings.user_id_header)
    user_id = _parse_user_id(raw)
    if user_id is None:
        logger.debug("Missing or malformed identity header", extra={"path": request.url.path})
        raise AuthenticationError()

    user = UserRepository(db).get_by_id_optional(user_id)
    if user is None:
        logger.warning("Request for unknown user", extra={"user_id": user_id, "path": request.url.path})
        raise AuthenticationError()

    return AuthContext(user_id=user.id, username=user.username)
