import logging
from dataclasses import dataclass

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from backend.auth import jwt_handler
from backend.auth.permissions import Permission, has_permission
from backend.core.exceptions import Forbidden, InvalidToken, Unauthenticated

logger = logging.getLogger(__name__)

# auto_error is off so a missing header maps to our own 401 body.
security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class TokenClaims:
    user_id: str
    username: str
    role: str


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> TokenClaims:
    """Admit a request carrying a currently valid bearer token.

    Only the token is inspected; the database is never queried here.
    """
    if credentials is None or not credentials.credentials:
        raise Unauthenticated()

    try:
        payload = jwt_handler.decode_access_token(credentials.credentials)
    except jwt.InvalidTokenError as exc:
        logger.info("Rejected bearer token: %s", exc)
        raise InvalidToken() from exc

    subject = payload.get("sub")
    username = payload.get("username")
    role = payload.get("role")
    if not subject or not username or not role:
        raise InvalidToken()

    return TokenClaims(user_id=str(subject), username=username, role=role)


def require_permission(permission: Permission):
    def dependency(current_user: TokenClaims = Depends(get_current_user)) -> TokenClaims:
        if not has_permission(current_user.role, permission):
            logger.warning(
                "User %s with role %s denied %s", current_user.username, current_user.role, permission.value
            )
            raise Forbidden()
        return current_user

    return dependency
