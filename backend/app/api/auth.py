"""Minimal bearer auth dependency.

Stub implementation that reads org_id/user_id from the bearer token or falls
back to development defaults. Token issuance and verification live outside
this service.
"""

import uuid
from typing import Annotated

from fastapi import Header, HTTPException, status

from backend.app.db.context import RequestContext

DEFAULT_ORG_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")
DEFAULT_USER_ID = uuid.UUID("00000000-0000-0000-0000-000000000002")


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_context(
    authorization: Annotated[str | None, Header()] = None,
) -> RequestContext:
    """Extract request context from the authorization header.

    Accepts "Bearer <org_id>:<user_id>"; with no header the development
    defaults are used.

    Raises:
        HTTPException: 401 if the header is present but malformed
    """
    if not authorization:
        return RequestContext(org_id=DEFAULT_ORG_ID, user_id=DEFAULT_USER_ID)

    scheme, _, token = authorization.partition(" ")
    if scheme != "Bearer" or not token:
        raise _unauthorized("Invalid authorization header format")

    org_part, sep, user_part = token.partition(":")
    if not sep:
        raise _unauthorized("Invalid bearer token (expected org_id:user_id)")

    try:
        return RequestContext(org_id=uuid.UUID(org_part), user_id=uuid.UUID(user_part))
    except ValueError as e:
        raise _unauthorized("Invalid token format (expected org_id:user_id)") from e
