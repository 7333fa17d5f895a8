from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_session
from app.core.security import decode_access_token
from app.models.user import User

bearer = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    session: AsyncSession = Depends(get_session),
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer),
) -> User:
    """The practitioner whose agenda the request reads and writes."""
    if credentials is None:
        raise _unauthorized("Missing bearer token")
    subject = decode_access_token(credentials.credentials)
    if subject is None or not subject.isdigit():
        raise _unauthorized("Invalid or expired token")
    practitioner = await session.get(User, int(subject))
    if practitioner is None:
        raise _unauthorized("Practitioner not found")
    return practitioner
