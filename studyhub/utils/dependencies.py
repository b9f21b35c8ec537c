from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from pydantic import ValidationError

from studyhub.database.connection import mongo_db_dependency
from studyhub.repositories.user_repository import UserRepository
from studyhub.schemas.user import TokenPayload
from studyhub.utils.clock import Clock, utc_now
from studyhub.utils.security import decode_access_token


bearer_scheme = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db = Depends(mongo_db_dependency),
) -> dict:
    if credentials is None:
        raise _unauthorized("Please login to access this page")
    try:
        payload = decode_access_token(credentials.credentials)
    except JWTError:
        raise _unauthorized("Invalid or expired token")
    try:
        token = TokenPayload(**payload)
    except ValidationError:
        raise _unauthorized("Invalid token: missing user ID")
    user = await UserRepository(db).get_user_by_id(token.sub)
    if not user or not user.get("is_active", True):
        raise _unauthorized("User not found or inactive")
    return user


def get_clock() -> Clock:
    return utc_now
