from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy.orm import Session

from backend.auth.auth import decode_access_token
from backend.config import get_settings
from backend.database import models, repository
from backend.database.db import get_db

USER_ID_HEADER = "X-User-ID"

# the route that gives the token; auto_error off so guests can reach /api/chat
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="api/auth/login", auto_error=False)


def _credentials_exception(detail: str = "Could not validate credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _user_from_token(token: str, db: Session) -> models.User:
    try:
        payload = decode_access_token(token)
        user_id: Optional[str] = payload.get("sub")
        if user_id is None:
            raise _credentials_exception()
        user_id = int(user_id)
    except (JWTError, ValueError):
        raise _credentials_exception()
    user = repository.get_user(db, user_id)
    if user is None or user.is_guest:
        raise _credentials_exception()
    return user


def _user_from_header(value: str, db: Session) -> models.User:
    try:
        user_id = int(value)
    except ValueError:
        raise _credentials_exception(f"Invalid {USER_ID_HEADER} header")
    user = repository.get_user(db, user_id)
    if user is None:
        raise _credentials_exception(f"Unknown {USER_ID_HEADER}")
    return user


def get_caller(
    request: Request,
    token: Optional[str] = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> models.User:
    """Resolve who is talking: a bearer token, a trusted user-id header, or the guest."""
    if token:
        return _user_from_token(token, db)
    header_value = request.headers.get(USER_ID_HEADER)
    if header_value and get_settings().trust_user_id_header:
        return _user_from_header(header_value, db)
    return repository.ensure_guest_user(db)


def get_current_user(caller: models.User = Depends(get_caller)) -> models.User:
    if caller.is_guest:
        raise _credentials_exception("Not authenticated")
    return caller
