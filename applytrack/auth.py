from __future__ import annotations

import logging
from datetime import timedelta

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from starlette.requests import HTTPConnection

from . import crud, models, security
from .config import settings
from .database import get_db
from .errors import AuthenticationError, ConflictError, ValidationError
from .token import create_access_token, decode_access_token

LOGGER = logging.getLogger(__name__)

# Only used to advertise the password flow in the OpenAPI docs; token lookup
# itself goes through get_token_from_connection.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_PREFIX.lstrip('/')}/auth/token", auto_error=False)


def _strip_bearer(value: str | None) -> str | None:
    if not value:
        return None
    value = value.strip()
    if value[:7].lower() == "bearer ":
        value = value[7:].strip()
    return value or None


def get_token_from_connection(connection: HTTPConnection) -> str | None:
    """
    Locate the session token of an HTTP request or websocket handshake.

    Sources, first present wins: the custom auth header, an ``Authorization:
    Bearer`` header, the token cookie, then the token query parameter.
    """
    custom = _strip_bearer(connection.headers.get(settings.AUTH_HEADER_NAME))
    if custom:
        return custom

    authorization = connection.headers.get("Authorization")
    if authorization and authorization[:7].lower() == "bearer ":
        bearer = _strip_bearer(authorization)
        if bearer:
            return bearer

    cookie_token = _strip_bearer(connection.cookies.get(settings.AUTH_COOKIE_NAME))
    if cookie_token:
        return cookie_token

    return _strip_bearer(connection.query_params.get(settings.AUTH_QUERY_PARAM))


def resolve_user_id(connection: HTTPConnection) -> str:
    """Verify the connection's token and return the user id it proves.

    Raises TokenInvalid / TokenExpired (both AuthenticationError).
    """
    return decode_access_token(get_token_from_connection(connection))


def get_current_user_id(request: Request, _: str | None = Depends(oauth2_scheme)) -> str:
    """
    Authorization gate for HTTP routes.

    The resolved id is also stored on ``request.state.user_id``. It is the only
    owner identity downstream code may use.
    """
    user_id = resolve_user_id(request)
    request.state.user_id = user_id
    return user_id


def get_current_user(
    user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)
) -> models.User:
    user = crud.get_user_by_id(db, user_id)
    if user is None:
        raise AuthenticationError()
    return user


def issue_token(user: models.User) -> str:
    return create_access_token(subject=user.id)


def authenticate_user(db: Session, email: str, password: str) -> models.User | None:
    """
    Authenticates a user by email and password.

    Returns the user object if authentication is successful, otherwise None.
    """
    user = crud.get_user_by_email(db, email)
    if not user or not security.verify_password(password, user.hashed_password):
        return None
    return user


def register_user(db: Session, name: str, email: str, password: str) -> models.User:
    if crud.get_user_by_email(db, email):
        raise ConflictError("User with this email already exists", field="email")
    try:
        user = crud.create_user(db, email, password, name=name)
    except IntegrityError:
        # lost a race against a concurrent registration
        db.rollback()
        raise ConflictError("User with this email already exists", field="email")
    LOGGER.info("Registered user %s", user.id)
    return user


def update_details(db: Session, user: models.User, name: str | None, email: str | None) -> models.User:
    if email is not None:
        owner = crud.get_user_by_email(db, email)
        if owner is not None and owner.id != user.id:
            raise ConflictError("User with this email already exists", field="email")
    try:
        return crud.update_user_details(db, user, name=name, email=email)
    except IntegrityError:
        db.rollback()
        raise ConflictError("User with this email already exists", field="email")


def change_password(db: Session, user: models.User, current_password: str, new_password: str) -> models.User:
    if not security.verify_password(current_password, user.hashed_password):
        raise AuthenticationError("Current password is incorrect")
    LOGGER.info("Password changed for user %s", user.id)
    return crud.update_password(db, user, new_password)


def issue_password_reset(db: Session, email: str) -> str | None:
    """
    Start a password reset for ``email``.

    Returns the raw reset token (only its hash is stored) or None when no such
    account exists. Callers must not reveal which of the two happened.
    """
    user = crud.get_user_by_email(db, email)
    if user is None:
        return None
    token = security.generate_reset_token()
    expires = models.utcnow() + timedelta(minutes=settings.RESET_TOKEN_EXPIRE_MINUTES)
    crud.set_reset_token(db, user, security.hash_reset_token(token), expires)
    if settings.DEBUG:
        LOGGER.info("Password reset token for user %s: %s", user.id, token)
    return token


def reset_password(db: Session, token: str, password: str) -> models.User:
    invalid = ValidationError("Invalid or expired reset token", errors={"token": "Invalid or expired reset token"})
    user = crud.get_user_by_reset_token(db, security.hash_reset_token(token))
    if user is None or user.reset_password_expires is None:
        raise invalid
    if models.as_utc(user.reset_password_expires) <= models.utcnow():
        crud.clear_reset_token(db, user)
        raise invalid
    LOGGER.info("Password reset for user %s", user.id)
    return crud.update_password(db, user, password)
