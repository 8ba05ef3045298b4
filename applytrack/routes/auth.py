from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from .. import auth, models
from ..config import settings
from ..database import get_db
from ..errors import AuthenticationError
from ..schemas import (
    AuthOut,
    ForgotPassword,
    MessageOut,
    PasswordChange,
    PasswordReset,
    Token,
    TokenOut,
    UserCreate,
    UserLogin,
    UserOut,
    UserUpdate,
)

router = APIRouter(prefix="/auth", tags=["auth"])

RESET_REQUESTED = "If an account exists with this email, a reset link will be sent."


def _set_token_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.AUTH_COOKIE_NAME,
        value=token,
        httponly=True,
        samesite="lax",
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )


@router.post("/register", response_model=AuthOut, status_code=status.HTTP_201_CREATED)
def register(payload: UserCreate, response: Response, db: Session = Depends(get_db)):
    user = auth.register_user(db, payload.name, payload.email, payload.password)
    token = auth.issue_token(user)
    _set_token_cookie(response, token)
    return {"token": token, "user": user}


@router.post("/login", response_model=AuthOut)
def login(payload: UserLogin, response: Response, db: Session = Depends(get_db)):
    user = auth.authenticate_user(db, payload.email, payload.password)
    if not user:
        raise AuthenticationError("Invalid email or password")
    token = auth.issue_token(user)
    _set_token_cookie(response, token)
    return {"token": token, "user": user}


@router.post("/token", response_model=Token)
def login_form(form: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)):
    """OAuth2 password flow; ``username`` carries the email address."""
    user = auth.authenticate_user(db, form.username, form.password)
    if not user:
        raise AuthenticationError("Invalid email or password")
    return {"access_token": auth.issue_token(user), "token_type": "bearer"}


@router.post("/logout", response_model=MessageOut)
def logout(response: Response):
    response.delete_cookie(key=settings.AUTH_COOKIE_NAME)
    return {"message": "Logged out"}


@router.get("/me", response_model=UserOut)
def me(current_user: models.User = Depends(auth.get_current_user)):
    return current_user


@router.put("/details", response_model=UserOut)
def update_details(
    payload: UserUpdate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user),
):
    return auth.update_details(db, current_user, name=payload.name, email=payload.email)


@router.put("/password", response_model=TokenOut)
def update_password(
    payload: PasswordChange,
    response: Response,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user),
):
    user = auth.change_password(db, current_user, payload.current_password, payload.new_password)
    token = auth.issue_token(user)
    _set_token_cookie(response, token)
    return {"token": token, "message": "Password updated successfully"}


@router.post("/forgot-password", response_model=MessageOut)
def forgot_password(payload: ForgotPassword, db: Session = Depends(get_db)):
    auth.issue_password_reset(db, payload.email)
    return {"message": RESET_REQUESTED}


@router.post("/reset-password", response_model=TokenOut)
def reset_password(payload: PasswordReset, response: Response, db: Session = Depends(get_db)):
    user = auth.reset_password(db, payload.token, payload.password)
    token = auth.issue_token(user)
    _set_token_cookie(response, token)
    return {"token": token, "message": "Password reset successful"}
