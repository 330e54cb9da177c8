# checkout/core/auth.py
from typing import Any

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from checkout.core.config import get_settings
from checkout.database import get_session
from checkout.models.user import User
from checkout.repositories.user_repo import UserRepository

settings = get_settings()
user_repo = UserRepository()

# auto_error=False => a missing Authorization header yields None,
# require_auth turns that into a 401.
bearer_scheme = HTTPBearer(auto_error=False)


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Decode and verify an access token (JWT).

    Verification:
      - signature (JWT_ALG using JWT_SECRET)
      - expiration time (exp)
      - audience is NOT verified

    Raises:
        HTTPException(401): if token is invalid/expired.
    """
    try:
        return jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALG],
            options={"verify_aud": False},
        )
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )


def _default_name_from_email(email: str) -> str:
    if "@" in email:
        return email.split("@", 1)[0]
    return email


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    session: Session = Depends(get_session),
) -> User | None:
    """
    Resolve the current user from a bearer JWT.

    Flow:
      1. No Authorization header => return None.
      2. Decode JWT => extract 'sub' (user id) and 'email'.
      3. Find the user row; auto-provision it (role='user') on first sight.
    """
    if credentials is None:
        return None

    payload = decode_access_token(credentials.credentials)
    sub = payload.get("sub")
    email = payload.get("email")

    if not sub or not email:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token missing sub/email",
        )

    user = user_repo.get_by_id(session, str(sub))
    if user is None:
        try:
            user = user_repo.create(
                session,
                User(
                    id=str(sub),
                    email=email,
                    name=_default_name_from_email(email),
                    role="user",
                ),
            )
        except IntegrityError:
            # Two first requests of the same user raced; use the winner's row.
            session.rollback()
            user = user_repo.get_by_id(session, str(sub))
            if user is None:
                raise

    return user


def require_auth(user: User | None = Depends(get_current_user)) -> User:
    """
    Enforce authentication. Guests are rejected with 401.
    """
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    return user


def require_admin(user: User = Depends(require_auth)) -> User:
    """
    Enforce admin role (403 otherwise).
    """
    if user.role != "admin":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return user
