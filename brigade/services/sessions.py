"""Credential checks and bearer-token handling.

Tokens are stateless HS256 JWTs. Verifying one always reloads the user so a
deactivated account or a changed role takes effect immediately; the role
claim inside the token is informational only.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
from jose import jwt
from jose.exceptions import ExpiredSignatureError, JWTError
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from ..config import get_settings
from ..errors import AuthError
from ..models import User
from .access import Subject
from .roles import parse_role

logger = logging.getLogger(__name__)


def get_password_hash(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def authenticate(db: Session, login: str, password: str) -> User:
    candidate = login.strip()
    user = (
        db.query(User)
        .filter(or_(User.username == candidate, func.lower(User.email) == candidate.lower()))
        .first()
    )
    if not user or not verify_password(password, user.password_hash) or not user.is_active:
        logger.info("Failed login for %s", candidate)
        raise AuthError("Invalid username or password")
    return user


def issue_token(user: User, now: Optional[datetime] = None) -> str:
    settings = get_settings()
    issued_at = now or datetime.now(timezone.utc)
    claims = {
        "sub": str(user.id),
        "role": user.role,
        "iat": int(issued_at.timestamp()),
        "exp": int((issued_at + timedelta(minutes=settings.token_ttl_minutes)).timestamp()),
    }
    return jwt.encode(claims, settings.secret_key, algorithm=settings.token_algorithm)


def bearer_credential(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def verify(db: Session, credential: Optional[str]) -> Subject:
    if not credential:
        raise AuthError("Missing authentication token")

    settings = get_settings()
    try:
        claims = jwt.decode(credential, settings.secret_key, algorithms=[settings.token_algorithm])
    except ExpiredSignatureError as exc:
        raise AuthError("Authentication token has expired") from exc
    except JWTError as exc:
        raise AuthError("Invalid authentication token") from exc

    try:
        user_id = int(claims.get("sub"))
    except (TypeError, ValueError) as exc:
        raise AuthError("Invalid authentication token") from exc

    user = db.query(User).filter(User.id == user_id).one_or_none()
    if not user or not user.is_active:
        raise AuthError("User does not exist or has been deactivated")
    role = parse_role(user.role)
    if role is None:
        logger.warning("User %s has unrecognised role %r", user.id, user.role)
        raise AuthError("User does not exist or has been deactivated")
    return Subject(id=user.id, role=role, is_active=user.is_active, full_name=user.full_name)
