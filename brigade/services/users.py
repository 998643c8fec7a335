from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..errors import NotFoundError, StorageError, ValidationError
from ..models import User
from ..schemas.user import UserCreate, UserRead, UserUpdate
from .access import (
    Subject,
    can_assign_role,
    can_delete_user_record,
    can_manage_users,
    can_view_user_record,
    ensure,
)
from .sessions import get_password_hash

logger = logging.getLogger(__name__)


def _username_taken(db: Session, username: str, exclude_id: Optional[int] = None) -> bool:
    query = db.query(User.id).filter(User.username == username)
    if exclude_id is not None:
        query = query.filter(User.id != exclude_id)
    return query.first() is not None


def _email_taken(db: Session, email: str, exclude_id: Optional[int] = None) -> bool:
    query = db.query(User.id).filter(func.lower(User.email) == email.lower())
    if exclude_id is not None:
        query = query.filter(User.id != exclude_id)
    return query.first() is not None


def _commit(db: Session) -> None:
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ValidationError("Username or email already exists") from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("User write failed")
        raise StorageError() from exc


def _load(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).one_or_none()
    if not user:
        raise NotFoundError("User not found")
    return user


def list_users(db: Session, subject: Subject, page: int = 1, limit: int = 20) -> tuple[list[User], int]:
    ensure(can_manage_users(subject))
    query = db.query(User)
    total = query.count()
    items = (
        query.order_by(User.created_at.desc(), User.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return items, total


def get_user(db: Session, subject: Subject, user_id: int) -> User:
    ensure(can_view_user_record(subject, user_id))
    return _load(db, user_id)


def create_user(db: Session, subject: Subject, payload: UserCreate) -> User:
    ensure(can_manage_users(subject))
    ensure(can_assign_role(subject, payload.role))
    if _username_taken(db, payload.username):
        raise ValidationError("Username already exists")
    if _email_taken(db, payload.email):
        raise ValidationError("Email already exists")

    user = User(
        username=payload.username,
        email=payload.email.lower(),
        password_hash=get_password_hash(payload.password),
        full_name=payload.full_name,
        phone=payload.phone,
        role=payload.role,
        is_active=True,
    )
    db.add(user)
    _commit(db)
    logger.info("User %s provisioned user %s as %s", subject.id, user.id, payload.role)
    return user


def update_user(db: Session, subject: Subject, user_id: int, payload: UserUpdate) -> tuple[UserRead, User]:
    """Apply a partial update and return the previous and current record."""
    ensure(can_view_user_record(subject, user_id))
    changes = payload.model_dump(exclude_unset=True)
    if not changes:
        raise ValidationError("No update data provided")
    if "role" in changes:
        ensure(can_manage_users(subject))
        ensure(can_assign_role(subject, changes["role"]))
    if "is_active" in changes:
        ensure(can_manage_users(subject))
        if user_id == subject.id and not changes["is_active"]:
            ensure(can_delete_user_record(subject, user_id))

    user = _load(db, user_id)
    if "username" in changes and _username_taken(db, changes["username"], exclude_id=user.id):
        raise ValidationError("Username already exists")
    if "email" in changes:
        changes["email"] = changes["email"].lower()
        if _email_taken(db, changes["email"], exclude_id=user.id):
            raise ValidationError("Email already exists")

    previous = UserRead.model_validate(user)
    password = changes.pop("password", None)
    if password:
        user.password_hash = get_password_hash(password)
    for field, value in changes.items():
        setattr(user, field, value)
    _commit(db)
    return previous, user


def deactivate_user(db: Session, subject: Subject, user_id: int) -> User:
    """Soft-delete a user; history that references them stays intact."""
    ensure(can_delete_user_record(subject, user_id))
    user = _load(db, user_id)
    user.is_active = False
    _commit(db)
    logger.info("User %s deactivated user %s", subject.id, user_id)
    return user
