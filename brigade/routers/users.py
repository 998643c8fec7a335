from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ..db import get_db
from ..dependencies import PageParams, get_current_subject
from ..responses import success
from ..schemas.common import build_pagination
from ..schemas.user import UserCreate, UserRead, UserUpdate
from ..services import users as user_service
from ..services.access import Subject
from ..services.audit import record_activity

router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("")
def list_users(
    paging: PageParams = Depends(),
    subject: Subject = Depends(get_current_subject),
    db: Session = Depends(get_db),
):
    items, total = user_service.list_users(db, subject, paging.page, paging.limit)
    return success(
        {
            "users": [UserRead.model_validate(user) for user in items],
            "pagination": build_pagination(paging.page, paging.limit, total),
        }
    )


@router.post("", status_code=201)
def create_user(
    payload: UserCreate,
    request: Request,
    subject: Subject = Depends(get_current_subject),
    db: Session = Depends(get_db),
):
    user = user_service.create_user(db, subject, payload)
    created = UserRead.model_validate(user)
    record_activity(db, subject.id, "create_user", "users", created.id, after=payload, request=request)
    return success({"message": "User created", "user_id": created.id, "user": created}, status_code=201)


@router.get("/{user_id}")
def get_user(user_id: int, subject: Subject = Depends(get_current_subject), db: Session = Depends(get_db)):
    user = user_service.get_user(db, subject, user_id)
    return success({"user": UserRead.model_validate(user)})


@router.put("/{user_id}")
def update_user(
    user_id: int,
    payload: UserUpdate,
    request: Request,
    subject: Subject = Depends(get_current_subject),
    db: Session = Depends(get_db),
):
    previous, user = user_service.update_user(db, subject, user_id, payload)
    current = UserRead.model_validate(user)
    record_activity(db, subject.id, "update_user", "users", user_id, before=previous, after=payload, request=request)
    return success({"message": "User updated", "user": current})


@router.delete("/{user_id}")
def delete_user(
    user_id: int,
    request: Request,
    subject: Subject = Depends(get_current_subject),
    db: Session = Depends(get_db),
):
    user = user_service.deactivate_user(db, subject, user_id)
    snapshot = UserRead.model_validate(user)
    record_activity(db, subject.id, "deactivate_user", "users", user_id, before=snapshot, request=request)
    return success({"message": "User deactivated", "user": snapshot})
