from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from ..db import get_db
from ..dependencies import PageParams, get_current_subject
from ..responses import success
from ..schemas.common import build_pagination
from ..schemas.schedule import ShiftCreate, ShiftRead, ShiftUpdate
from ..services import schedules as schedule_service
from ..services.access import Subject
from ..services.audit import record_activity

router = APIRouter(prefix="/api/schedules", tags=["schedules"])


@router.get("")
def list_schedules(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    paging: PageParams = Depends(),
    subject: Subject = Depends(get_current_subject),
    db: Session = Depends(get_db),
):
    items, total = schedule_service.list_assignments(db, subject, start_date, end_date, paging.page, paging.limit)
    return success(
        {
            "schedules": [ShiftRead.model_validate(item) for item in items],
            "pagination": build_pagination(paging.page, paging.limit, total),
        }
    )


@router.post("", status_code=201)
def create_schedule(
    payload: ShiftCreate,
    request: Request,
    subject: Subject = Depends(get_current_subject),
    db: Session = Depends(get_db),
):
    assignment = schedule_service.create_assignment(db, payload, subject)
    created = ShiftRead.model_validate(assignment)
    record_activity(db, subject.id, "create_schedule", "schedules", created.id, after=payload, request=request)
    return success({"message": "Schedule created", "schedule_id": created.id, "schedule": created}, status_code=201)


@router.get("/my")
def my_schedules(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    subject: Subject = Depends(get_current_subject),
    db: Session = Depends(get_db),
):
    items = schedule_service.list_own_assignments(db, subject, start_date, end_date)
    return success({"schedules": [ShiftRead.model_validate(item) for item in items]})


@router.get("/stats")
def schedule_stats(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    subject: Subject = Depends(get_current_subject),
    db: Session = Depends(get_db),
):
    stats = schedule_service.schedule_stats(db, subject, start_date, end_date)
    return success({"stats": stats})


@router.get("/{schedule_id}")
def get_schedule(schedule_id: int, subject: Subject = Depends(get_current_subject), db: Session = Depends(get_db)):
    assignment = schedule_service.get_assignment(db, schedule_id, subject)
    return success({"schedule": ShiftRead.model_validate(assignment)})


@router.put("/{schedule_id}")
def update_schedule(
    schedule_id: int,
    payload: ShiftUpdate,
    request: Request,
    subject: Subject = Depends(get_current_subject),
    db: Session = Depends(get_db),
):
    previous, assignment = schedule_service.update_assignment(db, schedule_id, payload, subject)
    current = ShiftRead.model_validate(assignment)
    record_activity(db, subject.id, "update_schedule", "schedules", schedule_id, before=previous, after=payload, request=request)
    return success({"message": "Schedule updated", "schedule": current})


@router.delete("/{schedule_id}")
def delete_schedule(
    schedule_id: int,
    request: Request,
    subject: Subject = Depends(get_current_subject),
    db: Session = Depends(get_db),
):
    snapshot = schedule_service.delete_assignment(db, schedule_id, subject)
    record_activity(db, subject.id, "delete_schedule", "schedules", schedule_id, before=snapshot, request=request)
    return success({"message": "Schedule deleted"})
