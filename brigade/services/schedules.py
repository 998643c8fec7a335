"""Shift-assignment lifecycle.

A user holds at most one assignment per (user, date, shift type). The check
below gives callers a readable error; the ``uq_shift_assignment_slot``
constraint is what keeps two concurrent writers from both committing.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import date
from typing import Iterator, Optional

from sqlalchemy import case, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from ..errors import ConflictError, InvalidTransitionError, NotFoundError, StorageError, ValidationError
from ..models import ShiftAssignment, User
from ..schemas.schedule import ScheduleStats, ShiftCreate, ShiftRead, ShiftUpdate
from .access import (
    Subject,
    can_create_schedule,
    can_delete_schedule,
    can_mutate_schedule_field,
    can_view_schedule,
    can_view_schedule_stats,
    ensure,
    schedule_owner_scope,
)

logger = logging.getLogger(__name__)

SLOT_FIELDS = ("user_id", "shift_date", "shift_type")
STATUS_TRANSITIONS: dict[str, frozenset[str]] = {
    "scheduled": frozenset({"confirmed", "absent"}),
    "confirmed": frozenset({"completed", "absent"}),
    "completed": frozenset(),
    "absent": frozenset(),
}


def has_conflict(
    db: Session,
    user_id: int,
    shift_date: date,
    shift_type: str,
    exclude_id: Optional[int] = None,
) -> bool:
    query = db.query(ShiftAssignment.id).filter(
        ShiftAssignment.user_id == user_id,
        ShiftAssignment.shift_date == shift_date,
        ShiftAssignment.shift_type == shift_type,
    )
    if exclude_id is not None:
        query = query.filter(ShiftAssignment.id != exclude_id)
    return query.first() is not None


def check_transition(current: str, requested: str) -> None:
    if requested == current:
        return
    if requested not in STATUS_TRANSITIONS.get(current, frozenset()):
        raise InvalidTransitionError(f"Cannot change status from {current} to {requested}")


def _load(db: Session, assignment_id: int) -> ShiftAssignment:
    assignment = (
        db.query(ShiftAssignment)
        .options(joinedload(ShiftAssignment.user), joinedload(ShiftAssignment.creator))
        .filter(ShiftAssignment.id == assignment_id)
        .one_or_none()
    )
    if not assignment:
        raise NotFoundError("Schedule not found")
    return assignment


def _ensure_assignable_user(db: Session, user_id: int) -> None:
    active = (
        db.query(User.id)
        .filter(User.id == user_id, User.is_active.is_(True))
        .one_or_none()
    )
    if not active:
        raise ValidationError("user_id: user does not exist or is inactive")


@contextmanager
def _slot_write(db: Session) -> Iterator[None]:
    try:
        yield
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        logger.info("Shift slot write rejected by uniqueness constraint: %s", exc.orig)
        raise ConflictError() from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Shift assignment write failed")
        raise StorageError() from exc


def create_assignment(db: Session, payload: ShiftCreate, creator: Subject) -> ShiftAssignment:
    ensure(can_create_schedule(creator))
    _ensure_assignable_user(db, payload.user_id)
    if has_conflict(db, payload.user_id, payload.shift_date, payload.shift_type):
        raise ConflictError()

    assignment = ShiftAssignment(
        user_id=payload.user_id,
        shift_date=payload.shift_date,
        shift_type=payload.shift_type,
        start_time=payload.start_time,
        end_time=payload.end_time,
        status=payload.status,
        notes=payload.notes,
        created_by=creator.id,
    )
    with _slot_write(db):
        db.add(assignment)
    logger.info("User %s scheduled user %s on %s (%s)", creator.id, payload.user_id, payload.shift_date, payload.shift_type)
    return _load(db, assignment.id)


def update_assignment(
    db: Session,
    assignment_id: int,
    payload: ShiftUpdate,
    subject: Subject,
) -> tuple[ShiftRead, ShiftAssignment]:
    """Apply a partial update and return the previous and current state."""
    assignment = _load(db, assignment_id)
    if not can_view_schedule(subject, assignment):
        ensure(can_mutate_schedule_field(subject, assignment, "status"))
    changes = payload.model_dump(exclude_unset=True)
    if not changes:
        raise ValidationError("No update data provided")

    for field in changes:
        ensure(can_mutate_schedule_field(subject, assignment, field))

    if "status" in changes:
        check_transition(assignment.status, changes["status"])
    if "user_id" in changes and changes["user_id"] != assignment.user_id:
        _ensure_assignable_user(db, changes["user_id"])

    if any(field in changes for field in SLOT_FIELDS):
        slot = {field: changes.get(field, getattr(assignment, field)) for field in SLOT_FIELDS}
        if has_conflict(db, slot["user_id"], slot["shift_date"], slot["shift_type"], exclude_id=assignment.id):
            raise ConflictError()

    previous = ShiftRead.model_validate(assignment)
    with _slot_write(db):
        updated = (
            db.query(ShiftAssignment)
            .filter(ShiftAssignment.id == assignment.id)
            .update(changes, synchronize_session="fetch")
        )
        if not updated:
            db.rollback()
            raise NotFoundError("Schedule not found")
    db.expire_all()
    return previous, _load(db, assignment_id)


def delete_assignment(db: Session, assignment_id: int, subject: Subject) -> ShiftRead:
    """Delete an assignment and return a snapshot of the removed row."""
    ensure(can_delete_schedule(subject))
    assignment = _load(db, assignment_id)
    snapshot = ShiftRead.model_validate(assignment)
    db.delete(assignment)
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Deleting shift assignment %s failed", assignment_id)
        raise StorageError() from exc
    return snapshot


def get_assignment(db: Session, assignment_id: int, subject: Subject) -> ShiftAssignment:
    assignment = _load(db, assignment_id)
    if not can_view_schedule(subject, assignment):
        raise NotFoundError("Schedule not found")
    return assignment


def _date_window(query, start_date: Optional[date], end_date: Optional[date]):
    if start_date:
        query = query.filter(ShiftAssignment.shift_date >= start_date)
    if end_date:
        query = query.filter(ShiftAssignment.shift_date <= end_date)
    return query


def list_assignments(
    db: Session,
    subject: Subject,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[ShiftAssignment], int]:
    query = db.query(ShiftAssignment)
    owner_id = schedule_owner_scope(subject)
    if owner_id is not None:
        query = query.filter(ShiftAssignment.user_id == owner_id)
    query = _date_window(query, start_date, end_date)

    total = query.count()
    items = (
        query.options(joinedload(ShiftAssignment.user), joinedload(ShiftAssignment.creator))
        .order_by(ShiftAssignment.shift_date.desc(), ShiftAssignment.start_time.asc(), ShiftAssignment.id.asc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return items, total


def list_own_assignments(
    db: Session,
    subject: Subject,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> list[ShiftAssignment]:
    query = db.query(ShiftAssignment).filter(ShiftAssignment.user_id == subject.id)
    query = _date_window(query, start_date, end_date)
    return (
        query.options(joinedload(ShiftAssignment.user))
        .order_by(ShiftAssignment.shift_date.asc(), ShiftAssignment.start_time.asc())
        .all()
    )


def _month_bounds(reference: date) -> tuple[date, date]:
    first = reference.replace(day=1)
    if first.month == 12:
        next_month = first.replace(year=first.year + 1, month=1)
    else:
        next_month = first.replace(month=first.month + 1)
    return first, date.fromordinal(next_month.toordinal() - 1)


def schedule_stats(
    db: Session,
    subject: Subject,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> ScheduleStats:
    ensure(can_view_schedule_stats(subject))
    month_start, month_end = _month_bounds(date.today())
    start_date = start_date or month_start
    end_date = end_date or month_end
    normalized_start = min(start_date, end_date)
    normalized_end = max(start_date, end_date)

    row = (
        db.query(
            func.count(ShiftAssignment.id),
            func.count(func.distinct(ShiftAssignment.user_id)),
            func.sum(case((ShiftAssignment.status == "completed", 1), else_=0)),
            func.sum(case((ShiftAssignment.status == "absent", 1), else_=0)),
        )
        .filter(
            ShiftAssignment.shift_date >= normalized_start,
            ShiftAssignment.shift_date <= normalized_end,
        )
        .one()
    )
    total, users, completed, absent = row
    return ScheduleStats(
        start_date=normalized_start,
        end_date=normalized_end,
        total_schedules=total or 0,
        scheduled_users=users or 0,
        completed_schedules=completed or 0,
        absent_schedules=absent or 0,
    )
