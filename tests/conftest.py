"""Shared fixtures for the Brigade test suite.

The settings cache and the engine are created on first import of
``brigade``, so the environment is prepared before anything else runs.
Every test gets freshly created tables in a throwaway SQLite file.
"""

import itertools
import os
import tempfile
from datetime import date, time
from pathlib import Path

import pytest

_DATA_DIR = Path(tempfile.mkdtemp(prefix="brigade-tests-"))
os.environ["DATABASE_URL"] = f"sqlite:///{_DATA_DIR / 'brigade.db'}"
os.environ["RUN_MIGRATIONS_ON_STARTUP"] = "false"
os.environ["SECRET_KEY"] = "test-secret-key"

from fastapi.testclient import TestClient  # noqa: E402

from brigade.db import SessionLocal, engine  # noqa: E402
from brigade.main import app  # noqa: E402
from brigade.models import Base, RecipeCategory, ShiftAssignment, User  # noqa: E402
from brigade.services.access import Subject  # noqa: E402
from brigade.services.roles import Role  # noqa: E402
from brigade.services.sessions import get_password_hash, issue_token  # noqa: E402

PASSWORD = "kitchen-pass"
# bcrypt is slow on purpose; hash once for every fixture user.
PASSWORD_HASH = get_password_hash(PASSWORD)

SHIFT_HOURS = {
    "morning": (time(8, 0), time(12, 0)),
    "afternoon": (time(12, 0), time(17, 0)),
    "evening": (time(17, 0), time(22, 0)),
}


def subject_for(user: User) -> Subject:
    return Subject(id=user.id, role=Role(user.role), is_active=user.is_active, full_name=user.full_name)


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {issue_token(user)}"}


@pytest.fixture(autouse=True)
def fresh_schema():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def make_user(db):
    counter = itertools.count(1)

    def _make(role: str = "staff", username: str | None = None, is_active: bool = True) -> User:
        number = next(counter)
        username = username or f"{role}{number}"
        user = User(
            username=username,
            email=f"{username}@example.com",
            password_hash=PASSWORD_HASH,
            full_name=f"{role.replace('_', ' ').title()} {number}",
            role=role,
            is_active=is_active,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def make_shift(db):
    def _make(
        user: User,
        shift_date: date,
        shift_type: str = "morning",
        status: str = "scheduled",
        creator: User | None = None,
    ) -> ShiftAssignment:
        start, end = SHIFT_HOURS[shift_type]
        assignment = ShiftAssignment(
            user_id=user.id,
            shift_date=shift_date,
            shift_type=shift_type,
            start_time=start,
            end_time=end,
            status=status,
            created_by=creator.id if creator else None,
        )
        db.add(assignment)
        db.commit()
        db.refresh(assignment)
        return assignment

    return _make


@pytest.fixture
def category(db) -> RecipeCategory:
    row = RecipeCategory(name="Main Course", description="Plated mains")
    db.add(row)
    db.commit()
    db.refresh(row)
    return row
