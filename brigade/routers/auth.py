from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ..config import get_settings
from ..db import get_db
from ..dependencies import get_current_subject
from ..models import User
from ..responses import success
from ..schemas.auth import LoginRequest, TokenResponse
from ..schemas.user import UserRead
from ..services import sessions
from ..services.access import Subject
from ..services.audit import record_activity

router = APIRouter(prefix="/api/auth", tags=["auth"])
settings = get_settings()


def _token_payload(user: User) -> TokenResponse:
    return TokenResponse(
        token=sessions.issue_token(user),
        expires_in=settings.token_ttl_minutes * 60,
        user=UserRead.model_validate(user),
    )


@router.post("/login")
def login(payload: LoginRequest, request: Request, db: Session = Depends(get_db)):
    user = sessions.authenticate(db, payload.username, payload.password)
    response = _token_payload(user)
    record_activity(db, user.id, "login", request=request)
    return success({"message": "Login successful", **response.model_dump()})


@router.post("/logout")
def logout(
    request: Request,
    subject: Subject = Depends(get_current_subject),
    db: Session = Depends(get_db),
):
    record_activity(db, subject.id, "logout", request=request)
    return success({"message": "Logout successful"})


@router.get("/profile")
def profile(subject: Subject = Depends(get_current_subject), db: Session = Depends(get_db)):
    user = db.query(User).filter(User.id == subject.id).one()
    return success({"user": UserRead.model_validate(user)})


@router.post("/refresh")
def refresh(subject: Subject = Depends(get_current_subject), db: Session = Depends(get_db)):
    user = db.query(User).filter(User.id == subject.id).one()
    response = _token_payload(user)
    return success({"message": "Token refreshed", "token": response.token, "expires_in": response.expires_in})
