from fastapi import Depends, Header, Query
from sqlalchemy.orm import Session

from .config import get_settings
from .db import get_db
from .services import sessions
from .services.access import Subject

settings = get_settings()


def get_current_subject(
    authorization: str | None = Header(default=None),
    db: Session = Depends(get_db),
) -> Subject:
    return sessions.verify(db, sessions.bearer_credential(authorization))


class PageParams:
    """Pagination query parameters shared by list endpoints."""

    def __init__(
        self,
        page: int = Query(1, ge=1, description="Page number"),
        limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size, description="Items per page"),
    ):
        self.page = page
        self.limit = limit
