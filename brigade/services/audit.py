"""Activity log writer.

Entries are written after the primary operation has committed. A failure
here is logged and swallowed so that auditing can never undo or block the
change it describes.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models import ActivityLog

logger = logging.getLogger(__name__)


def _encode(values: Any) -> Any:
    if values is None:
        return None
    if hasattr(values, "model_dump"):
        values = values.model_dump(mode="json", exclude_unset=True, exclude={"password"})
    return jsonable_encoder(values)


def record_activity(
    db: Session,
    actor_id: Optional[int],
    action: str,
    resource_type: Optional[str] = None,
    resource_id: Optional[int] = None,
    before: Any = None,
    after: Any = None,
    request: Optional[Request] = None,
) -> None:
    try:
        entry = ActivityLog(
            user_id=actor_id,
            action=action,
            table_name=resource_type,
            record_id=resource_id,
            old_values=_encode(before),
            new_values=_encode(after),
            ip_address=request.client.host if request and request.client else None,
            user_agent=request.headers.get("user-agent") if request else None,
        )
        db.add(entry)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to record activity %s on %s/%s", action, resource_type, resource_id)
    except (TypeError, ValueError):
        logger.exception("Could not encode activity %s on %s/%s", action, resource_type, resource_id)
