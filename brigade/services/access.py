"""Authorization decisions for recipes, schedules and user records.

Every check receives the acting :class:`Subject` explicitly and returns a
:class:`Decision`. Decisions never touch the database; callers load whatever
resource is being guarded and pass it in.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from ..errors import PermissionDeniedError
from .roles import Role, at_least, parse_role

logger = logging.getLogger(__name__)

RECIPE_ACTIONS = {"create": Role.CHEF, "update": Role.CHEF, "delete": Role.ADMIN}
SCHEDULE_FIELDS = ("user_id", "shift_date", "shift_type", "start_time", "end_time", "status", "notes")
SELF_SERVICE_SCHEDULE_FIELDS = frozenset({"status"})


@dataclass(frozen=True)
class Subject:
    id: int
    role: Role
    is_active: bool = True
    full_name: str = ""

    @property
    def is_admin(self) -> bool:
        return at_least(self.role, Role.ADMIN)


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: Optional[str] = None

    def __bool__(self) -> bool:
        return self.allowed


ALLOW = Decision(True)


def deny(reason: str) -> Decision:
    return Decision(False, reason)


def ensure(decision: Decision) -> None:
    """Raise :class:`PermissionDeniedError` for a denied decision.

    The reason is logged but never handed to the caller.
    """
    if not decision:
        logger.info("Permission denied: %s", decision.reason)
        raise PermissionDeniedError()


def _require(subject: Subject, role: Role) -> Decision:
    if at_least(subject.role, role):
        return ALLOW
    return deny(f"role {subject.role.value} is below {role.value}")


def can_view_recipe(subject: Subject, recipe) -> Decision:
    if not recipe.is_active:
        return deny("recipe is inactive")
    if not at_least(subject.role, recipe.min_role):
        return deny(f"recipe requires {recipe.min_role}")
    return ALLOW


def can_mutate_recipe(subject: Subject, action: str) -> Decision:
    required = RECIPE_ACTIONS.get(action)
    if required is None:
        return deny(f"unknown recipe action {action!r}")
    return _require(subject, required)


def can_view_schedule(subject: Subject, assignment) -> Decision:
    if subject.is_admin or assignment.user_id == subject.id:
        return ALLOW
    return deny("assignment belongs to another user")


def schedule_owner_scope(subject: Subject) -> Optional[int]:
    """User id that schedule listings must be restricted to, or ``None``."""
    return None if subject.is_admin else subject.id


def can_create_schedule(subject: Subject) -> Decision:
    return _require(subject, Role.ADMIN)


def can_delete_schedule(subject: Subject) -> Decision:
    return _require(subject, Role.ADMIN)


def can_view_schedule_stats(subject: Subject) -> Decision:
    return _require(subject, Role.ADMIN)


def can_mutate_schedule_field(subject: Subject, assignment, field: str) -> Decision:
    if field not in SCHEDULE_FIELDS:
        return deny(f"unknown field {field!r}")
    if subject.is_admin:
        return ALLOW
    if assignment.user_id != subject.id:
        return deny("assignment belongs to another user")
    if field not in SELF_SERVICE_SCHEDULE_FIELDS:
        return deny(f"field {field!r} is admin-only")
    return ALLOW


def can_assign_role(subject: Subject, target_role: Role | str) -> Decision:
    target = parse_role(target_role)
    if target is None:
        return deny(f"unknown role {target_role!r}")
    # Exact match; rank alone never grants super_admin.
    if target is Role.SUPER_ADMIN:
        if subject.role is Role.SUPER_ADMIN:
            return ALLOW
        return deny("only super_admin may assign super_admin")
    return _require(subject, Role.ADMIN)


def can_manage_users(subject: Subject) -> Decision:
    return _require(subject, Role.ADMIN)


def can_view_user_record(subject: Subject, target_user_id: int) -> Decision:
    if subject.id == target_user_id:
        return ALLOW
    return _require(subject, Role.ADMIN)


def can_delete_user_record(subject: Subject, target_user_id: int) -> Decision:
    if subject.id == target_user_id:
        return deny("subjects cannot delete their own record")
    return _require(subject, Role.ADMIN)
