"""Role hierarchy used by every authorization gate."""

from __future__ import annotations

import enum


class Role(str, enum.Enum):
    STAFF = "staff"
    CHEF = "chef"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"


ROLE_LEVELS: dict[Role, int] = {
    Role.STAFF: 1,
    Role.CHEF: 2,
    Role.ADMIN: 3,
    Role.SUPER_ADMIN: 4,
}


def parse_role(value: Role | str | None) -> Role | None:
    if isinstance(value, Role):
        return value
    try:
        return Role(value)
    except ValueError:
        return None


def role_level(role: Role | str | None) -> int:
    """Return the rank of ``role``; unknown roles rank 0 and fail every gate."""
    parsed = parse_role(role)
    if parsed is None:
        return 0
    return ROLE_LEVELS[parsed]


def at_least(role: Role | str | None, required: Role | str) -> bool:
    level = role_level(role)
    return level > 0 and level >= role_level(required)


def roles_at_or_below(role: Role | str | None) -> list[Role]:
    level = role_level(role)
    return [candidate for candidate, rank in ROLE_LEVELS.items() if rank <= level]
