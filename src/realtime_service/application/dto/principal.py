from __future__ import annotations

from dataclasses import dataclass, field

from realtime_service.domain.value_objects.enums import UserType

_INTERNAL_TYPES = frozenset({UserType.ADMIN.value, UserType.SYSTEM.value})


@dataclass(frozen=True, slots=True)
class Principal:
    """Authenticated caller identity extracted from JWT."""

    user_id: str
    user_type: UserType = UserType.CUSTOMER
    roles: list[str] = field(default_factory=list)

    @property
    def is_student(self) -> bool:
        return self.user_type == UserType.CUSTOMER

    @property
    def is_internal(self) -> bool:
        """Admins and backend services may push events to arbitrary users."""
        return self.user_type in _INTERNAL_TYPES or any(r in _INTERNAL_TYPES for r in self.roles)
