from __future__ import annotations

from typing import Any

from realtime_service.application.dto.principal import Principal
from realtime_service.domain.value_objects.enums import UserType


def principal_from_claims(payload: dict[str, Any]) -> Principal:
    user_id = payload.get("userId") or payload["sub"]
    type_raw = payload.get("userType", UserType.CUSTOMER)
    user_type = UserType(type_raw) if type_raw in UserType.__members__.values() else UserType.CUSTOMER
    return Principal(
        user_id=str(user_id),
        user_type=user_type,
        roles=list(payload.get("roles", [])),
    )
