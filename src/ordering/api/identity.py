"""Caller identity for the API.

Authentication happens upstream. The gateway forwards the authenticated user
as ``X-User-Id`` and ``X-User-Role`` headers, and requests without them are
rejected with 401.
"""

from dataclasses import dataclass
from enum import Enum

from fastapi import Header, HTTPException

from ordering.exceptions import UnauthorizedError
from ordering.utils.logging import add_context


class Role(Enum):
    CUSTOMER = "customer"
    ADMIN = "admin"
    DELIVERY = "delivery"


@dataclass(frozen=True)
class Actor:
    user_id: str
    role: Role

    def require(self, *roles: Role) -> None:
        """Raise UnauthorizedError unless the actor holds one of ``roles``."""
        if self.role not in roles:
            allowed = ", ".join(role.value for role in roles)
            raise UnauthorizedError({"role": [f"This action requires one of: {allowed}"]})


async def current_actor(
    x_user_id: str = Header(default=""),
    x_user_role: str = Header(default=""),
) -> Actor:
    if not x_user_id or not x_user_role:
        raise HTTPException(status_code=401, detail="Authentication required")
    try:
        role = Role(x_user_role.lower())
    except ValueError as exc:
        raise HTTPException(status_code=401, detail=f"Unknown role: {x_user_role}") from exc

    add_context(user_id=x_user_id, role=role.value)
    return Actor(user_id=x_user_id, role=role)
