from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, Optional

from fastapi import Depends, Header, HTTPException, status


class Role(str, Enum):
    GUEST = "Guest"
    EMPLOYEE = "Employee"
    SUPER_ADMIN = "SuperAdmin"


ALL_ROLES = (Role.GUEST, Role.EMPLOYEE, Role.SUPER_ADMIN)
STAFF_ROLES = (Role.EMPLOYEE, Role.SUPER_ADMIN)


@dataclass(frozen=True)
class User:
    id: str
    roles: FrozenSet[Role] = field(default_factory=frozenset)

    def has_any_role(self, *roles: Role) -> bool:
        return bool(self.roles.intersection(roles))


def parse_roles(raw: str) -> FrozenSet[Role]:
    roles = set()
    for name in raw.split(","):
        name = name.strip()
        if not name:
            continue
        try:
            roles.add(Role(name))
        except ValueError:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail=f"Unknown role: {name}",
            )
    return frozenset(roles)


# The gateway in front of this service validates the bearer token and
# forwards the verified caller in these headers.
async def get_current_user(
    x_user_id: Optional[str] = Header(default=None),
    x_user_roles: str = Header(default=""),
) -> User:
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return User(id=x_user_id, roles=parse_roles(x_user_roles))


def require_roles(*roles: Role):
    """Dependency factory: the caller must hold at least one of ``roles``."""

    async def checker(user: User = Depends(get_current_user)) -> User:
        if not user.has_any_role(*roles):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You do not have permission to perform this action",
            )
        return user

    return checker


def ensure_self(user: User, user_id: str):
    # The current logged-in user must be the one the request is made for
    if user.id != user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
