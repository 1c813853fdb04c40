"""Land permissions and roles."""

from __future__ import annotations
from enum import Enum
from typing import Iterable

from pydantic import BaseModel, Field


class LandPermission(str, Enum):
    """Actions a land can grant to its members."""
    BUILD = "build"
    BREAK = "break"
    INTERACT = "interact"
    CONTAINER = "container"
    MANAGE_MEMBERS = "manage_members"
    MANAGE_ROLES = "manage_roles"
    CLAIM = "claim"
    UNCLAIM = "unclaim"

    @property
    def description(self) -> str:
        return PERMISSION_INFO[self][0]

    @property
    def weight(self) -> int:
        """Hierarchy weight: 0 for basic actions, positive for management."""
        return PERMISSION_INFO[self][1]

    @property
    def is_admin(self) -> bool:
        return self.weight > 0

    @classmethod
    def parse(cls, value: "str | LandPermission") -> "LandPermission":
        """Accept enum members, values ("build") or names ("BUILD")."""
        if isinstance(value, cls):
            return value
        text = str(value).strip()
        try:
            return cls(text.lower())
        except ValueError:
            pass
        try:
            return cls[text.upper()]
        except KeyError:
            raise ValueError(f"Unknown permission: {value}") from None


PERMISSION_INFO: dict[LandPermission, tuple[str, int]] = {
    LandPermission.BUILD: ("Place blocks", 0),
    LandPermission.BREAK: ("Break blocks", 0),
    LandPermission.INTERACT: ("Use doors/levers", 0),
    LandPermission.CONTAINER: ("Access chests", 0),
    LandPermission.MANAGE_MEMBERS: ("Add/remove members", 2),
    LandPermission.MANAGE_ROLES: ("Edit roles", 3),
    LandPermission.CLAIM: ("Create regions", 1),
    LandPermission.UNCLAIM: ("Delete regions", 2),
}

BASIC_PERMISSIONS = frozenset({
    LandPermission.BUILD,
    LandPermission.BREAK,
    LandPermission.INTERACT,
    LandPermission.CONTAINER,
})

OWNER_ROLE = "owner"
ADMIN_ROLE = "admin"
MEMBER_ROLE = "member"
OUTSIDER_ROLE = "outsider"


def permissions_weight(permissions: Iterable[LandPermission]) -> int:
    return sum(LandPermission.parse(p).weight for p in set(permissions))


class LandRole(BaseModel):
    """A named, mutable set of permissions.

    ``weight`` and ``is_admin`` are derived from the current permission set,
    so they always reflect the latest mutation.
    """
    name: str
    permissions: set[LandPermission] = Field(default_factory=set)

    @property
    def weight(self) -> int:
        return permissions_weight(self.permissions)

    @property
    def is_admin(self) -> bool:
        return any(p.is_admin for p in self.permissions)

    def has(self, permission: LandPermission) -> bool:
        return permission in self.permissions

    def grant(self, permission: LandPermission) -> None:
        self.permissions.add(LandPermission.parse(permission))

    def revoke(self, permission: LandPermission) -> None:
        self.permissions.discard(LandPermission.parse(permission))

    def set_permissions(self, permissions: Iterable[LandPermission]) -> None:
        self.permissions = {LandPermission.parse(p) for p in permissions}

    def summary(self) -> str:
        perms = ", ".join(sorted(p.value for p in self.permissions)) or "none"
        return f"{self.name} (weight {self.weight}): {perms}"


def member_role() -> LandRole:
    return LandRole(name=MEMBER_ROLE, permissions=set(BASIC_PERMISSIONS))


def get_default_roles() -> dict[str, LandRole]:
    """Roles every new land starts with: owner, admin, member, outsider."""
    everything = set(LandPermission)
    admin = everything - {
        LandPermission.MANAGE_ROLES,
        LandPermission.CLAIM,
        LandPermission.UNCLAIM,
    }
    return {
        OWNER_ROLE: LandRole(name=OWNER_ROLE, permissions=everything),
        ADMIN_ROLE: LandRole(name=ADMIN_ROLE, permissions=admin),
        MEMBER_ROLE: member_role(),
        OUTSIDER_ROLE: LandRole(name=OUTSIDER_ROLE),
    }
