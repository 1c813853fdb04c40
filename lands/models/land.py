"""Land aggregate - claimed regions, members and roles of one named land."""

from __future__ import annotations
from datetime import datetime
from typing import Iterable, Optional, Sequence
import uuid

from pydantic import BaseModel, Field

from lands.errors import ConflictError, InvalidOperationError, NotFoundError
from lands.models.permissions import (
    LandPermission,
    LandRole,
    MEMBER_ROLE,
    OWNER_ROLE,
    BASIC_PERMISSIONS,
    get_default_roles,
)
from lands.models.region import Region, bounding_region
from lands.models.region_graph import is_contiguous, link_adjacent, total_volume


class RegionRecord(BaseModel):
    """Serializable form of a Region (corners only, edges are re-derived)."""
    corner1: tuple[int, int, int]
    corner2: tuple[int, int, int]

    @classmethod
    def from_region(cls, region: Region) -> "RegionRecord":
        return cls(corner1=region.corner1, corner2=region.corner2)

    def to_region(self) -> Region:
        return Region(self.corner1, self.corner2)


class LandRecord(BaseModel):
    """Serializable snapshot of a Land."""
    id: str
    name: str
    owner: str
    regions: list[RegionRecord] = Field(default_factory=list)
    members: dict[str, str] = Field(default_factory=dict)
    roles: dict[str, LandRole] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=datetime.now)


class Land:
    """A named claim: a set of regions, an owner, members and roles.

    The owner is always a member with the ``owner`` role and implicitly holds
    every permission. Every member's role name resolves in ``roles``.
    """

    def __init__(
        self,
        name: str,
        owner: str,
        regions: Iterable[Region] = (),
        members: Optional[dict[str, str]] = None,
        roles: Optional[dict[str, LandRole]] = None,
        id: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ):
        self.id = id or str(uuid.uuid4())
        self.name = name
        self.owner = owner
        self.created_at = created_at or datetime.now()

        self.roles: dict[str, LandRole] = roles if roles is not None else get_default_roles()
        if OWNER_ROLE not in self.roles:
            self.roles[OWNER_ROLE] = LandRole(name=OWNER_ROLE, permissions=set(LandPermission))

        self.members: dict[str, str] = dict(members or {})
        self.members[owner] = OWNER_ROLE

        self._regions: set[Region] = set(regions)
        self._volume: Optional[int] = None
        self.revision = 0

    def __repr__(self) -> str:
        return f"Land({self.name!r}, owner={self.owner!r}, regions={len(self._regions)})"

    # ===== Regions =====

    @property
    def regions(self) -> frozenset[Region]:
        return frozenset(self._regions)

    def sorted_regions(self) -> list[Region]:
        return sorted(self._regions, key=Region.sort_key)

    def _regions_changed(self) -> None:
        self._volume = None
        self.revision += 1

    def claim_regions(self, new_regions: Iterable[Region]) -> None:
        """Add regions. Overlap and adjacency must already be resolved."""
        self._regions.update(new_regions)
        self._regions_changed()

    def unclaim_regions(self, regions: Iterable[Region]) -> None:
        """Drop regions (matched by corners) and detach them from the graph."""
        by_value = {region: region for region in self._regions}
        for region in regions:
            owned = by_value.pop(region, None)
            if owned is not None:
                owned.clear_adjacent_regions()
                self._regions.discard(owned)
        self._regions_changed()

    def set_regions(self, regions: Iterable[Region]) -> None:
        """Replace the whole region set; retired regions are detached."""
        replacement = {region.handle: region for region in regions}
        for region in self._regions:
            if region.handle not in replacement:
                region.clear_adjacent_regions()
        self._regions = set(replacement.values())
        self._regions_changed()

    def merge_regions(self, to_fixed_point: bool = True) -> int:
        """Coalesce touching coplanar regions into larger cuboids.

        One pass scans the regions in corner order and folds each into the
        first already-kept region it can merge with. With ``to_fixed_point``
        the pass repeats until nothing merges. Returns the number of merges.
        """
        total = 0
        while True:
            merged: list[Region] = []
            merges = 0
            for region in self.sorted_regions():
                for i, kept in enumerate(merged):
                    if kept.can_merge_with(region):
                        merged[i] = kept.merge(region)
                        merges += 1
                        break
                else:
                    merged.append(region)
            self._regions = set(merged)
            total += merges
            if not merges or not to_fixed_point:
                break

        if total:
            self._regions_changed()
        return total

    def get_volume(self) -> int:
        if self._volume is None:
            self._volume = total_volume(self._regions)
        return self._volume

    def is_contiguous(self) -> bool:
        return is_contiguous(self.sorted_regions())

    def contains(self, point: Sequence[int]) -> bool:
        return any(region.contains(point) for region in self._regions)

    def bounds(self) -> Optional[Region]:
        return bounding_region(self._regions)

    # ===== Members & roles =====

    def is_owner(self, player: str) -> bool:
        return player == self.owner

    def is_member(self, player: str) -> bool:
        return player in self.members

    def get_member_role(self, player: str) -> Optional[LandRole]:
        role_name = self.members.get(player)
        if role_name is None:
            return None
        return self.roles.get(role_name)

    def has_permission(self, player: str, permission: LandPermission) -> bool:
        """Owner always passes; anyone else needs the permission on their role."""
        if self.is_owner(player):
            return True
        role = self.get_member_role(player)
        return role is not None and role.has(permission)

    def get_role(self, name: str) -> LandRole:
        role = self.roles.get(name)
        if role is None:
            raise NotFoundError(f"Role '{name}' does not exist in land '{self.name}'")
        return role

    def add_role(self, role: LandRole) -> None:
        if role.name in self.roles:
            raise ConflictError(f"Role '{role.name}' already exists in land '{self.name}'")
        self.roles[role.name] = role

    def remove_role(self, name: str) -> LandRole:
        if name == OWNER_ROLE:
            raise InvalidOperationError("The owner role cannot be deleted")
        role = self.get_role(name)
        del self.roles[name]
        return role

    def fallback_role_name(self, excluding: Optional[str] = None) -> str:
        """Name of a non-admin role to reassign members to.

        Creates a basic member role when no other non-admin role exists.
        """
        for name in sorted(self.roles):
            if name != excluding and not self.roles[name].is_admin:
                return name

        name = MEMBER_ROLE
        suffix = 1
        while name in self.roles or name == excluding:
            name = f"{MEMBER_ROLE}_{suffix}"
            suffix += 1
        self.roles[name] = LandRole(name=name, permissions=set(BASIC_PERMISSIONS))
        return name

    def reassign_members(self, from_role: str, to_role: str) -> list[str]:
        """Move every member holding ``from_role`` to ``to_role``."""
        moved = [player for player, role in self.members.items() if role == from_role]
        for player in moved:
            self.members[player] = to_role
        return moved

    # ===== Serialization =====

    def to_record(self) -> LandRecord:
        return LandRecord(
            id=self.id,
            name=self.name,
            owner=self.owner,
            regions=[RegionRecord.from_region(r) for r in self.sorted_regions()],
            members=dict(self.members),
            roles={name: role.model_copy(deep=True) for name, role in self.roles.items()},
            created_at=self.created_at,
        )

    @classmethod
    def from_record(cls, record: LandRecord) -> "Land":
        """Rebuild a land; adjacency edges are re-derived from geometry."""
        regions = [r.to_region() for r in record.regions]
        link_adjacent(regions)
        return cls(
            name=record.name,
            owner=record.owner,
            regions=regions,
            members=dict(record.members),
            roles={name: role.model_copy(deep=True) for name, role in record.roles.items()},
            id=record.id,
            created_at=record.created_at,
        )

    def summary(self) -> str:
        """Generate a text summary of the land."""
        lines = [
            f"=== {self.name} ===",
            f"Owner: {self.owner}",
            f"Created: {self.created_at:%Y-%m-%d %H:%M}",
            f"Volume: {self.get_volume()} blocks in {len(self._regions)} region(s)",
        ]
        bounds = self.bounds()
        if bounds is not None:
            lines.append(f"Bounds: {bounds.corner1} -> {bounds.corner2}")

        lines.append("")
        lines.append("--- Members ---")
        for player, role in sorted(self.members.items()):
            lines.append(f"  {player}: {role}")

        lines.append("")
        lines.append("--- Roles ---")
        for name in sorted(self.roles):
            lines.append(f"  {self.roles[name].summary()}")

        return "\n".join(lines)
