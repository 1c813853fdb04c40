"""Land manager - registry of all lands and the claim/membership/role workflows."""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence

from lands.config import LandSettings
from lands.errors import (
    ConflictError,
    InvalidOperationError,
    NotFoundError,
    PermissionDeniedError,
    PreconditionFailedError,
)
from lands.models.land import Land, LandRecord
from lands.models.permissions import (
    LandPermission,
    LandRole,
    OWNER_ROLE,
    permissions_weight,
)
from lands.models.region import Region
from lands.models.region_graph import (
    clone_regions,
    connected_components,
    largest_component,
    link_adjacent,
    total_volume,
)


@dataclass
class UnclaimPlan:
    """Outcome of an unclaim computed on a copy of the land's regions.

    Nothing is applied until ``LandManager.confirm_unclaim`` is called. The
    land keeps ``kept`` (the largest remaining component); every component in
    ``relinquished`` is territory the player gives up.
    """
    land_id: str
    land_name: str
    player: str
    target: Region
    base_revision: int
    removed_volume: int
    kept: set[Region]
    relinquished: list[set[Region]] = field(default_factory=list)

    @property
    def kept_volume(self) -> int:
        return total_volume(self.kept)

    @property
    def relinquished_volumes(self) -> list[int]:
        return [total_volume(c) for c in self.relinquished]

    @property
    def splits_land(self) -> bool:
        return bool(self.relinquished)

    def summary(self) -> str:
        lines = [
            f"Unclaim {self.target.corner1} -> {self.target.corner2} from '{self.land_name}'",
            f"  Removed directly: {self.removed_volume} blocks",
            f"  Kept: {self.kept_volume} blocks in {len(self.kept)} region(s)",
        ]
        for i, volume in enumerate(self.relinquished_volumes, 1):
            lines.append(f"  Disconnected part {i}: {volume} blocks (will be relinquished)")
        return "\n".join(lines)


class LandManager:
    """Owns every Land, indexed by id and by name, plus per-player selection.

    All role, claim and membership commands act on the land the player has
    selected with ``select_land_for_player``.
    """

    def __init__(self, settings: Optional[LandSettings] = None):
        self.settings = settings or LandSettings()
        self._lands_by_id: dict[str, Land] = {}
        self._lands_by_name: dict[str, Land] = {}
        self._selected_land_by_player: dict[str, str] = {}

    # ===== Land lifecycle =====

    def create_land(self, name: str, owner: str, region: Region) -> Land:
        """Create a land with default roles, the owner registered as 'owner'."""
        name = name.strip() if name else ""
        if not name:
            raise InvalidOperationError("Land name cannot be empty")
        if name in self._lands_by_name:
            raise ConflictError(f"Land '{name}' already exists")
        self._check_exclusive(region)

        land = Land(name=name, owner=owner, regions=[Region(region.corner1, region.corner2)])
        self._lands_by_id[land.id] = land
        self._lands_by_name[name] = land
        return land

    def delete_land(self, name: str, actor: Optional[str] = None) -> Land:
        """Remove a land. When ``actor`` is given it must be the owner."""
        land = self.get_land_by_name(name)
        if land is None:
            raise NotFoundError(f"Land '{name}' does not exist")
        if actor is not None and not land.is_owner(actor):
            raise PermissionDeniedError(f"Only the owner can delete land '{name}'")

        del self._lands_by_id[land.id]
        del self._lands_by_name[land.name]
        for player, land_id in list(self._selected_land_by_player.items()):
            if land_id == land.id:
                del self._selected_land_by_player[player]
        land.set_regions([])
        return land

    # ===== Selection =====

    def select_land_for_player(self, player: str, land_name: str) -> Land:
        land = self.get_land_by_name(land_name)
        if land is None:
            raise NotFoundError(f"Land '{land_name}' does not exist")
        self._selected_land_by_player[player] = land.id
        return land

    def clear_selected_land_for_player(self, player: str) -> None:
        self._selected_land_by_player.pop(player, None)

    def get_selected_land_for_player(self, player: str) -> Optional[Land]:
        land_id = self._selected_land_by_player.get(player)
        if land_id is None:
            return None
        return self._lands_by_id.get(land_id)

    def _require_selected_land(self, player: str) -> Land:
        land = self.get_selected_land_for_player(player)
        if land is None:
            raise PreconditionFailedError("No land selected")
        return land

    # ===== Territory =====

    def _check_exclusive(self, region: Region, land: Optional[Land] = None) -> None:
        """Claims are exclusive: a region may not reach into another land."""
        for other in self._lands_by_id.values():
            if other is land:
                continue
            if any(existing.overlaps(region) for existing in other.regions):
                raise ConflictError(f"Region overlaps land '{other.name}'")

    def claim_region(self, player: str, new_region: Region) -> list[Region]:
        """Add ``new_region`` to the player's selected land.

        The candidate must touch or overlap the land. Parts already claimed
        are cut away with ``subtract``; the remaining pieces are linked to the
        regions they touch, added, and a merge pass runs. Returns the pieces
        that were added, before merging.
        """
        land = self._require_selected_land(player)
        if not land.has_permission(player, LandPermission.CLAIM):
            raise PermissionDeniedError(f"You cannot claim land for '{land.name}'")
        self._check_exclusive(new_region, land)

        existing = land.sorted_regions()
        connected = False
        pieces = [Region(new_region.corner1, new_region.corner2)]

        for region in existing:
            split: list[Region] = []
            for piece in pieces:
                if piece.overlaps(region):
                    connected = True
                    remainder = piece.subtract(region)
                    piece.clear_adjacent_regions()
                    split.extend(sorted(remainder, key=Region.sort_key))
                else:
                    split.append(piece)
            pieces = split

        if not pieces:
            raise InvalidOperationError(f"That region is already part of '{land.name}'")

        touching = [
            (piece, region)
            for piece in pieces
            for region in existing
            if piece.is_adjacent_to(region)
        ]
        if not connected and not touching:
            raise InvalidOperationError(
                f"The new region must be adjacent to the existing territory of '{land.name}'"
            )

        for piece, region in touching:
            piece.add_adjacent_region(region)
        link_adjacent(pieces)

        existing_handles = {region.handle for region in existing}
        for component in connected_components(existing + pieces):
            if not any(region.handle in existing_handles for region in component):
                for piece in pieces:
                    piece.clear_adjacent_regions()
                raise InvalidOperationError("Part of the new region would be disconnected from the land")

        land.claim_regions(pieces)
        land.merge_regions(self.settings.merge_to_fixed_point)
        return pieces

    def unclaim_region(self, player: str, region_to_remove: Region) -> UnclaimPlan:
        """Compute the effect of removing a region, without applying it.

        Works on a deep copy of the land's region graph. If the cut splits
        the land, the largest component is kept and the others are listed as
        territory to relinquish. Commit with ``confirm_unclaim``.
        """
        land = self._require_selected_land(player)
        if not land.has_permission(player, LandPermission.UNCLAIM):
            raise PermissionDeniedError(f"You cannot unclaim land from '{land.name}'")

        target = Region(region_to_remove.corner1, region_to_remove.corner2)
        originals = land.sorted_regions()
        if not any(region.overlaps(target) for region in originals):
            raise InvalidOperationError(f"That region is not part of '{land.name}'")

        clones = clone_regions(originals)
        remaining: list[Region] = []
        for original in originals:
            clone = clones[original.handle]
            if clone.overlaps(target):
                remainder = clone.subtract(target)
                clone.clear_adjacent_regions()
                remaining.extend(sorted(remainder, key=Region.sort_key))
            else:
                remaining.append(clone)

        if not remaining:
            raise InvalidOperationError(
                f"Unclaiming would remove all of '{land.name}'; delete the land instead"
            )

        components = connected_components(remaining)
        kept = largest_component(components)
        relinquished = [c for c in components if c is not kept]

        return UnclaimPlan(
            land_id=land.id,
            land_name=land.name,
            player=player,
            target=target,
            base_revision=land.revision,
            removed_volume=land.get_volume() - total_volume(remaining),
            kept=kept,
            relinquished=relinquished,
        )

    def confirm_unclaim(self, player: str, plan: UnclaimPlan) -> Land:
        """Apply a plan from ``unclaim_region``: the land keeps ``plan.kept``."""
        land = self._require_selected_land(player)
        if plan.player != player or plan.land_id != land.id:
            raise PreconditionFailedError("This unclaim was prepared for a different land selection")
        if plan.base_revision != land.revision:
            raise PreconditionFailedError(
                f"'{land.name}' changed since the unclaim was prepared; run it again"
            )
        if not land.has_permission(player, LandPermission.UNCLAIM):
            raise PermissionDeniedError(f"You cannot unclaim land from '{land.name}'")

        for component in plan.relinquished:
            for region in component:
                region.clear_adjacent_regions()
        land.set_regions(plan.kept)
        land.merge_regions(self.settings.merge_to_fixed_point)
        return land

    # ===== Authorization =====

    def _authorize(self, land: Land, actor: str, permission: LandPermission) -> LandRole:
        """Gate member/role management.

        Only the owner passes unless delegated management is enabled, in
        which case the actor's role must carry ``permission``.
        """
        role = land.get_member_role(actor)
        if role is None:
            raise PermissionDeniedError(f"You are not a member of '{land.name}'")
        if not land.is_owner(actor) and not self.settings.allow_delegated_management:
            raise PermissionDeniedError(f"Only the owner of '{land.name}' can do that")
        if not land.has_permission(actor, permission):
            raise PermissionDeniedError(
                f"You need the {permission.name} permission on '{land.name}'"
            )
        return role

    def _check_rank(self, land: Land, actor: str, actor_role: LandRole, weight: int, what: str) -> None:
        if land.is_owner(actor):
            return
        if weight > actor_role.weight:
            raise InvalidOperationError(f"You cannot manage {what} with more permissions than your own role")

    # ===== Membership =====

    def trust_player(self, actor: str, target: str, role_name: str) -> None:
        """Make ``target`` a member of the selected land with ``role_name``."""
        land = self._require_selected_land(actor)
        if land.is_owner(target):
            raise InvalidOperationError("Cannot assign a role to the land owner")
        if land.is_member(target):
            raise ConflictError(f"{target} is already a member of '{land.name}'")

        actor_role = self._authorize(land, actor, LandPermission.MANAGE_MEMBERS)
        role = land.get_role(role_name)
        if role_name == OWNER_ROLE:
            raise InvalidOperationError("The owner role cannot be given to other players")
        self._check_rank(land, actor, actor_role, role.weight, f"role '{role_name}'")

        land.members[target] = role_name

    def untrust_player(self, actor: str, target: str) -> str:
        """Remove ``target`` from the selected land. Returns their former role."""
        land = self._require_selected_land(actor)
        if not land.is_member(target):
            raise NotFoundError(f"{target} is not a member of '{land.name}'")
        if actor == target:
            raise InvalidOperationError("You cannot untrust yourself")
        if land.is_owner(target):
            raise InvalidOperationError("Cannot untrust the land owner")

        actor_role = self._authorize(land, actor, LandPermission.MANAGE_MEMBERS)
        target_role = land.get_member_role(target)
        if target_role is not None:
            self._check_rank(land, actor, actor_role, target_role.weight, f"member {target}")

        return land.members.pop(target)

    def assign_role(self, actor: str, target: str, role_name: str) -> str:
        """Move an existing member to another role. Returns the previous role."""
        land = self._require_selected_land(actor)
        if not land.is_member(target):
            raise NotFoundError(f"{target} is not a member of '{land.name}'")
        if land.is_owner(target):
            raise InvalidOperationError("The owner's role cannot be reassigned")
        if actor == target:
            raise InvalidOperationError("You cannot change your own role")

        actor_role = self._authorize(land, actor, LandPermission.MANAGE_MEMBERS)
        role = land.get_role(role_name)
        if role_name == OWNER_ROLE:
            raise InvalidOperationError("The owner role cannot be given to other players")
        current = land.get_member_role(target)
        if current is not None:
            self._check_rank(land, actor, actor_role, current.weight, f"member {target}")
        self._check_rank(land, actor, actor_role, role.weight, f"role '{role_name}'")

        previous = land.members[target]
        land.members[target] = role_name
        return previous

    # ===== Roles =====

    def create_role(self, actor: str, role_name: str, permissions: Iterable[LandPermission]) -> LandRole:
        land = self._require_selected_land(actor)
        if not land.is_member(actor):
            raise PermissionDeniedError(f"You are not a member of '{land.name}'")
        role_name = role_name.strip() if role_name else ""
        if not role_name or any(ch.isspace() for ch in role_name):
            raise InvalidOperationError("Role names must be a single non-empty word")
        if role_name in land.roles:
            raise ConflictError(f"Role '{role_name}' already exists in '{land.name}'")

        actor_role = self._authorize(land, actor, LandPermission.MANAGE_ROLES)
        perms = {LandPermission.parse(p) for p in permissions}
        self._check_rank(land, actor, actor_role, permissions_weight(perms), "a role")

        role = LandRole(name=role_name, permissions=perms)
        land.add_role(role)
        return role

    def delete_role(self, actor: str, role_name: str) -> tuple[str, list[str]]:
        """Delete a role, moving its holders to a non-admin fallback role.

        Returns the fallback role name and the players that were moved.
        """
        land = self._require_selected_land(actor)
        if not land.is_member(actor):
            raise PermissionDeniedError(f"You are not a member of '{land.name}'")
        role = land.get_role(role_name)
        if role_name == OWNER_ROLE:
            raise InvalidOperationError("The owner role cannot be deleted")

        actor_role = self._authorize(land, actor, LandPermission.MANAGE_ROLES)
        if not land.is_owner(actor) and land.members.get(actor) == role_name:
            raise InvalidOperationError("You cannot delete your own role")
        self._check_rank(land, actor, actor_role, role.weight, f"role '{role_name}'")

        land.remove_role(role_name)
        fallback = land.fallback_role_name(excluding=role_name)
        moved = land.reassign_members(role_name, fallback)
        return fallback, moved

    def set_role_permissions(
        self,
        actor: str,
        role_name: str,
        new_permissions: Iterable[LandPermission],
    ) -> LandRole:
        land = self._require_selected_land(actor)
        if not land.is_member(actor):
            raise PermissionDeniedError(f"You are not a member of '{land.name}'")
        role = land.get_role(role_name)
        if role_name == OWNER_ROLE:
            raise InvalidOperationError("The owner role's permissions are fixed")

        actor_role = self._authorize(land, actor, LandPermission.MANAGE_ROLES)
        if land.members.get(actor) == role_name and not land.is_owner(actor):
            raise InvalidOperationError("You cannot modify your own role")
        self._check_rank(land, actor, actor_role, role.weight, f"role '{role_name}'")
        perms = {LandPermission.parse(p) for p in new_permissions}
        self._check_rank(land, actor, actor_role, permissions_weight(perms), "a role")

        role.set_permissions(perms)
        return role

    # ===== Queries =====

    def check_permission(self, player: str, land: Land, permission: LandPermission) -> bool:
        return land.has_permission(player, LandPermission.parse(permission))

    def get_player_role(self, player: str, land: Land) -> Optional[str]:
        return land.members.get(player)

    def get_land_at(self, position: Sequence[int]) -> Optional[Land]:
        """Linear scan over every land's regions."""
        for land in self._lands_by_id.values():
            if land.contains(position):
                return land
        return None

    def get_land_by_id(self, land_id: str) -> Optional[Land]:
        return self._lands_by_id.get(land_id)

    def get_land_by_name(self, name: str) -> Optional[Land]:
        return self._lands_by_name.get(name)

    def get_land_by_owner(self, owner: str) -> Optional[Land]:
        for land in self._lands_by_id.values():
            if land.owner == owner:
                return land
        return None

    def get_lands_by_owner(self, owner: str) -> list[Land]:
        return [land for land in self._lands_by_id.values() if land.owner == owner]

    def get_all_lands(self) -> list[Land]:
        return list(self._lands_by_id.values())

    def land_names(self) -> list[str]:
        return sorted(self._lands_by_name)

    # ===== Persistence =====

    def export_records(self) -> list[LandRecord]:
        return [land.to_record() for land in self._lands_by_id.values()]

    def import_records(self, records: Iterable[LandRecord]) -> None:
        """Replace every land with the given records. Selections are cleared."""
        by_id: dict[str, Land] = {}
        by_name: dict[str, Land] = {}
        for record in records:
            if record.name in by_name:
                raise ConflictError(f"Duplicate land name '{record.name}' in saved data")
            land = Land.from_record(record)
            by_id[land.id] = land
            by_name[land.name] = land

        self._lands_by_id = by_id
        self._lands_by_name = by_name
        self._selected_land_by_player.clear()
