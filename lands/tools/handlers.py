"""Command handlers - the facade a chat/command layer calls.

Every handler returns a plain dict: ``{"success": True, ...}`` on success or
``{"success": False, "error": ..., "code": ...}`` when the engine rejects the
request. Successful mutations and rejections are both written to the event log.
"""

from __future__ import annotations
from typing import Any, Iterable, Optional, Sequence, TYPE_CHECKING

from thefuzz import process

from lands.errors import LandError, NotFoundError, PreconditionFailedError
from lands.models.events import Event, EventEffect, EventType
from lands.models.land import Land
from lands.models.permissions import LandPermission
from lands.models.region import Region

if TYPE_CHECKING:
    from lands.systems.land_manager import LandManager, UnclaimPlan
    from lands.systems.selection import SelectionManager
    from lands.systems.event_log import EventLog


def _region_dict(region: Region) -> dict[str, Any]:
    return {
        "corner1": list(region.corner1),
        "corner2": list(region.corner2),
        "volume": region.get_volume(),
    }


class LandCommandHandlers:
    """Handlers for all land commands."""

    def __init__(
        self,
        manager: "LandManager",
        selections: "SelectionManager",
        event_log: "EventLog",
    ):
        self.manager = manager
        self.selections = selections
        self.event_log = event_log
        self._pending_unclaims: dict[str, "UnclaimPlan"] = {}

    # ===== Plumbing =====

    def _record(
        self,
        event_type: EventType,
        actor: str,
        description: str,
        land: Optional[Land] = None,
        effects: Optional[list[EventEffect]] = None,
        **metadata: Any,
    ) -> None:
        self.event_log.add(Event(
            event_type=event_type,
            description=description,
            actor=actor,
            land_id=land.id if land else None,
            land_name=land.name if land else None,
            effects=effects or [],
            metadata=metadata,
        ))

    def _reject(self, actor: str, command: str, error: LandError) -> dict[str, Any]:
        land = self.manager.get_selected_land_for_player(actor)
        self._record(
            EventType.COMMAND_REJECTED,
            actor,
            f"{command} rejected: {error}",
            land=land,
            command=command,
            code=error.code,
        )
        return {"success": False, "error": str(error), "code": error.code}

    def _selection_for(self, player: str) -> Region:
        region = self.selections.get_selection(player)
        if region is None:
            raise PreconditionFailedError("Select two corners first (pos1 and pos2)")
        return region

    def _selected_land(self, player: str) -> Land:
        land = self.manager.get_selected_land_for_player(player)
        if land is None:
            raise PreconditionFailedError("No land selected")
        return land

    # ===== Selection =====

    def set_corner(self, player: str, which: int, position: Sequence[int]) -> dict[str, Any]:
        if which == 1:
            self.selections.set_corner1(player, position)
        else:
            self.selections.set_corner2(player, position)

        completed = self.selections.complete_selection(player)
        result: dict[str, Any] = {"success": True, "corner": which, "position": list(position)}
        if completed:
            result["selection"] = _region_dict(self.selections.get_selection(player))
        return result

    # ===== Lands =====

    def create_land(self, player: str, name: str) -> dict[str, Any]:
        """Create a land from the player's current selection and select it."""
        try:
            region = self._selection_for(player)
            land = self.manager.create_land(name, player, region)
            self.manager.select_land_for_player(player, land.name)
        except LandError as e:
            return self._reject(player, "create", e)

        self.selections.clear_selection(player)
        self._record(
            EventType.LAND_CREATED, player, f"Created land '{land.name}'", land=land,
            region=_region_dict(region),
        )
        return {
            "success": True,
            "land_id": land.id,
            "name": land.name,
            "volume": land.get_volume(),
            "message": f"Land '{land.name}' created ({land.get_volume()} blocks)",
        }

    def delete_land(self, player: str, name: str) -> dict[str, Any]:
        try:
            land = self.manager.delete_land(name, actor=player)
        except LandError as e:
            return self._reject(player, "delete", e)

        for pending_player, plan in list(self._pending_unclaims.items()):
            if plan.land_id == land.id:
                del self._pending_unclaims[pending_player]

        self._record(EventType.LAND_DELETED, player, f"Deleted land '{land.name}'", land=land)
        return {"success": True, "message": f"Land '{land.name}' deleted"}

    def select_land(self, player: str, name: str) -> dict[str, Any]:
        try:
            land = self.manager.select_land_for_player(player, name)
        except NotFoundError as e:
            suggestion = self.find_land(name).get("match")
            result = self._reject(player, "select", e)
            if suggestion:
                result["suggestion"] = suggestion
            return result

        self._pending_unclaims.pop(player, None)
        self._record(EventType.LAND_SELECTED, player, f"Selected land '{land.name}'", land=land)
        return {"success": True, "land_id": land.id, "name": land.name}

    def clear_selection(self, player: str) -> dict[str, Any]:
        land = self.manager.get_selected_land_for_player(player)
        self.manager.clear_selected_land_for_player(player)
        self._pending_unclaims.pop(player, None)
        if land is not None:
            self._record(EventType.LAND_DESELECTED, player, f"Deselected land '{land.name}'", land=land)
        return {"success": True}

    def find_land(self, query: str, threshold: int = 70) -> dict[str, Any]:
        """Fuzzy-match a land name."""
        names = self.manager.land_names()
        if not names or not query:
            return {"success": False, "error": "No lands to search", "code": "not_found"}

        match = process.extractOne(query, names)
        if match is None or match[1] < threshold:
            return {"success": False, "error": f"No land matches '{query}'", "code": "not_found"}
        return {"success": True, "match": match[0], "score": match[1]}

    # ===== Territory =====

    def claim(self, player: str) -> dict[str, Any]:
        """Claim the player's current selection for their selected land."""
        try:
            region = self._selection_for(player)
            land = self._selected_land(player)
            old_volume = land.get_volume()
            pieces = self.manager.claim_region(player, region)
        except LandError as e:
            return self._reject(player, "claim", e)

        self.selections.clear_selection(player)
        self._pending_unclaims.pop(player, None)
        added = sum(p.get_volume() for p in pieces)
        self._record(
            EventType.REGION_CLAIMED,
            player,
            f"Claimed {added} blocks",
            land=land,
            effects=[EventEffect(
                target_type="land", target_id=land.id, field="volume",
                old_value=old_volume, new_value=land.get_volume(),
            )],
            pieces=[_region_dict(p) for p in pieces],
        )
        return {
            "success": True,
            "added_volume": added,
            "pieces": [_region_dict(p) for p in pieces],
            "volume": land.get_volume(),
            "regions": len(land.regions),
            "message": f"Claimed {added} blocks for '{land.name}'",
        }

    def propose_unclaim(self, player: str) -> dict[str, Any]:
        """Compute an unclaim of the current selection and hold it for confirmation."""
        try:
            region = self._selection_for(player)
            plan = self.manager.unclaim_region(player, region)
        except LandError as e:
            return self._reject(player, "unclaim", e)

        self._pending_unclaims[player] = plan
        land = self.manager.get_land_by_id(plan.land_id)
        self._record(
            EventType.UNCLAIM_PROPOSED, player, f"Proposed unclaim of {plan.removed_volume} blocks",
            land=land,
            kept_volume=plan.kept_volume,
            relinquished_volumes=plan.relinquished_volumes,
        )
        return {
            "success": True,
            "removed_volume": plan.removed_volume,
            "kept_volume": plan.kept_volume,
            "relinquished_volumes": plan.relinquished_volumes,
            "splits_land": plan.splits_land,
            "summary": plan.summary(),
            "requires_confirmation": True,
        }

    def get_pending_unclaim(self, player: str) -> Optional["UnclaimPlan"]:
        return self._pending_unclaims.get(player)

    def confirm_unclaim(self, player: str) -> dict[str, Any]:
        plan = self._pending_unclaims.pop(player, None)
        try:
            if plan is None:
                raise PreconditionFailedError("There is no unclaim waiting for confirmation")
            land = self.manager.get_land_by_id(plan.land_id)
            old_volume = land.get_volume() if land else None
            land = self.manager.confirm_unclaim(player, plan)
        except LandError as e:
            return self._reject(player, "unclaim confirm", e)

        self.selections.clear_selection(player)
        self._record(
            EventType.UNCLAIM_CONFIRMED,
            player,
            f"Unclaimed {old_volume - land.get_volume()} blocks",
            land=land,
            effects=[EventEffect(
                target_type="land", target_id=land.id, field="volume",
                old_value=old_volume, new_value=land.get_volume(),
            )],
        )
        return {
            "success": True,
            "volume": land.get_volume(),
            "regions": len(land.regions),
            "message": f"'{land.name}' now covers {land.get_volume()} blocks",
        }

    def cancel_unclaim(self, player: str) -> dict[str, Any]:
        plan = self._pending_unclaims.pop(player, None)
        if plan is None:
            return {"success": False, "error": "There is no unclaim waiting for confirmation",
                    "code": PreconditionFailedError.code}
        land = self.manager.get_land_by_id(plan.land_id)
        self._record(EventType.UNCLAIM_CANCELLED, player, "Cancelled unclaim", land=land)
        return {"success": True}

    # ===== Membership =====

    def trust(self, player: str, target: str, role_name: str = "member") -> dict[str, Any]:
        try:
            self.manager.trust_player(player, target, role_name)
            land = self._selected_land(player)
        except LandError as e:
            return self._reject(player, "trust", e)

        self._record(
            EventType.MEMBER_TRUSTED, player, f"Trusted {target} as {role_name}", land=land,
            effects=[EventEffect(target_type="member", target_id=target, field="role",
                                 old_value=None, new_value=role_name)],
        )
        return {"success": True, "message": f"{target} is now a {role_name} of '{land.name}'"}

    def untrust(self, player: str, target: str) -> dict[str, Any]:
        try:
            old_role = self.manager.untrust_player(player, target)
            land = self._selected_land(player)
        except LandError as e:
            return self._reject(player, "untrust", e)

        self._record(
            EventType.MEMBER_UNTRUSTED, player, f"Untrusted {target}", land=land,
            effects=[EventEffect(target_type="member", target_id=target, field="role",
                                 old_value=old_role, new_value=None)],
        )
        return {"success": True, "message": f"{target} was removed from '{land.name}'"}

    def assign_role(self, player: str, target: str, role_name: str) -> dict[str, Any]:
        try:
            old_role = self.manager.assign_role(player, target, role_name)
            land = self._selected_land(player)
        except LandError as e:
            return self._reject(player, "assign", e)

        self._record(
            EventType.MEMBER_ROLE_CHANGED, player, f"Moved {target} to {role_name}", land=land,
            effects=[EventEffect(target_type="member", target_id=target, field="role",
                                 old_value=old_role, new_value=role_name)],
        )
        return {"success": True, "message": f"{target} is now a {role_name}"}

    # ===== Roles =====

    def create_role(self, player: str, role_name: str, permissions: Iterable[str]) -> dict[str, Any]:
        try:
            perms = [LandPermission.parse(p) for p in permissions]
            role = self.manager.create_role(player, role_name, perms)
            land = self._selected_land(player)
        except ValueError as e:
            if not isinstance(e, LandError):
                return {"success": False, "error": str(e), "code": "invalid_operation"}
            return self._reject(player, "role create", e)

        self._record(
            EventType.ROLE_CREATED, player, f"Created role {role.summary()}", land=land,
        )
        return {"success": True, "role": role.model_dump(mode="json"), "weight": role.weight}

    def delete_role(self, player: str, role_name: str) -> dict[str, Any]:
        try:
            fallback, moved = self.manager.delete_role(player, role_name)
            land = self._selected_land(player)
        except LandError as e:
            return self._reject(player, "role delete", e)

        self._record(
            EventType.ROLE_DELETED, player, f"Deleted role {role_name}", land=land,
            effects=[
                EventEffect(target_type="member", target_id=p, field="role",
                            old_value=role_name, new_value=fallback)
                for p in moved
            ],
        )
        return {
            "success": True,
            "fallback_role": fallback,
            "reassigned": moved,
            "message": f"Role '{role_name}' deleted; {len(moved)} member(s) moved to '{fallback}'",
        }

    def set_role_permissions(self, player: str, role_name: str, permissions: Iterable[str]) -> dict[str, Any]:
        try:
            perms = [LandPermission.parse(p) for p in permissions]
            land = self._selected_land(player)
            before = sorted(p.value for p in land.get_role(role_name).permissions)
            role = self.manager.set_role_permissions(player, role_name, perms)
        except ValueError as e:
            if not isinstance(e, LandError):
                return {"success": False, "error": str(e), "code": "invalid_operation"}
            return self._reject(player, "role set", e)

        self._record(
            EventType.ROLE_UPDATED, player, f"Updated role {role.summary()}", land=land,
            effects=[EventEffect(target_type="role", target_id=role_name, field="permissions",
                                 old_value=before, new_value=sorted(p.value for p in role.permissions))],
        )
        return {"success": True, "role": role.model_dump(mode="json"), "weight": role.weight}

    # ===== Queries =====

    def check_permission(self, player: str, land_name: str, permission: str) -> dict[str, Any]:
        land = self.manager.get_land_by_name(land_name)
        if land is None:
            return {"success": False, "error": f"Land '{land_name}' does not exist", "code": NotFoundError.code}
        try:
            perm = LandPermission.parse(permission)
        except ValueError as e:
            return {"success": False, "error": str(e), "code": "invalid_operation"}
        return {
            "success": True,
            "allowed": self.manager.check_permission(player, land, perm),
            "role": self.manager.get_player_role(player, land),
        }

    def land_at(self, position: Sequence[int]) -> dict[str, Any]:
        land = self.manager.get_land_at(position)
        if land is None:
            return {"success": True, "land": None}
        return {"success": True, "land": land.name, "owner": land.owner}

    def land_info(self, name: str) -> dict[str, Any]:
        land = self.manager.get_land_by_name(name)
        if land is None:
            return {"success": False, "error": f"Land '{name}' does not exist", "code": NotFoundError.code}
        return {
            "success": True,
            "land": land.to_record().model_dump(mode="json"),
            "volume": land.get_volume(),
            "contiguous": land.is_contiguous(),
            "summary": land.summary(),
        }

    def list_lands(self, owner: Optional[str] = None) -> dict[str, Any]:
        lands = self.manager.get_lands_by_owner(owner) if owner else self.manager.get_all_lands()
        return {
            "success": True,
            "count": len(lands),
            "lands": [
                {"name": l.name, "owner": l.owner, "volume": l.get_volume(), "members": len(l.members)}
                for l in sorted(lands, key=lambda l: l.name)
            ],
        }
