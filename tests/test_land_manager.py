"""Tests for LandManager: lifecycle, territory, membership, roles and persistence."""

import pytest

from lands.config import LandSettings
from lands.errors import (
    ConflictError,
    InvalidOperationError,
    NotFoundError,
    PermissionDeniedError,
    PreconditionFailedError,
)
from lands.models.permissions import BASIC_PERMISSIONS, LandPermission
from lands.systems.land_manager import LandManager

from tests.helpers import OWNER, cube


P = LandPermission


class TestLifecycle:
    def test_create_land(self, manager, home):
        assert home.get_volume() == 1000
        assert home.owner == OWNER
        assert home.members == {OWNER: "owner"}
        assert set(home.roles) == {"owner", "admin", "member", "outsider"}
        assert manager.get_land_by_id(home.id) is home
        assert manager.get_land_by_name("Home") is home

    def test_land_at(self, manager, home):
        assert manager.get_land_at((5, 5, 5)) is home
        assert manager.get_land_at((20, 20, 20)) is None

    def test_name_must_be_unique_and_non_empty(self, manager, home):
        with pytest.raises(ConflictError):
            manager.create_land("Home", "bob", cube(100, 0, 0, 105, 5, 5))
        with pytest.raises(InvalidOperationError):
            manager.create_land("   ", "bob", cube(100, 0, 0, 105, 5, 5))

    def test_lands_do_not_overlap(self, manager, home):
        with pytest.raises(ConflictError):
            manager.create_land("Shed", "bob", cube(9, 9, 9, 12, 12, 12))

    def test_lookup_by_owner(self, manager, home):
        second = manager.create_land("Farm", OWNER, cube(100, 0, 0, 105, 5, 5))
        manager.create_land("Tower", "bob", cube(200, 0, 0, 205, 5, 5))
        assert manager.get_land_by_owner("bob").name == "Tower"
        assert manager.get_lands_by_owner(OWNER) == [home, second]
        assert manager.get_land_by_owner("nobody") is None
        assert manager.land_names() == ["Farm", "Home", "Tower"]

    def test_delete_land(self, manager, home):
        manager.select_land_for_player("bob", "Home")
        with pytest.raises(PermissionDeniedError):
            manager.delete_land("Home", actor="bob")

        manager.delete_land("Home", actor=OWNER)

        assert manager.get_land_by_name("Home") is None
        assert manager.get_land_at((5, 5, 5)) is None
        assert manager.get_selected_land_for_player(OWNER) is None
        assert manager.get_selected_land_for_player("bob") is None
        with pytest.raises(NotFoundError):
            manager.delete_land("Home")

    def test_selection(self, manager, home):
        manager.clear_selected_land_for_player(OWNER)
        assert manager.get_selected_land_for_player(OWNER) is None
        with pytest.raises(NotFoundError):
            manager.select_land_for_player(OWNER, "Nowhere")
        with pytest.raises(PreconditionFailedError):
            manager.claim_region(OWNER, cube(10, 0, 0, 19, 9, 9))


class TestClaim:
    def test_adjacent_coplanar_claim_merges(self, manager, home):
        pieces = manager.claim_region(OWNER, cube(10, 0, 0, 19, 9, 9))

        assert pieces == [cube(10, 0, 0, 19, 9, 9)]
        assert home.get_volume() == 2000
        assert home.regions == frozenset({cube(0, 0, 0, 19, 9, 9)})

    def test_adjacent_claim_without_merge(self, manager, home):
        manager.claim_region(OWNER, cube(10, 0, 0, 19, 4, 9))

        assert home.get_volume() == 1500
        assert len(home.regions) == 2
        assert home.is_contiguous()

    def test_detached_claim_is_rejected(self, manager, home):
        with pytest.raises(InvalidOperationError):
            manager.claim_region(OWNER, cube(50, 50, 50, 59, 59, 59))
        assert home.get_volume() == 1000

    def test_overlapping_claim_adds_only_new_blocks(self, manager, home):
        pieces = manager.claim_region(OWNER, cube(5, 0, 0, 14, 9, 9))

        assert pieces == [cube(10, 0, 0, 14, 9, 9)]
        assert home.get_volume() == 1500
        assert home.regions == frozenset({cube(0, 0, 0, 14, 9, 9)})

    def test_claim_inside_land_is_rejected(self, manager, home):
        with pytest.raises(InvalidOperationError, match="already part"):
            manager.claim_region(OWNER, cube(2, 2, 2, 4, 4, 4))

    def test_claim_needs_permission(self, manager, home):
        home.members["bob"] = "member"
        manager.select_land_for_player("bob", "Home")
        with pytest.raises(PermissionDeniedError):
            manager.claim_region("bob", cube(10, 0, 0, 19, 9, 9))

    def test_claim_into_other_land_conflicts(self, manager, home):
        manager.create_land("Farm", "bob", cube(15, 0, 0, 20, 9, 9))
        with pytest.raises(ConflictError):
            manager.claim_region(OWNER, cube(10, 0, 0, 19, 9, 9))

    def test_claim_bumps_revision(self, manager, home):
        before = home.revision
        manager.claim_region(OWNER, cube(10, 0, 0, 19, 9, 9))
        assert home.revision > before

    def test_single_pass_merge_setting(self):
        manager = LandManager(LandSettings(merge_to_fixed_point=False, history_dir="unused"))
        land = manager.create_land("Strip", OWNER, cube(0, 0, 0, 0, 0, 0))
        manager.select_land_for_player(OWNER, "Strip")
        manager.claim_region(OWNER, cube(1, 0, 0, 1, 0, 0))
        assert land.regions == frozenset({cube(0, 0, 0, 1, 0, 0)})


class TestUnclaim:
    @pytest.fixture
    def wide(self, manager):
        land = manager.create_land("Wide", OWNER, cube(0, 0, 0, 10, 9, 9))
        manager.select_land_for_player(OWNER, "Wide")
        return land

    def test_bisecting_unclaim_keeps_larger_part(self, manager, wide):
        plan = manager.unclaim_region(OWNER, cube(7, 0, 0, 7, 9, 9))

        assert plan.removed_volume == 100
        assert plan.kept_volume == 700
        assert plan.relinquished_volumes == [300]
        assert plan.splits_land
        # Nothing changes until confirmed
        assert wide.get_volume() == 1100

        manager.confirm_unclaim(OWNER, plan)

        assert wide.get_volume() == 700
        assert wide.regions == frozenset({cube(0, 0, 0, 6, 9, 9)})
        assert manager.get_land_at((9, 5, 5)) is None

    def test_edge_unclaim_does_not_split(self, manager, home):
        plan = manager.unclaim_region(OWNER, cube(0, 0, 0, 4, 9, 9))
        assert not plan.splits_land
        assert plan.kept_volume == 500

        manager.confirm_unclaim(OWNER, plan)
        assert home.regions == frozenset({cube(5, 0, 0, 9, 9, 9)})

    def test_interior_unclaim_leaves_shell(self, manager, home):
        plan = manager.unclaim_region(OWNER, cube(3, 3, 3, 5, 5, 5))
        assert plan.removed_volume == 27
        assert not plan.splits_land

        manager.confirm_unclaim(OWNER, plan)
        assert home.get_volume() == 973
        assert home.is_contiguous()
        assert not home.contains((4, 4, 4))

    def test_plan_works_on_a_copy(self, manager, home):
        original = next(iter(home.regions))
        plan = manager.unclaim_region(OWNER, cube(3, 3, 3, 5, 5, 5))
        kept_handles = {r.handle for r in plan.kept}
        assert original.handle not in kept_handles
        assert home.regions == frozenset({original})

    def test_unclaim_outside_land_is_rejected(self, manager, home):
        with pytest.raises(InvalidOperationError):
            manager.unclaim_region(OWNER, cube(50, 50, 50, 51, 51, 51))

    def test_unclaim_everything_is_rejected(self, manager, home):
        with pytest.raises(InvalidOperationError):
            manager.unclaim_region(OWNER, cube(-1, -1, -1, 10, 10, 10))

    def test_stale_plan_is_rejected(self, manager, home):
        plan = manager.unclaim_region(OWNER, cube(0, 0, 0, 4, 9, 9))
        manager.claim_region(OWNER, cube(10, 0, 0, 19, 9, 9))
        with pytest.raises(PreconditionFailedError):
            manager.confirm_unclaim(OWNER, plan)
        assert home.get_volume() == 2000

    def test_plan_bound_to_player_and_land(self, manager, home):
        plan = manager.unclaim_region(OWNER, cube(0, 0, 0, 4, 9, 9))
        manager.create_land("Farm", OWNER, cube(100, 0, 0, 105, 5, 5))
        manager.select_land_for_player(OWNER, "Farm")
        with pytest.raises(PreconditionFailedError):
            manager.confirm_unclaim(OWNER, plan)

    def test_unclaim_needs_permission(self, manager, home):
        home.members["bob"] = "admin"
        manager.select_land_for_player("bob", "Home")
        with pytest.raises(PermissionDeniedError):
            manager.unclaim_region("bob", cube(0, 0, 0, 4, 9, 9))


class TestMembership:
    def test_role_and_trust(self, manager, home):
        manager.create_role(OWNER, "builder", [P.BUILD, P.BREAK])
        manager.trust_player(OWNER, "xavier", "builder")

        assert manager.check_permission("xavier", home, P.BUILD)
        assert not manager.check_permission("xavier", home, P.CONTAINER)
        assert manager.check_permission("xavier", home, "break")
        assert manager.get_player_role("xavier", home) == "builder"

    def test_trust_errors(self, manager, home):
        manager.trust_player(OWNER, "bob", "member")
        with pytest.raises(ConflictError):
            manager.trust_player(OWNER, "bob", "member")
        with pytest.raises(InvalidOperationError):
            manager.trust_player(OWNER, OWNER, "member")
        with pytest.raises(NotFoundError):
            manager.trust_player(OWNER, "carol", "wizard")
        with pytest.raises(InvalidOperationError):
            manager.trust_player(OWNER, "carol", "owner")

    def test_only_owner_manages_by_default(self, manager, home):
        manager.trust_player(OWNER, "bob", "admin")
        manager.select_land_for_player("bob", "Home")

        with pytest.raises(PermissionDeniedError):
            manager.trust_player("bob", "carol", "member")
        manager.select_land_for_player("stranger", "Home")
        with pytest.raises(PermissionDeniedError):
            manager.trust_player("stranger", "carol", "member")

    def test_untrust(self, manager, home):
        manager.trust_player(OWNER, "bob", "member")
        assert manager.untrust_player(OWNER, "bob") == "member"
        assert not home.is_member("bob")

        with pytest.raises(NotFoundError):
            manager.untrust_player(OWNER, "bob")
        with pytest.raises(InvalidOperationError):
            manager.untrust_player(OWNER, OWNER)

    def test_assign_role(self, manager, home):
        manager.trust_player(OWNER, "bob", "member")
        assert manager.assign_role(OWNER, "bob", "admin") == "member"
        assert home.members["bob"] == "admin"

        with pytest.raises(NotFoundError):
            manager.assign_role(OWNER, "carol", "admin")
        with pytest.raises(InvalidOperationError):
            manager.assign_role(OWNER, "bob", "owner")
        with pytest.raises(InvalidOperationError):
            manager.assign_role(OWNER, OWNER, "member")


class TestRoles:
    def test_create_role_validation(self, manager, home):
        with pytest.raises(ConflictError):
            manager.create_role(OWNER, "member", [P.BUILD])
        with pytest.raises(InvalidOperationError):
            manager.create_role(OWNER, "two words", [P.BUILD])
        with pytest.raises(InvalidOperationError):
            manager.create_role(OWNER, "", [])

    def test_role_changes_apply_to_members(self, manager, home):
        manager.trust_player(OWNER, "bob", "member")
        assert manager.check_permission("bob", home, P.CONTAINER)

        manager.set_role_permissions(OWNER, "member", [P.BUILD])

        assert not manager.check_permission("bob", home, P.CONTAINER)
        assert manager.check_permission("bob", home, P.BUILD)

    def test_owner_role_is_fixed(self, manager, home):
        with pytest.raises(InvalidOperationError):
            manager.set_role_permissions(OWNER, "owner", [P.BUILD])
        with pytest.raises(InvalidOperationError):
            manager.delete_role(OWNER, "owner")

    def test_delete_role_reassigns_to_default_member_role(self, manager, home):
        manager.create_role(OWNER, "builder", [P.BUILD, P.BREAK])
        manager.trust_player(OWNER, "xavier", "builder")
        manager.delete_role(OWNER, "outsider")

        fallback, moved = manager.delete_role(OWNER, "member")
        assert (fallback, moved) == ("builder", [])

        fallback, moved = manager.delete_role(OWNER, "builder")

        assert fallback == "member"
        assert moved == ["xavier"]
        assert home.members["xavier"] == "member"
        assert home.roles["member"].permissions == set(BASIC_PERMISSIONS)

    def test_delete_unknown_role(self, manager, home):
        with pytest.raises(NotFoundError):
            manager.delete_role(OWNER, "wizard")


class TestDelegatedManagement:
    @pytest.fixture
    def land(self, delegated_manager):
        land = delegated_manager.create_land("Home", OWNER, cube(0, 0, 0, 9, 9, 9))
        delegated_manager.select_land_for_player(OWNER, "Home")
        return land

    def test_moderator_can_trust_lower_roles(self, delegated_manager, land):
        m = delegated_manager
        m.create_role(OWNER, "moderator", [P.MANAGE_MEMBERS, P.BUILD])
        m.create_role(OWNER, "steward", [P.MANAGE_MEMBERS, P.UNCLAIM])
        m.trust_player(OWNER, "bob", "moderator")
        m.select_land_for_player("bob", "Home")

        m.trust_player("bob", "carol", "member")
        assert land.members["carol"] == "member"

        with pytest.raises(InvalidOperationError):
            m.trust_player("bob", "dave", "steward")
        with pytest.raises(InvalidOperationError):
            m.trust_player("bob", "dave", "owner")
        with pytest.raises(PermissionDeniedError):
            m.create_role("bob", "helper", [P.BUILD])

    def test_moderator_cannot_remove_higher_member(self, delegated_manager, land):
        m = delegated_manager
        m.create_role(OWNER, "moderator", [P.MANAGE_MEMBERS, P.BUILD])
        m.create_role(OWNER, "steward", [P.MANAGE_MEMBERS, P.UNCLAIM])
        m.trust_player(OWNER, "bob", "moderator")
        m.trust_player(OWNER, "erin", "steward")
        m.trust_player(OWNER, "frank", "member")
        m.select_land_for_player("bob", "Home")

        with pytest.raises(InvalidOperationError):
            m.untrust_player("bob", "erin")
        assert m.untrust_player("bob", "frank") == "member"

    def test_role_manager_hierarchy(self, delegated_manager, land):
        m = delegated_manager
        m.create_role(OWNER, "manager", [P.MANAGE_ROLES, P.BUILD])
        m.trust_player(OWNER, "bob", "manager")
        m.select_land_for_player("bob", "Home")

        with pytest.raises(InvalidOperationError):
            m.set_role_permissions("bob", "manager", [P.BUILD])

        m.set_role_permissions("bob", "admin", [P.BUILD])
        assert land.roles["admin"].permissions == {P.BUILD}

        with pytest.raises(InvalidOperationError):
            m.set_role_permissions("bob", "member", [P.MANAGE_MEMBERS, P.UNCLAIM])
        with pytest.raises(InvalidOperationError):
            m.delete_role("bob", "manager")

        m.create_role("bob", "helper", [P.CLAIM])
        assert "helper" in land.roles


class TestPersistence:
    def test_export_import(self, manager, home):
        manager.claim_region(OWNER, cube(10, 0, 0, 19, 4, 9))
        manager.trust_player(OWNER, "bob", "member")
        records = manager.export_records()

        restored = LandManager(manager.settings)
        restored.import_records(records)

        land = restored.get_land_by_name("Home")
        assert land.id == home.id
        assert land.regions == home.regions
        assert land.members == home.members
        assert land.is_contiguous()
        assert restored.get_land_at((15, 2, 2)) is land
        assert restored.get_selected_land_for_player(OWNER) is None

    def test_duplicate_names_conflict(self, manager, home):
        record = home.to_record()
        with pytest.raises(ConflictError):
            manager.import_records([record, record])
