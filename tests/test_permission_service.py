"""Tests for the permission resolver: owner supremacy, override semantics,
nearest-ancestor precedence, link resolution and cycle safety."""

import pytest

from linkshelf.services.permission_service import (
    NO_ACCESS,
    Grant,
    NoAccess,
    Owner,
    PermissionResolver,
    check_permission,
)
from tests.conftest import grant, make_collection, make_link, make_user


@pytest.fixture()
def alice(db):
    return make_user(db, "alice")


@pytest.fixture()
def bob(db):
    return make_user(db, "bob")


class TestOwnerSupremacy:

    def test_owner_resolves_to_owner(self, db, alice):
        c = make_collection(db, alice, "Mine")
        assert PermissionResolver(db).resolve(alice.id, collection_id=c.id) == Owner(collection_id=c.id)

    def test_owner_ignores_own_direct_grant(self, db, alice):
        c = make_collection(db, alice, "Mine")
        grant(db, c, alice)  # all flags false
        permission = PermissionResolver(db).resolve(alice.id, collection_id=c.id)
        assert isinstance(permission, Owner)

    def test_owner_of_ancestor_has_owner_rights(self, db, alice, bob):
        root = make_collection(db, alice, "Root")
        child = make_collection(db, bob, "Bob's child", parent=root)
        permission = PermissionResolver(db).resolve(alice.id, collection_id=child.id)
        assert permission == Owner(collection_id=root.id)


class TestGrantResolution:

    def test_stranger_has_no_access(self, db, alice, bob):
        c = make_collection(db, alice, "Private")
        assert PermissionResolver(db).resolve(bob.id, collection_id=c.id) is NO_ACCESS

    def test_missing_collection_has_no_access(self, db, bob):
        assert isinstance(PermissionResolver(db).resolve(bob.id, collection_id=999), NoAccess)

    def test_direct_all_false_overrides_inherited(self, db, alice, bob):
        parent = make_collection(db, alice, "Parent")
        child = make_collection(db, alice, "Child", parent=parent)
        grant(db, parent, bob, can_create=True, can_update=True, can_delete=True)
        grant(db, child, bob)

        permission = PermissionResolver(db).resolve(bob.id, collection_id=child.id)
        assert isinstance(permission, Grant)
        assert permission.source_collection_id == child.id
        assert not permission.inherited
        assert not permission.has_rights
        assert not check_permission(permission, "contribute")
        # Still readable: the record exists.
        assert check_permission(permission, "read")

    def test_nearest_ancestor_wins(self, db, alice, bob):
        root = make_collection(db, alice, "Root")
        a = make_collection(db, alice, "A", parent=root)
        b = make_collection(db, alice, "B", parent=a)
        c = make_collection(db, alice, "C", parent=b)
        grant(db, root, bob, can_create=True, can_update=True, can_delete=True)
        grant(db, a, bob, can_update=True)

        permission = PermissionResolver(db).resolve(bob.id, collection_id=c.id)
        assert permission.source_collection_id == a.id
        assert permission.source_collection_name == "A"
        assert permission.inherited
        assert permission.can_update and not permission.can_create and not permission.can_delete

    def test_link_resolves_through_its_collection(self, db, alice, bob):
        c = make_collection(db, alice, "Links")
        grant(db, c, bob, can_create=True)
        link = make_link(db, c)

        permission = PermissionResolver(db).resolve(bob.id, link_id=link.id)
        assert isinstance(permission, Grant)
        assert permission.can_create
        assert permission.source_collection_id == c.id

    def test_unknown_link_has_no_access(self, db, alice):
        assert PermissionResolver(db).resolve(alice.id, link_id=12345) is NO_ACCESS


class TestCycleSafety:

    def _make_cycle(self, db, owner):
        x = make_collection(db, owner, "X")
        y = make_collection(db, owner, "Y", parent=x)
        z = make_collection(db, owner, "Z", parent=y)
        x.parent_id = z.id
        db.commit()
        return x, y, z

    def test_cycle_resolves_to_no_access(self, db, alice, bob):
        x, y, z = self._make_cycle(db, alice)
        resolver = PermissionResolver(db)
        for c in (x, y, z):
            assert resolver.resolve(bob.id, collection_id=c.id) is NO_ACCESS

    def test_grant_inside_cycle_is_still_found(self, db, alice, bob):
        x, y, z = self._make_cycle(db, alice)
        grant(db, y, bob, can_update=True)
        permission = PermissionResolver(db).resolve(bob.id, collection_id=x.id)
        assert isinstance(permission, Grant)
        assert permission.source_collection_id == y.id

    def test_depth_limit_fails_closed(self, db, alice, bob):
        top = make_collection(db, alice, "Top")
        grant(db, top, bob, can_update=True)
        current = top
        for i in range(4):
            current = make_collection(db, alice, f"Level {i}", parent=current)

        assert PermissionResolver(db, max_depth=3).resolve(bob.id, collection_id=current.id) is NO_ACCESS
        assert isinstance(PermissionResolver(db).resolve(bob.id, collection_id=current.id), Grant)


class TestCheckPermission:

    @pytest.mark.parametrize("action,expected", [
        ("read", True),
        ("contribute", True),
        ("edit", False),
        ("relocate", False),
        ("remove", False),
    ])
    def test_create_only_grant(self, action, expected):
        g = Grant(can_create=True, can_update=False, can_delete=False,
                  source_collection_id=1, source_collection_name="C")
        assert check_permission(g, action) is expected

    def test_delete_grant_may_relocate(self):
        g = Grant(can_create=False, can_update=False, can_delete=True,
                  source_collection_id=1, source_collection_name="C")
        assert check_permission(g, "relocate")
        assert check_permission(g, "remove")
        assert not check_permission(g, "edit")

    def test_owner_passes_everything_and_no_access_nothing(self):
        for action in ("read", "contribute", "edit", "relocate", "remove"):
            assert check_permission(Owner(collection_id=1), action)
            assert not check_permission(NO_ACCESS, action)

    def test_unknown_action_raises(self):
        with pytest.raises(ValueError):
            check_permission(NO_ACCESS, "publish")


class TestAliceBobScenario:

    def test_override_takes_effect_even_without_rights(self, db, alice, bob):
        root = make_collection(db, alice, "Root")
        child = make_collection(db, alice, "Child", parent=root)
        grant(db, child, bob, can_update=True)
        resolver = PermissionResolver(db)

        on_child = resolver.resolve(bob.id, collection_id=child.id)
        assert on_child == Grant(can_create=False, can_update=True, can_delete=False,
                                 source_collection_id=child.id, source_collection_name="Child")

        grandchild = make_collection(db, alice, "Grandchild", parent=child)
        inherited = resolver.resolve(bob.id, collection_id=grandchild.id)
        assert inherited.can_update
        assert inherited.source_collection_id == child.id
        assert inherited.inherited

        grant(db, grandchild, bob)
        overridden = resolver.resolve(bob.id, collection_id=grandchild.id)
        assert overridden == Grant(can_create=False, can_update=False, can_delete=False,
                                   source_collection_id=grandchild.id,
                                   source_collection_name="Grandchild")
