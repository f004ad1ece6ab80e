"""Tests for the move/reorder coordinator."""

import pytest

from linkshelf.exceptions import CircularMoveError, NoCreateInDestinationError, NotOwnerOfSourceError
from linkshelf.models import Collection, User
from linkshelf.repositories.user_repository import UserRepository
from linkshelf.schemas.collection import MoveIntent
from linkshelf.services.move_service import MoveService, reorder_root
from tests.conftest import grant, make_collection, make_user


@pytest.fixture()
def alice(db):
    return make_user(db, "alice")


@pytest.fixture()
def bob(db):
    return make_user(db, "bob")


def _set_order(db, user, order):
    UserRepository(db).update_root_order(user.id, order)
    db.commit()


def _order(db, user):
    db.expire_all()
    return db.get(User, user.id).collection_order


def _parent(db, collection):
    db.expire_all()
    return db.get(Collection, collection.id).parent_id


class TestReorderRoot:

    def test_root_permutation_moves_single_id(self):
        assert reorder_root([10, 11, 12, 13, 14], 12, True, True, 0) == [12, 10, 11, 13, 14]

    def test_move_into_root_appends_without_index(self):
        assert reorder_root([1, 2], 7, False, True) == [1, 2, 7]

    def test_move_out_of_root_removes(self):
        assert reorder_root([1, 2, 3], 2, True, False, 0) == [1, 3]

    def test_nested_moves_leave_order_alone(self):
        assert reorder_root([1, 2, 3], 9, False, False, 0) == [1, 2, 3]

    def test_index_past_end_appends(self):
        assert reorder_root([1, 2, 3], 1, True, True, 10) == [2, 3, 1]


class TestNoOp:

    def test_same_parent_same_index_writes_nothing(self, db, alice, bob):
        c = make_collection(db, alice, "C")
        _set_order(db, bob, [c.id])

        # Bob has no rights at all: a no-op never reaches authorization.
        result = MoveService(db).move_collection(
            bob.id,
            MoveIntent(collection_id=c.id, source_parent_id=None, source_index=0,
                       destination_parent_id=None, destination_index=0),
        )
        assert not result.moved
        assert result.root_order == [c.id]
        assert _order(db, bob) == [c.id]
        assert _parent(db, c) is None


class TestRootReorder:

    def test_index_two_to_zero_among_five(self, db, alice):
        cs = [make_collection(db, alice, f"C{i}") for i in range(5)]
        ids = [c.id for c in cs]
        _set_order(db, alice, ids)

        result = MoveService(db).move_collection(
            alice.id,
            MoveIntent(collection_id=ids[2], source_parent_id=None, source_index=2,
                       destination_parent_id=None, destination_index=0),
        )
        expected = [ids[2], ids[0], ids[1], ids[3], ids[4]]
        assert result.moved
        assert result.root_order == expected
        assert _order(db, alice) == expected


class TestReparent:

    def test_move_into_collection_removes_from_root_order(self, db, alice):
        a = make_collection(db, alice, "A")
        b = make_collection(db, alice, "B")
        _set_order(db, alice, [a.id, b.id])

        result = MoveService(db).move_collection(
            alice.id,
            MoveIntent(collection_id=b.id, source_parent_id=None, source_index=1,
                       destination_parent_id=a.id, destination_index=0),
        )
        assert result.parent_id == a.id
        assert _parent(db, b) == a.id
        assert _order(db, alice) == [a.id]

    def test_move_to_root_inserts_at_index(self, db, alice):
        a = make_collection(db, alice, "A")
        b = make_collection(db, alice, "B")
        child = make_collection(db, alice, "Child", parent=a)
        _set_order(db, alice, [a.id, b.id])

        MoveService(db).move_collection(
            alice.id,
            MoveIntent(collection_id=child.id, source_parent_id=a.id, source_index=0,
                       destination_parent_id=None, destination_index=1),
        )
        assert _parent(db, child) is None
        assert _order(db, alice) == [a.id, child.id, b.id]

    def test_member_with_update_and_create_rights_may_move(self, db, alice, bob):
        a = make_collection(db, alice, "A")
        b = make_collection(db, alice, "B")
        moving = make_collection(db, alice, "Moving", parent=a)
        grant(db, a, bob, can_update=True)
        grant(db, b, bob, can_create=True)

        result = MoveService(db).move_collection(
            bob.id,
            MoveIntent(collection_id=moving.id, source_parent_id=a.id, source_index=0,
                       destination_parent_id=b.id, destination_index=0),
        )
        assert result.moved
        assert _parent(db, moving) == b.id
        # Nested moves do not touch the root order.
        assert _order(db, bob) == []


class TestSharedNestedCollection:
    """Bob can edit Alice's nested C but cannot read its parent A, so C sits in his top level."""

    @pytest.fixture()
    def shared(self, db, alice, bob):
        a = make_collection(db, alice, "A")
        c = make_collection(db, alice, "C", parent=a)
        b = make_collection(db, bob, "B")
        grant(db, c, bob, can_update=True)
        _set_order(db, bob, [b.id, c.id])
        return a, b, c

    def test_visible_parent_is_top_level(self, db, bob, shared):
        a, _, c = shared
        assert MoveService(db).visible_parent_id(bob.id, c) is None
        assert c.parent_id == a.id

    def test_top_level_reorder_keeps_stored_parent(self, db, bob, shared):
        a, b, c = shared

        result = MoveService(db).move_collection(
            bob.id,
            MoveIntent(collection_id=c.id, source_parent_id=None, source_index=1,
                       destination_parent_id=None, destination_index=0),
        )
        assert result.moved
        assert result.parent_id == a.id
        assert _parent(db, c) == a.id
        assert _order(db, bob) == [c.id, b.id]

    def test_move_into_own_collection_reparents(self, db, bob, shared):
        _, b, c = shared

        result = MoveService(db).move_collection(
            bob.id,
            MoveIntent(collection_id=c.id, source_parent_id=None, source_index=1,
                       destination_parent_id=b.id, destination_index=0),
        )
        assert result.parent_id == b.id
        assert _parent(db, c) == b.id
        assert _order(db, bob) == [b.id]


class TestRejections:

    def test_circular_move_is_rejected(self, db, alice):
        p = make_collection(db, alice, "P")
        child = make_collection(db, alice, "Child", parent=p)
        grandchild = make_collection(db, alice, "Grandchild", parent=child)
        _set_order(db, alice, [p.id])

        with pytest.raises(CircularMoveError):
            MoveService(db).move_collection(
                alice.id,
                MoveIntent(collection_id=p.id, source_parent_id=None, source_index=0,
                           destination_parent_id=grandchild.id, destination_index=0),
            )
        assert _parent(db, p) is None
        assert _order(db, alice) == [p.id]

    def test_move_into_itself_is_rejected(self, db, alice):
        p = make_collection(db, alice, "P")
        with pytest.raises(CircularMoveError):
            MoveService(db).move_collection(
                alice.id,
                MoveIntent(collection_id=p.id, source_parent_id=None, source_index=0,
                           destination_parent_id=p.id, destination_index=0),
            )

    def test_source_without_rights_is_rejected(self, db, alice, bob):
        c = make_collection(db, alice, "C")
        grant(db, c, bob, can_create=True)
        target = make_collection(db, bob, "Bob's")

        with pytest.raises(NotOwnerOfSourceError):
            MoveService(db).move_collection(
                bob.id,
                MoveIntent(collection_id=c.id, destination_parent_id=target.id, destination_index=0),
            )
        assert _parent(db, c) is None

    def test_missing_source_is_rejected_as_not_owner(self, db, alice):
        with pytest.raises(NotOwnerOfSourceError):
            MoveService(db).move_collection(
                alice.id, MoveIntent(collection_id=404, destination_index=1),
            )

    def test_destination_without_rights_is_rejected(self, db, alice, bob):
        mine = make_collection(db, bob, "Mine")
        theirs = make_collection(db, alice, "Theirs")
        grant(db, theirs, bob)  # readable, but grants nothing

        with pytest.raises(NoCreateInDestinationError):
            MoveService(db).move_collection(
                bob.id,
                MoveIntent(collection_id=mine.id, destination_parent_id=theirs.id, destination_index=0),
            )
        assert _parent(db, mine) is None

    def test_missing_destination_is_rejected(self, db, alice):
        c = make_collection(db, alice, "C")
        with pytest.raises(NoCreateInDestinationError):
            MoveService(db).move_collection(
                alice.id,
                MoveIntent(collection_id=c.id, destination_parent_id=777, destination_index=0),
            )
