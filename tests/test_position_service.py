"""
Unit tests for position allocation, renumbering and moves
"""
import uuid

import pytest

from models import QueueEntry
from core.exceptions import QueueEntryNotFound, SpaceNotFound
from services.position_service import next_position, renumber, move_up, move_down


class TestNextPosition:
    """Tests for next_position"""

    def test_empty_line_starts_at_one(self, db, space):
        assert next_position(space.id, db) == 1

    def test_max_plus_one(self, db, space, add_entry):
        add_entry(space.id, "a", 1)
        add_entry(space.id, "b", 2)
        assert next_position(space.id, db) == 3

    def test_reads_current_state_after_out_of_band_delete(self, db, space, add_entry):
        add_entry(space.id, "a", 1)
        last = add_entry(space.id, "b", 2)
        assert next_position(space.id, db) == 3

        db.delete(last)
        db.commit()

        assert next_position(space.id, db) == 2

    def test_other_spaces_do_not_count(self, db, space, add_entry):
        from core.space_manager import SpaceManager
        other = SpaceManager.create_space(db, "Other", "someone")
        add_entry(other.id, "a", 1)
        add_entry(other.id, "b", 2)
        assert next_position(space.id, db) == 1


class TestRenumber:
    """Tests for renumber"""

    def test_dense_sequence_is_unchanged(self, db, space, add_entry, snapshot):
        for position, user in enumerate(["a", "b", "c"], start=1):
            add_entry(space.id, user, position)
        before = snapshot(space.id)

        assert renumber(space.id, db) == 0
        db.commit()

        assert snapshot(space.id) == before

    def test_closes_gaps_preserving_order(self, db, space, add_entry, snapshot):
        add_entry(space.id, "a", 2)
        add_entry(space.id, "b", 5)
        add_entry(space.id, "c", 9)

        assert renumber(space.id, db) == 3
        db.commit()

        assert [(user, pos) for user, pos, _, _ in snapshot(space.id)] == [("a", 1), ("b", 2), ("c", 3)]

    def test_renumber_twice_is_idempotent(self, db, space, add_entry, snapshot):
        add_entry(space.id, "a", 3)
        add_entry(space.id, "b", 4)
        renumber(space.id, db)
        db.commit()
        first = snapshot(space.id)

        assert renumber(space.id, db) == 0
        assert snapshot(space.id) == first

    def test_empty_line(self, db, space):
        assert renumber(space.id, db) == 0


class TestMoves:
    """Tests for move_up / move_down"""

    def test_move_up_swaps_with_previous(self, db, space, add_entry, snapshot):
        add_entry(space.id, "a", 1, is_current_speaker=False)
        add_entry(space.id, "b", 2)
        add_entry(space.id, "c", 3)

        assert move_up("c", space.id, db) is True
        db.commit()

        assert [user for user, _, _, _ in snapshot(space.id)] == ["a", "c", "b"]
        assert [pos for _, pos, _, _ in snapshot(space.id)] == [1, 2, 3]

    def test_move_down_swaps_with_next(self, db, space, add_entry, snapshot):
        add_entry(space.id, "a", 1)
        add_entry(space.id, "b", 2)

        assert move_down("a", space.id, db) is True
        db.commit()

        assert [user for user, _, _, _ in snapshot(space.id)] == ["b", "a"]

    def test_boundaries_are_silent_noops(self, db, space, add_entry, snapshot):
        add_entry(space.id, "a", 1)
        add_entry(space.id, "b", 2)
        before = snapshot(space.id)

        assert move_up("a", space.id, db) is False
        assert move_down("b", space.id, db) is False
        assert snapshot(space.id) == before

    def test_flags_travel_with_the_entry(self, db, space, add_entry, snapshot):
        add_entry(space.id, "a", 1)
        add_entry(space.id, "b", 2, is_paused=True)

        move_up("b", space.id, db)
        db.commit()

        assert snapshot(space.id) == [("b", 1, False, True), ("a", 2, False, False)]

    def test_unknown_user(self, db, space, add_entry):
        add_entry(space.id, "a", 1)
        with pytest.raises(QueueEntryNotFound):
            move_up("ghost", space.id, db)

    def test_unknown_space(self, db):
        with pytest.raises(SpaceNotFound):
            move_down("a", uuid.uuid4(), db)

    def test_parking_position_is_not_left_behind(self, db, space, add_entry):
        add_entry(space.id, "a", 1)
        add_entry(space.id, "b", 2)
        move_down("a", space.id, db)
        db.commit()

        positions = sorted(e.position for e in db.query(QueueEntry).filter(QueueEntry.space_id == space.id))
        assert positions == [1, 2]
