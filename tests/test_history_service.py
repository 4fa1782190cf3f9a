"""
Tests for active queue and session history read models
"""
from core.queue_manager import QueueManager
from core.space_manager import SpaceManager
from services.history_service import get_user_active_queues, get_session_history

OWNER = "owner-1"


def run_session(db, space_id, fake_clock, joiners, minutes):
    QueueManager.toggle_space_status(db, space_id, True, OWNER)
    for user in joiners:
        QueueManager.join(db, space_id, user)
    fake_clock.advance(minutes=minutes)
    QueueManager.toggle_space_status(db, space_id, False, OWNER)


class TestActiveQueues:
    """Tests for get_user_active_queues"""

    def test_only_active_spaces_are_listed(self, db, active_space):
        idle = SpaceManager.create_space(db, "Idle", OWNER)
        QueueManager.join(db, active_space.id, "someone")
        QueueManager.join(db, active_space.id, "alice", "about grading")

        rows = get_user_active_queues("alice", db)

        assert len(rows) == 1
        row = rows[0]
        assert row["space_id"] == active_space.id
        assert row["space_name"] == "Office hours"
        assert row["slug"] == active_space.slug
        assert row["position"] == 2
        assert row["is_current_speaker"] is False
        assert row["is_paused"] is False
        assert row["message"] == "about grading"
        assert row["active_since"] is not None
        assert idle.id not in [r["space_id"] for r in rows]

    def test_empty_after_deactivation(self, db, active_space):
        QueueManager.join(db, active_space.id, "alice")
        QueueManager.toggle_space_status(db, active_space.id, False, OWNER)

        assert get_user_active_queues("alice", db) == []


class TestSessionHistory:
    """Tests for get_session_history"""

    def test_newest_first_with_counts_and_duration(self, db, space, fake_clock):
        run_session(db, space.id, fake_clock, ["a", "b"], minutes=12)
        fake_clock.advance(minutes=60)
        run_session(db, space.id, fake_clock, ["c"], minutes=45)

        items, total = get_session_history(OWNER, 1, 10, db)

        assert total == 2
        assert [item["queue_count"] for item in items] == [1, 2]
        assert [item["duration_minutes"] for item in items] == [45, 12]
        assert items[0]["space_slug"] == space.slug
        assert items[0]["deactivated_at"] is not None

    def test_open_session_runs_until_now(self, db, active_space, fake_clock):
        fake_clock.advance(minutes=7, seconds=59)

        items, total = get_session_history(OWNER, 1, 10, db)

        assert total == 1
        assert items[0]["deactivated_at"] is None
        assert items[0]["duration_minutes"] == 7

    def test_pagination(self, db, space, fake_clock):
        for _ in range(5):
            run_session(db, space.id, fake_clock, [], minutes=1)
            fake_clock.advance(minutes=1)

        first_page, total = get_session_history(OWNER, 1, 2, db)
        last_page, _ = get_session_history(OWNER, 3, 2, db)
        clamped, _ = get_session_history(OWNER, 0, 2, db)

        assert total == 5
        assert len(first_page) == 2
        assert len(last_page) == 1
        assert [i["id"] for i in clamped] == [i["id"] for i in first_page]
        assert first_page[0]["activated_at"] > first_page[1]["activated_at"]

    def test_other_owners_are_excluded(self, db, space, fake_clock):
        run_session(db, space.id, fake_clock, [], minutes=1)

        items, total = get_session_history("someone-else", 1, 10, db)

        assert items == []
        assert total == 0
