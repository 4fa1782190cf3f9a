"""
Queue and session history service.

Builds the read models the frontend renders directly: the spaces a user
is currently queued in, and the paginated activation history of the
spaces a user owns.
"""
from typing import List, Dict, Any, Tuple

from sqlalchemy.orm import Session

from models import QueueEntry, Space, SpaceSession
from services import clock


def get_user_active_queues(user_id: str, db: Session) -> List[Dict[str, Any]]:
    """
    Return the user's queue entries in spaces that are currently active,
    most recently activated space first.
    """
    rows = (
        db.query(QueueEntry, Space)
        .join(Space, QueueEntry.space_id == Space.id)
        .filter(QueueEntry.user_id == user_id, Space.is_active == True)
        .order_by(Space.activated_at.desc())
        .all()
    )

    return [
        {
            "id": entry.id,
            "space_id": space.id,
            "space_name": space.name,
            "slug": space.slug,
            "active_since": space.activated_at,
            "position": entry.position,
            "is_current_speaker": entry.is_current_speaker,
            "is_paused": entry.is_paused,
            "message": entry.message,
        }
        for entry, space in rows
    ]


def session_duration_minutes(session: SpaceSession) -> int:
    # Open sessions run until now.
    end = session.deactivated_at or clock.utcnow()
    return clock.elapsed_seconds(session.activated_at, end) // 60


def get_session_history(
    user_id: str,
    page: int,
    page_size: int,
    db: Session
) -> Tuple[List[Dict[str, Any]], int]:
    """
    Return one page of sessions for spaces owned by the user, newest
    activation first, together with the total number of sessions so the
    caller can compute page bounds.

    Pages are 1-based; anything below 1 is treated as the first page.
    """
    page = max(page, 1)

    query = (
        db.query(SpaceSession, Space)
        .join(Space, SpaceSession.space_id == Space.id)
        .filter(Space.user_id == user_id)
    )
    total = query.count()

    rows = (
        query.order_by(SpaceSession.activated_at.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )

    history: List[Dict[str, Any]] = []
    for session, space in rows:
        history.append({
            "id": session.id,
            "space_id": space.id,
            "space_name": space.name,
            "space_slug": space.slug,
            "activated_at": session.activated_at,
            "deactivated_at": session.deactivated_at,
            "duration_minutes": session_duration_minutes(session),
            "queue_count": session.queue_count,
            "total_speaking_time": session.total_speaking_time,
        })

    return history, total
