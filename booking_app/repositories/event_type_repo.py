# booking_app/repositories/event_type_repo.py
from sqlmodel import Session, col, select

from booking_app.models.event_type import EventType


class EventTypeRepository:
    """
    Read-only queries for event types shown on booking pages.
    """

    def list_personal_with_hidden(self, session: Session, user_id: int) -> list[EventType]:
        """
        Personal (non-team) event types of a user, hidden ones included.

        Ordered by position descending, then id ascending so equal
        positions always come back in the same order.
        """
        stmt = (
            select(EventType)
            .where(
                EventType.user_id == user_id,
                col(EventType.team_id).is_(None),
            )
            .order_by(col(EventType.position).desc(), col(EventType.id).asc())
        )
        return list(session.exec(stmt).all())
