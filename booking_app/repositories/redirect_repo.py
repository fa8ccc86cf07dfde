# booking_app/repositories/redirect_repo.py
from datetime import datetime

from sqlalchemy.orm import aliased
from sqlmodel import Session, col, select

from booking_app.models.redirect import OutOfOfficeEntry, TempOrgRedirect
from booking_app.models.user import User


class RedirectRepository:
    """
    Lookups backing booking-page redirects:
      - out-of-office entries (per user)
      - temporary redirects left by organization migrations
    """

    def get_active_out_of_office(
        self,
        session: Session,
        username: str,
        now: datetime,
    ) -> tuple[OutOfOfficeEntry, User | None] | None:
        """
        The out-of-office entry of `username` covering `now`, paired with
        the user visitors are forwarded to (None when nobody is).

        Entries that forward to someone win over plain "away" entries.
        """
        to_user = aliased(User)
        stmt = (
            select(OutOfOfficeEntry, to_user)
            .join(User, User.id == OutOfOfficeEntry.user_id)
            .outerjoin(to_user, to_user.id == OutOfOfficeEntry.to_user_id)
            .where(
                User.username == username,
                OutOfOfficeEntry.start <= now,
                OutOfOfficeEntry.end >= now,
            )
            .order_by(
                col(OutOfOfficeEntry.to_user_id).is_(None),
                col(OutOfOfficeEntry.start).desc(),
            )
        )
        row = session.exec(stmt).first()
        if row is None:
            return None
        entry, forward_to = row
        return entry, forward_to

    def list_temp_org_redirects(
        self,
        session: Session,
        slugs: list[str],
        redirect_type: str,
    ) -> list[TempOrgRedirect]:
        """Enabled redirects away from the global namespace for `slugs`."""
        stmt = select(TempOrgRedirect).where(
            col(TempOrgRedirect.from_slug).in_(slugs),
            TempOrgRedirect.from_org_id == 0,
            TempOrgRedirect.type == redirect_type,
            TempOrgRedirect.enabled == True,  # noqa: E712
        )
        return list(session.exec(stmt).all())
