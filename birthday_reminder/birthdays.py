import datetime
import logging
from typing import List, NamedTuple, Optional

from sqlalchemy import extract
from sqlalchemy.exc import SQLAlchemyError

from birthday_reminder.exceptions import StoreQueryError
from birthday_reminder.models import db, User

logger = logging.getLogger(__name__)


class Celebrant(NamedTuple):
    """A registrant detached from the session, safe to hand to worker threads."""
    username: str
    email: str
    dob: datetime.date


def find_celebrants(today: Optional[datetime.date] = None) -> List[Celebrant]:
    """
    Return every registrant whose birthday falls on ``today``, whatever the
    birth year. Month and day are compared inside the database, so the result
    does not depend on how the driver serializes dates.

    Must be called inside a Flask app context.
    """
    today = today or datetime.date.today()

    try:
        rows = (
            db.session.query(User.username, User.email, User.dob)
            .filter(
                extract("month", User.dob) == today.month,
                extract("day", User.dob) == today.day,
            )
            .all()
        )
    except SQLAlchemyError as e:
        db.session.rollback()
        raise StoreQueryError(f"Celebrant query for {today:%m-%d} failed: {e}") from e

    celebrants = [Celebrant(username, email, dob) for username, email, dob in rows]
    logger.info("🎂 Found %d birthday celebrant(s) for %s", len(celebrants), today.strftime("%m-%d"))
    return celebrants
