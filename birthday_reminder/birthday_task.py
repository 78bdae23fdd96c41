import datetime
import logging

from flask import render_template

from birthday_reminder.birthdays import find_celebrants
from birthday_reminder.config import Config
from birthday_reminder.dispatcher import dispatch_notifications
from birthday_reminder.mailer import get_gateway

logger = logging.getLogger(__name__)

BIRTHDAY_SUBJECT = "Happy Birthday!"


def run_daily_birthday_task(app, today=None, gateway=None, batch_size=None):
    """
    Email every registrant whose birthday is today.

    Raises StoreQueryError when the celebrant query fails; delivery failures
    are only logged and counted in the returned DispatchReport.
    """
    today = today or datetime.date.today()
    gateway = gateway or get_gateway()
    batch_size = batch_size or Config.BIRTHDAY_BATCH_SIZE

    logger.info("🎂 [Birthday Task] Running for %s", today.isoformat())

    with app.app_context():
        celebrants = find_celebrants(today)
        # Templates need the app context, so render before handing off to threads.
        bodies = {
            c.email: render_template("birthday_email.html", username=c.username)
            for c in celebrants
        }

    def send(celebrant):
        gateway.send(BIRTHDAY_SUBJECT, bodies[celebrant.email], celebrant.email)

    report = dispatch_notifications(celebrants, send, batch_size=batch_size)
    logger.info("🎉 [Birthday Task] Completed: sent=%d, failed=%d", report.sent, report.failed)
    return report
