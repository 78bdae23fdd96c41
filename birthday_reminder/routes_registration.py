import datetime
import logging

from flask import Blueprint, render_template, request
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from birthday_reminder.models import db, User

logger = logging.getLogger(__name__)

registration_bp = Blueprint("registration", __name__)


def parse_dob(value):
    """Parse a ``YYYY-MM-DD`` form value, rejecting dates in the future."""
    try:
        dob = datetime.date.fromisoformat(value)
    except ValueError:
        return None
    if dob > datetime.date.today():
        return None
    return dob


@registration_bp.route("/", methods=["GET"])
def index():
    return render_template("index.html")


@registration_bp.route("/add", methods=["POST"])
def add_user():
    username = request.form.get("username", "").strip()
    email = request.form.get("email", "").strip().lower()
    dob_raw = request.form.get("dob", "").strip()

    if not username or not email or not dob_raw:
        return "All fields are required!", 400

    dob = parse_dob(dob_raw)
    if dob is None:
        return "Date of birth must be a past date in YYYY-MM-DD format!", 400

    try:
        db.session.add(User(username=username, email=email, dob=dob))
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return "⚠️ Email already exists!", 409
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.exception("❌ Could not save registration for %s", email)
        return f"❌ Error: {e}", 500

    logger.info("📝 Registered %s", email)
    return "✅ User created!, we will remind you of your birthday", 201
