import os
import sys
from pathlib import Path

import pytest

# Ensure project package imports work when running tests from birthday_reminder/
# add repository root (parent of birthday_reminder/) so `import birthday_reminder.xxx` works
ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT))

# Must be set before birthday_reminder.config is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["APP_ENV"] = "test"


@pytest.fixture
def app():
    from birthday_reminder.app import app as flask_app
    from birthday_reminder.models import db

    flask_app.config["TESTING"] = True
    with flask_app.app_context():
        db.drop_all()
        db.create_all()
    yield flask_app
    with flask_app.app_context():
        db.session.remove()


@pytest.fixture
def add_users(app):
    """Insert (username, email, 'YYYY-MM-DD') tuples."""
    import datetime

    from birthday_reminder.models import db, User

    def _add(*rows):
        with app.app_context():
            for username, email, dob in rows:
                db.session.add(User(username=username, email=email, dob=datetime.date.fromisoformat(dob)))
            db.session.commit()

    return _add
