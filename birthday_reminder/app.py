import logging

from apscheduler.schedulers.background import BackgroundScheduler
from flask import Flask
from flask_cors import CORS

# Local imports
from birthday_reminder.config import Config
from birthday_reminder.models import db
from birthday_reminder.routes_registration import registration_bp

# Logging
logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
logger = logging.getLogger("birthday-reminder")

# ---------------- App Setup ---------------- #

app = Flask(__name__)
CORS(app)

app.register_blueprint(registration_bp)

# ---------------- Database Setup ---------------- #

app.config["SQLALCHEMY_DATABASE_URI"] = Config.DATABASE_URL
app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False

if Config.DATABASE_URL.startswith("postgresql"):
    logger.info("🚀 Using PostgreSQL database")
    app.config["SQLALCHEMY_ENGINE_OPTIONS"] = {
        "pool_pre_ping": True,
        "pool_recycle": 300,
        "pool_size": 5,
        "max_overflow": 10,
    }
else:
    logger.info("💻 Using SQLite database")

db.init_app(app)

with app.app_context():
    db.create_all()
    logger.info("✅ Tables ready")


# ---------------- Background Birthday Scheduler ---------------- #
def start_birthday_scheduler():
    """Run the daily birthday job on a background thread of this process."""
    from birthday_reminder.scheduler import build_scheduler, register_shutdown

    scheduler = build_scheduler(app, scheduler_cls=BackgroundScheduler)
    scheduler.start()
    register_shutdown(scheduler)
    return scheduler


# ---------------- Main ---------------- #
if __name__ == "__main__":
    start_birthday_scheduler()
    logger.info("🎂 Birthday Reminder running at http://localhost:%d", Config.PORT)
    app.run(host="0.0.0.0", port=Config.PORT)
