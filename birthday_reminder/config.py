import os

from dotenv import load_dotenv

load_dotenv()

BASE_DIR = os.path.abspath(os.path.dirname(__file__))


def _database_url():
    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        return f"sqlite:///{os.path.join(BASE_DIR, 'birthdays.db')}"
    # Render and Heroku still hand out the old scheme
    if database_url.startswith("postgres://"):
        database_url = database_url.replace("postgres://", "postgresql://", 1)
    return database_url


class Config:
    APP_ENV = os.getenv("APP_ENV", "development")
    DATABASE_URL = _database_url()
    PORT = int(os.getenv("PORT", "4000"))

    # Email backends
    EMAIL_BOX = os.getenv("EMAIL_BOX")
    RESEND_API_KEY = os.getenv("RESEND_API_KEY")
    RESEND_API_URL = os.getenv("RESEND_API_URL", "https://api.resend.com/emails")
    MAILER_PASS = os.getenv("MAILER_PASS")
    SMTP_HOST = os.getenv("SMTP_HOST", "smtp.gmail.com")
    SMTP_PORT = int(os.getenv("SMTP_PORT", "465"))
    EMAIL_TIMEOUT = float(os.getenv("EMAIL_TIMEOUT", "15"))

    # Daily job
    BIRTHDAY_BATCH_SIZE = int(os.getenv("BIRTHDAY_BATCH_SIZE", "5"))
    BIRTHDAY_CRON_HOUR = int(os.getenv("BIRTHDAY_CRON_HOUR", "7"))
    BIRTHDAY_CRON_MINUTE = int(os.getenv("BIRTHDAY_CRON_MINUTE", "0"))
