from datetime import datetime, timezone

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


def _utcnow():
    return datetime.now(timezone.utc)


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(320), unique=True, nullable=False)
    dob = db.Column(db.Date, nullable=False)  # year is kept but never matched on
    created_at = db.Column(db.DateTime, default=_utcnow)

    def serialize(self):
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "dob": self.dob.isoformat(),
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
