from models.db import db
from utils.clock import utcnow

class LoginAttempt(db.Model):
    __tablename__ = "auth_rate_limits"

    # "<ip>:<username>", both lowercased
    key = db.Column(db.String(200), primary_key=True)

    fail_count = db.Column(db.Integer, default=0, nullable=False)
    window_started_at = db.Column(db.DateTime, nullable=False)
    blocked_until = db.Column(db.DateTime, nullable=True)

    updated_at = db.Column(db.DateTime, default=utcnow, nullable=False, index=True)
