import hmac
import math
from datetime import datetime, timedelta
from flask import current_app
from sqlalchemy.exc import IntegrityError

from models import db
from models.login_attempt import LoginAttempt
from security.password import is_valid_hash_format
from utils.clock import utcnow

def _window() -> timedelta:
    return timedelta(minutes=current_app.config.get("LOGIN_WINDOW_MINUTES", 15))

def _lockout() -> timedelta:
    return timedelta(minutes=current_app.config.get("LOCKOUT_MINUTES", 15))

def attempt_key(ip: str, username: str) -> str:
    return f"{(ip or 'unknown').lower()}:{(username or '').lower()}"

def _get(key: str):
    return db.session.get(LoginAttempt, key, populate_existing=True)

def open_window(key: str, now: datetime = None) -> LoginAttempt:
    """
    Returns the record for `key`, creating it or starting a fresh window
    when the previous one has run out and no block is active.
    """
    now = now or utcnow()
    row = _get(key)

    if row is None:
        row = LoginAttempt(key=key, fail_count=0, window_started_at=now, blocked_until=None, updated_at=now)
        db.session.add(row)
        try:
            db.session.commit()
            return row
        except IntegrityError:
            # another request created it first
            db.session.rollback()
            row = _get(key)

    blocked = row.blocked_until is not None and now < row.blocked_until
    if not blocked and now - row.window_started_at > _window():
        # Conditional so a concurrent reset or increment is not overwritten
        (
            LoginAttempt.query
            .filter(
                LoginAttempt.key == key,
                LoginAttempt.window_started_at == row.window_started_at,
            )
            .update(
                {
                    LoginAttempt.fail_count: 0,
                    LoginAttempt.window_started_at: now,
                    LoginAttempt.blocked_until: None,
                    LoginAttempt.updated_at: now,
                },
                synchronize_session=False,
            )
        )
        db.session.commit()
        row = _get(key)

    return row

def seconds_until(blocked_until: datetime, now: datetime = None) -> int:
    """
    Whole seconds until `blocked_until`, at least 1, or 0 once it has passed.
    """
    if blocked_until is None:
        return 0
    now = now or utcnow()
    if now >= blocked_until:
        return 0
    return max(1, math.ceil((blocked_until - now).total_seconds()))

def seconds_blocked(row: LoginAttempt, now: datetime = None) -> int:
    if row is None:
        return 0
    return seconds_until(row.blocked_until, now=now)

def register_failure(key: str, now: datetime = None) -> tuple[int, datetime | None]:
    """
    Counts one failed attempt. Returns (fail_count, blocked_until)
    """
    now = now or utcnow()
    max_attempts = current_app.config.get("MAX_LOGIN_ATTEMPTS", 5)

    query = LoginAttempt.query.filter(LoginAttempt.key == key)
    query.update(
        {
            LoginAttempt.fail_count: LoginAttempt.fail_count + 1,
            LoginAttempt.updated_at: now,
        },
        synchronize_session=False,
    )
    (
        query
        .filter(LoginAttempt.fail_count >= max_attempts)
        .update({LoginAttempt.blocked_until: now + _lockout()}, synchronize_session=False)
    )
    db.session.commit()

    row = _get(key)
    if row is None:
        return 0, None
    return row.fail_count, row.blocked_until

def reset_attempts(key: str):
    """
    Forgets the key entirely after a successful login.
    """
    LoginAttempt.query.filter(LoginAttempt.key == key).delete(synchronize_session=False)
    db.session.commit()

def reset_attempts_for_username(username: str) -> int:
    suffix = f":{(username or '').lower()}"
    rows = LoginAttempt.query.filter(LoginAttempt.key.endswith(suffix, autoescape=True)).all()
    for row in rows:
        db.session.delete(row)
    db.session.commit()
    return len(rows)

def purge_stale_attempts(now: datetime = None) -> int:
    now = now or utcnow()
    hours = current_app.config.get("LOGIN_ATTEMPT_RETENTION_HOURS", 24)
    stale_before = now - timedelta(hours=hours)
    count = (
        LoginAttempt.query
        .filter(LoginAttempt.updated_at < stale_before)
        .delete(synchronize_session=False)
    )
    db.session.commit()
    return count

def recovery_configured() -> bool:
    return bool(
        current_app.config.get("RECOVERY_ADMIN_USERNAME")
        and current_app.config.get("RECOVERY_ADMIN_PASSWORD")
    )

def _same(a: str, b: str) -> bool:
    return hmac.compare_digest(a.encode("utf-8"), b.encode("utf-8"))

def is_eligible_for_recovery(username: str, password: str, admin) -> bool:
    """
    Disaster-recovery escape hatch. True only when the attempt is exactly the
    configured recovery pair AND the stored credential is missing or not a
    well-formed bcrypt hash. Anything else goes through the normal login path.
    """
    if not recovery_configured():
        return False
    if not isinstance(username, str) or not isinstance(password, str):
        return False

    if not _same(username, current_app.config["RECOVERY_ADMIN_USERNAME"]):
        return False
    if not _same(password, current_app.config["RECOVERY_ADMIN_PASSWORD"]):
        return False

    stored_hash = getattr(admin, "password_hash", None)
    return not is_valid_hash_format(stored_hash)
