from flask import Blueprint, g, jsonify

from models import db
from models.admin import Admin
from security.bruteforce import (
    attempt_key,
    is_eligible_for_recovery,
    open_window,
    purge_stale_attempts,
    register_failure,
    reset_attempts,
    seconds_blocked,
    seconds_until,
)
from security.password import dummy_hash, hash_password, verify_password
from security.session import clear_admin_cookie, issue_admin_token, set_admin_cookie
from utils.api import current_request_id, json_error, read_json_body, read_string
from utils.audit import log_event
from utils.auth_context import admin_token_from_request
from utils.client import client_ip
from utils.clock import utcnow


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _find_admin(username: str):
    return Admin.query.filter_by(username=username).first()


def _stored_admin():
    # single administrator record, whatever its username
    return Admin.query.order_by(Admin.id).first()


def _recover_admin(admin, username: str, password: str) -> Admin:
    """
    Re-provisions the one admin credential to the recovery pair.
    """
    if admin is None:
        admin = Admin(username=username)
        db.session.add(admin)
    admin.username = username
    admin.password_hash = hash_password(password)
    db.session.commit()
    return admin


def _login_response(admin: Admin):
    token = issue_admin_token(admin.username)
    resp = jsonify(authenticated=True, username=admin.username, requestId=current_request_id())
    set_admin_cookie(resp, token)
    return resp, 200


@auth_bp.post("")
def login():
    data = read_json_body()
    if data is None:
        return json_error("Invalid JSON body.", 400)

    username, error = read_string(data.get("username"), "username", min_len=1, max_len=64)
    if error:
        return json_error(error, 400)

    password = data.get("password")
    if not isinstance(password, str) or len(password) == 0:
        return json_error("password is required.", 400)
    if len(password) > 200:
        return json_error("password must be at most 200 characters.", 400)

    now = utcnow()
    key = attempt_key(client_ip(), username)
    attempt = open_window(key, now=now)
    admin = _find_admin(username)

    stored = _stored_admin()
    if is_eligible_for_recovery(username, password, stored):
        admin = _recover_admin(stored, username, password)
        reset_attempts(key)
        log_event("ADMIN_RECOVERY", username=admin.username)
        return _login_response(admin)

    seconds_left = seconds_blocked(attempt, now=now)
    if seconds_left:
        log_event("LOGIN_LOCKED", username=username, metadata={"seconds_left": seconds_left})
        return json_error(
            "Too many login attempts. Please try again later.",
            429,
            retryAfterSeconds=seconds_left,
        )

    stored_hash = admin.password_hash if admin else dummy_hash()
    password_ok = verify_password(password, stored_hash)
    if not admin or not password_ok:
        fail_count, blocked_until = register_failure(key, now=now)
        locked_now = blocked_until is not None and blocked_until > now
        log_event(
            "LOGIN_FAIL",
            username=username,
            metadata={"fail_count": fail_count, "locked_now": locked_now},
        )
        extras = {}
        if locked_now:
            extras["retryAfterSeconds"] = seconds_until(blocked_until, now=now)
        return json_error("Invalid username or password.", 401, **extras)

    reset_attempts(key)
    purge_stale_attempts(now=now)

    log_event("LOGIN_SUCCESS", username=admin.username)
    return _login_response(admin)


@auth_bp.get("")
def session_status():
    token = admin_token_from_request()
    if not token:
        return jsonify(authenticated=False, requestId=current_request_id()), 401

    payload = g.admin
    admin = _find_admin(payload["username"]) if payload else None

    if not admin:
        resp = jsonify(authenticated=False, requestId=current_request_id())
        clear_admin_cookie(resp)
        return resp, 401

    return jsonify(authenticated=True, username=admin.username, requestId=current_request_id()), 200


@auth_bp.delete("")
def logout():
    if g.admin:
        log_event("LOGOUT", username=g.admin["username"])

    resp = jsonify(authenticated=False, requestId=current_request_id())
    clear_admin_cookie(resp)
    return resp, 200
