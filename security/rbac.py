from functools import wraps
from flask import g

from utils.api import json_error, read_json_body

def is_admin() -> bool:
    return getattr(g, "admin", None) is not None

def can_manage(actor_token, owner_token, is_admin: bool) -> bool:
    """
    Owner-or-admin rule for guest-authored content: admins always may,
    otherwise only the holder of the exact token the content was created with.
    """
    if is_admin:
        return True
    actor = actor_token.strip() if isinstance(actor_token, str) else ""
    return bool(actor) and actor == owner_token

def can_manage_current_request(owner_token, actor_token=None) -> bool:
    """
    can_manage for the running request: the actor token defaults to the JSON
    body's authorToken and admin status comes from the session cookie.
    For routes that edit or delete guest-authored content.
    """
    if actor_token is None:
        body = read_json_body() or {}
        actor_token = body.get("authorToken")
    return can_manage(actor_token, owner_token, is_admin())

def require_admin(fn):
    """
    Usage: @require_admin
    """
    @wraps(fn)
    def wrapper(*args, **kwargs):
        if not is_admin():
            return json_error("Admin access required.", 403)
        return fn(*args, **kwargs)
    return wrapper
