import os
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum

import jwt
from flask import current_app

ALGORITHM = "HS256"
ADMIN_ROLE = "admin"


class ConfigurationError(RuntimeError):
    """Server is missing configuration it cannot run without."""


class TokenStatus(str, Enum):
    VALID = "valid"
    EXPIRED = "expired"
    BAD_SIGNATURE = "bad_signature"
    WRONG_ROLE = "wrong_role"
    MALFORMED = "malformed"


@dataclass(frozen=True)
class TokenCheck:
    status: TokenStatus
    payload: dict = None

    @property
    def ok(self) -> bool:
        return self.status is TokenStatus.VALID


def _signing_secret() -> str:
    secret = current_app.config.get("JWT_SECRET") or os.getenv("JWT_SECRET")
    if not secret:
        raise ConfigurationError("Missing JWT secret. Set JWT_SECRET in environment variables.")
    return secret


def _lifetime_seconds() -> int:
    return int(current_app.config.get("SESSION_LIFETIME_SECONDS", 7 * 24 * 60 * 60))


def issue_admin_token(username: str, now: datetime = None) -> str:
    """
    Signs a stateless admin session token. Nothing is stored server-side.
    """
    issued_at = now or datetime.now(timezone.utc)
    payload = {
        "role": ADMIN_ROLE,
        "username": username,
        "iat": issued_at,
        "exp": issued_at + timedelta(seconds=_lifetime_seconds()),
    }
    return jwt.encode(payload, _signing_secret(), algorithm=ALGORITHM)


def check_admin_token(token: str) -> TokenCheck:
    """
    Detailed verification result, for internal use and tests only.
    Callers facing clients should use verify_admin_token.
    """
    secret = _signing_secret()
    if not isinstance(token, str) or not token:
        return TokenCheck(TokenStatus.MALFORMED)

    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[ALGORITHM],
            options={"require": ["exp", "iat"]},
        )
    except jwt.ExpiredSignatureError:
        return TokenCheck(TokenStatus.EXPIRED)
    except jwt.InvalidSignatureError:
        return TokenCheck(TokenStatus.BAD_SIGNATURE)
    except jwt.InvalidTokenError:
        # covers wrong algorithm, missing claims and undecodable input
        return TokenCheck(TokenStatus.MALFORMED)

    if payload.get("role") != ADMIN_ROLE or not isinstance(payload.get("username"), str):
        return TokenCheck(TokenStatus.WRONG_ROLE)

    return TokenCheck(TokenStatus.VALID, payload)


def verify_admin_token(token: str):
    """
    Returns the payload for a valid admin token, None for anything else.
    """
    result = check_admin_token(token)
    return result.payload if result.ok else None


def admin_cookie_params() -> dict:
    return {
        "key": current_app.config.get("AUTH_COOKIE_NAME", "lulus_spp_admin_token"),
        "httponly": True,
        "secure": current_app.config.get("SESSION_COOKIE_SECURE", False),
        "samesite": current_app.config.get("SESSION_COOKIE_SAMESITE", "Lax"),
        "max_age": _lifetime_seconds(),
        "path": "/",
    }


def set_admin_cookie(resp, token: str):
    resp.set_cookie(value=token, **admin_cookie_params())
    return resp


def clear_admin_cookie(resp):
    params = admin_cookie_params()
    params["max_age"] = 0
    resp.set_cookie(value="", **params)
    return resp
