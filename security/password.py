import re

import bcrypt
from flask import current_app, has_app_context

# $2a$/$2b$/$2y$, two-digit cost, 22 chars salt + 31 chars digest
_BCRYPT_HASH = re.compile(r"^\$2[aby]\$(0[4-9]|[12][0-9]|3[01])\$[./A-Za-z0-9]{53}$")

def _rounds() -> int:
    if has_app_context():
        return int(current_app.config.get("BCRYPT_ROUNDS", 12))
    return 12

def hash_password(plain_password: str) -> str:
    if not isinstance(plain_password, str) or len(plain_password) == 0:
        raise ValueError("Password must be a non-empty string")

    # bcrypt expects bytes
    salt = bcrypt.gensalt(rounds=_rounds())
    hashed = bcrypt.hashpw(plain_password.encode("utf-8"), salt)
    return hashed.decode("utf-8")

_dummy_hashes = {}

def dummy_hash() -> str:
    """
    Throwaway hash at the configured cost, checked against when the username
    is unknown so the response takes as long as a real verification.
    """
    rounds = _rounds()
    if rounds not in _dummy_hashes:
        salt = bcrypt.gensalt(rounds=rounds)
        _dummy_hashes[rounds] = bcrypt.hashpw(b"no-such-admin", salt).decode("utf-8")
    return _dummy_hashes[rounds]

def is_valid_hash_format(password_hash) -> bool:
    return isinstance(password_hash, str) and _BCRYPT_HASH.match(password_hash) is not None

def verify_password(plain_password: str, password_hash: str) -> bool:
    if not plain_password or not is_valid_hash_format(password_hash):
        return False
    try:
        return bcrypt.checkpw(
            plain_password.encode("utf-8"),
            password_hash.encode("utf-8")
        )
    except ValueError:
        return False
