import json
import uuid
from datetime import datetime, timezone

from flask import current_app, g, jsonify, request


def resolve_request_id() -> str:
    return (
        request.headers.get("CF-Ray")
        or request.headers.get("X-Request-ID")
        or f"req-{uuid.uuid4().hex[:16]}"
    )


def current_request_id():
    return getattr(g, "request_id", None)


def json_error(message: str, status: int = 400, **extras):
    """
    Error body shared by every endpoint: {"error": ..., "requestId": ..., **extras}
    """
    return jsonify(error=message, requestId=current_request_id(), **extras), status


def read_json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return None
    return data


def read_string(value, field: str, min_len: int = None, max_len: int = None, allow_empty: bool = False):
    """
    Returns (normalized_value, error_message_or_None).
    """
    if not isinstance(value, str):
        return "", f"{field} must be a string."

    normalized = value.strip()

    if not allow_empty and not normalized:
        return normalized, f"{field} is required."
    if min_len is not None and len(normalized) < min_len:
        return normalized, f"{field} must be at least {min_len} characters."
    if max_len is not None and len(normalized) > max_len:
        return normalized, f"{field} must be at most {max_len} characters."

    return normalized, None


def log_api_error(error, status: int = 500, meta=None):
    payload = {
        "level": "error",
        "type": "api",
        "requestId": current_request_id(),
        "route": request.path,
        "method": request.method,
        "status": status,
        "message": str(error) or error.__class__.__name__,
        "meta": meta,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    current_app.logger.error(json.dumps(payload))
