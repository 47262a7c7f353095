from flask import request


def client_ip() -> str:
    direct = (request.headers.get("CF-Connecting-IP") or "").strip()
    if direct:
        return direct

    forwarded = (request.headers.get("X-Forwarded-For") or "").split(",")[0].strip()
    if forwarded:
        return forwarded

    return request.remote_addr or "unknown"
