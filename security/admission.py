from flask import current_app, request

from utils.api import json_error
from utils.client import client_ip

API_PREFIX = "/api"
LOGIN_PATH = "/api/auth"
SEARCH_PATH = "/api/search"

READ_METHODS = {"GET", "HEAD", "OPTIONS"}

# prefix -> collection path that stays public for GET
_ADMIN_COLLECTIONS = (
    "/api/announcements",
    "/api/bidang",
    "/api/cara-daftar",
)
_LABELS_PATH = "/api/labels"


def _under(path: str, prefix: str) -> bool:
    return path == prefix or path.startswith(prefix + "/")


def is_login_request(path: str, method: str) -> bool:
    return path.rstrip("/") == LOGIN_PATH and method.upper() == "POST"


def classify_bucket(path: str, method: str) -> str:
    method = method.upper()
    if is_login_request(path, method):
        return "auth"
    if _under(path, SEARCH_PATH):
        return "search"
    if method in READ_METHODS:
        return "read"
    return "write"


def requires_admin_cookie(path: str, method: str) -> bool:
    """
    Cheap pre-filter for admin-only routes. The handler still verifies the
    token; this only turns away requests that carry no cookie at all.
    """
    method = method.upper()
    path = path.rstrip("/") or "/"

    for collection in _ADMIN_COLLECTIONS:
        if _under(path, collection):
            return not (path == collection and method == "GET")

    if _under(path, _LABELS_PATH):
        # GET/POST on the collection are public, labels/<id> is admin
        return path != _LABELS_PATH

    return False


def check_structure():
    cfg = current_app.config

    if len(request.url) > cfg.get("MAX_URL_LENGTH", 2048):
        return json_error("Request URL too long.", 414)

    if len(request.query_string) > cfg.get("MAX_QUERY_LENGTH", 1200):
        return json_error("Query string too long.", 400)

    content_length = request.content_length
    if content_length is not None and content_length > cfg.get("MAX_CONTENT_LENGTH_BYTES", 200_000):
        return json_error("Request body too large.", 413)

    return None


def check_client():
    user_agent = (request.headers.get("User-Agent") or "").strip()
    method = request.method.upper()

    if not user_agent:
        if method != "GET" or is_login_request(request.path, method):
            return json_error("Request rejected.", 403)
        return None

    lowered = user_agent.lower()
    for signature in current_app.config.get("BLOCKED_USER_AGENTS", ()):
        if signature in lowered:
            return json_error("Request rejected.", 403)

    return None


def check_rate_limit():
    limiter = current_app.extensions["admission_limiter"]
    bucket = classify_bucket(request.path, request.method)
    ip = client_ip()

    decision = limiter.hit(bucket, ip)
    if decision.allowed:
        return None

    current_app.logger.warning(
        "rate limit: bucket=%s ip=%s retry_after=%s", bucket, ip, decision.retry_after
    )
    body, status = json_error(
        "Too many requests. Please slow down.", 429, retryAfterSeconds=decision.retry_after
    )
    body.headers["Retry-After"] = str(decision.retry_after)
    return body, status


def check_admin_cookie():
    if not requires_admin_cookie(request.path, request.method):
        return None
    cookie_name = current_app.config.get("AUTH_COOKIE_NAME", "lulus_spp_admin_token")
    if not request.cookies.get(cookie_name):
        return json_error("Admin access required.", 403)
    return None


def admission_gate():
    """
    before_request hook for every API call. Returns a response to reject the
    request, or None to let it through.
    """
    if not _under(request.path, API_PREFIX):
        return None

    failure = check_structure()
    if failure:
        current_app.logger.info("rejected oversized request: %s %s", request.method, request.path[:200])
        return failure

    failure = check_client()
    if failure:
        current_app.logger.info("rejected client: ua=%r ip=%s", request.headers.get("User-Agent"), client_ip())
        return failure

    failure = check_rate_limit()
    if failure:
        return failure

    return check_admin_cookie()
