from flask import current_app, g, request
from security.session import verify_admin_token

def admin_token_from_request():
    cookie_name = current_app.config.get("AUTH_COOKIE_NAME", "lulus_spp_admin_token")
    return request.cookies.get(cookie_name)

def load_current_admin():
    token = admin_token_from_request()
    g.admin = verify_admin_token(token) if token else None
