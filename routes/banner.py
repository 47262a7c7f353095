from flask import Blueprint, jsonify, g

from models import db
from models.announcement import Banner
from security.rbac import require_admin
from utils.api import json_error, read_json_body, read_string
from utils.audit import log_event
from utils.clock import utcnow

banner_bp = Blueprint("banner", __name__, url_prefix="/api/banner")


@banner_bp.get("")
def current_banner():
    row = (
        Banner.query
        .filter(Banner.is_active.is_(True))
        .order_by(Banner.created_at.desc())
        .first()
    )
    return jsonify(item=row.to_dict() if row else None), 200


@banner_bp.post("")
@require_admin
def create_banner():
    data = read_json_body()
    if data is None:
        return json_error("Invalid JSON body.", 400)

    content, error = read_string(data.get("content"), "content", max_len=500)
    if error:
        return json_error("Banner content is required." if not content else error, 400)

    now = utcnow()
    # one sticky banner at a time
    Banner.query.update({Banner.is_active: False, Banner.updated_at: now}, synchronize_session=False)

    row = Banner(content=content, is_active=True, created_at=now, updated_at=now)
    db.session.add(row)
    db.session.commit()

    log_event("BANNER_CREATE", username=g.admin["username"], entity="banner", entity_id=row.id)
    return jsonify(item=row.to_dict()), 201


@banner_bp.delete("")
@require_admin
def dismiss_banner():
    data = read_json_body() or {}
    banner_id = data.get("id")

    q = Banner.query
    if banner_id:
        q = q.filter(Banner.id == str(banner_id))
    q.update({Banner.is_active: False, Banner.updated_at: utcnow()}, synchronize_session=False)
    db.session.commit()

    log_event("BANNER_DISMISS", username=g.admin["username"], entity="banner", entity_id=banner_id)
    return jsonify(success=True), 200
