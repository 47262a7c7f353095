from flask import Blueprint, jsonify, g

from models import db
from models.announcement import Announcement
from security.rbac import require_admin
from utils.api import json_error, read_json_body, read_string
from utils.audit import log_event
from utils.clock import utcnow

announcement_bp = Blueprint("announcement", __name__, url_prefix="/api/announcements")


def _read_content(data):
    content, error = read_string(data.get("content"), "content", max_len=2000)
    if error:
        return content, "Announcement content is required." if not content else error
    return content, None


@announcement_bp.get("")
def list_announcements():
    rows = (
        Announcement.query
        .filter(Announcement.is_active.is_(True))
        .order_by(Announcement.created_at.desc())
        .all()
    )
    items = [row.to_dict() for row in rows]
    # "item" kept for clients that only show the newest one
    return jsonify(items=items, item=items[0] if items else None), 200


@announcement_bp.post("")
@require_admin
def create_announcement():
    data = read_json_body()
    if data is None:
        return json_error("Invalid JSON body.", 400)

    content, error = _read_content(data)
    if error:
        return json_error(error, 400)

    now = utcnow()
    row = Announcement(
        content=content,
        is_active=data.get("isActive") is not False,
        created_at=now,
        updated_at=now,
    )
    db.session.add(row)
    db.session.commit()

    log_event("ANNOUNCEMENT_CREATE", username=g.admin["username"], entity="announcement", entity_id=row.id)
    return jsonify(item=row.to_dict()), 201


@announcement_bp.put("/<announcement_id>")
@require_admin
def update_announcement(announcement_id: str):
    data = read_json_body()
    if data is None:
        return json_error("Invalid JSON body.", 400)

    content, error = _read_content(data)
    if error:
        return json_error(error, 400)

    row = db.session.get(Announcement, announcement_id)
    if not row:
        return json_error("Announcement not found.", 404)

    now = utcnow()
    is_active = data.get("isActive") is not False
    if is_active:
        # only one announcement stays active after an edit
        (
            Announcement.query
            .filter(Announcement.id != row.id)
            .update({Announcement.is_active: False, Announcement.updated_at: now}, synchronize_session=False)
        )

    row.content = content
    row.is_active = is_active
    row.updated_at = now
    db.session.commit()

    log_event("ANNOUNCEMENT_UPDATE", username=g.admin["username"], entity="announcement", entity_id=row.id)
    return jsonify(item=row.to_dict()), 200


@announcement_bp.delete("/<announcement_id>")
@require_admin
def delete_announcement(announcement_id: str):
    deleted = (
        Announcement.query
        .filter(Announcement.id == announcement_id)
        .delete(synchronize_session=False)
    )
    db.session.commit()

    if deleted:
        log_event("ANNOUNCEMENT_DELETE", username=g.admin["username"], entity="announcement", entity_id=announcement_id)
    return jsonify(success=True), 200
