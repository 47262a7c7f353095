import json
from flask import g, request
from models import db
from models.audit_log import AuditLog
from utils.client import client_ip

def log_event(action: str, username=None, entity=None, entity_id=None, metadata=None):
    user_agent = request.headers.get("User-Agent", "")

    row = AuditLog(
        username=username,
        action=action,
        entity=entity,
        entity_id=str(entity_id) if entity_id is not None else None,
        ip=client_ip(),
        user_agent=user_agent[:255] if user_agent else None,
        request_id=getattr(g, "request_id", None),
        metadata_json=json.dumps(metadata) if metadata else None
    )
    db.session.add(row)
    db.session.commit()
