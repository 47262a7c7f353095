import time
from datetime import datetime, timezone

from flask import Blueprint, current_app, jsonify
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from models import db

health_bp = Blueprint("health", __name__, url_prefix="/api/health")


@health_bp.get("")
def health():
    started = time.perf_counter()

    def _elapsed_ms():
        return int((time.perf_counter() - started) * 1000)

    try:
        ok = db.session.execute(text("SELECT 1")).scalar() == 1
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.error("health check database ping failed: %s", exc)
        return jsonify(
            status="error",
            service="lulus-spp",
            database="unreachable",
            timestamp=datetime.now(timezone.utc).isoformat(),
            durationMs=_elapsed_ms(),
        ), 500

    return jsonify(
        status="ok" if ok else "degraded",
        service="lulus-spp",
        version=current_app.config.get("APP_VERSION", "0.1.0"),
        database="ok" if ok else "unreachable",
        timestamp=datetime.now(timezone.utc).isoformat(),
        durationMs=_elapsed_ms(),
    ), 200
