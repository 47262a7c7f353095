from flask import Flask, g
from werkzeug.exceptions import HTTPException
from config import Config
from routes import health_bp, auth_bp, announcement_bp, banner_bp

from models import db
from flask_migrate import Migrate
from security.admission import admission_gate
from security.rate_limit import AdmissionLimiter
from utils.api import json_error, log_api_error, resolve_request_id
from utils.auth_context import load_current_admin


def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)
    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Register routes
    app.register_blueprint(health_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(announcement_bp)
    app.register_blueprint(banner_bp)

    # Database init
    db.init_app(app)

    # Migrations
    Migrate(app, db)

    # One limiter per process, shared by every request
    app.extensions["admission_limiter"] = AdmissionLimiter.from_config(app.config)

    @app.before_request
    def _assign_request_id():
        g.request_id = resolve_request_id()

    @app.before_request
    def _admission():
        return admission_gate()

    @app.before_request
    def _load_admin():
        load_current_admin()

    @app.after_request
    def add_security_headers(resp):
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["X-Frame-Options"] = "DENY"
        resp.headers["Referrer-Policy"] = "no-referrer"
        resp.headers["Permissions-Policy"] = "geolocation=(), microphone=(), camera=()"
        # CSP can be strict if you serve frontend separately; for API it's fine to keep minimal:
        resp.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none';"
        request_id = getattr(g, "request_id", None)
        if request_id:
            resp.headers["X-Request-ID"] = request_id
        return resp

    @app.errorhandler(HTTPException)
    def _http_error(exc):
        return json_error(exc.description or exc.name, exc.code or 500)

    @app.errorhandler(Exception)
    def _unexpected_error(exc):
        db.session.rollback()
        log_api_error(exc, 500)
        return json_error("Internal server error.", 500)

    register_cli(app)


    return app

#-------------------------
import click
from models.admin import Admin
from security.bruteforce import reset_attempts_for_username
from security.password import hash_password

def register_cli(app):
    @app.cli.command("seed-admin")
    @click.argument("username")
    @click.password_option("--password", prompt="Password")
    def seed_admin(username, password):
        """Create the admin account (bootstrap)."""
        username = username.strip()
        if Admin.query.filter_by(username=username).first():
            raise click.ClickException(f"Admin {username} already exists")

        try:
            password_hash = hash_password(password)
        except ValueError as exc:
            raise click.ClickException(str(exc))

        db.session.add(Admin(username=username, password_hash=password_hash))
        db.session.commit()
        click.echo(f"Admin {username} created")

    @app.cli.command("reset-admin-password")
    @click.argument("username")
    @click.password_option("--password", prompt="New password")
    def reset_admin_password(username, password):
        """Replace the admin password and clear its login lockouts."""
        admin = Admin.query.filter_by(username=username.strip()).first()
        if not admin:
            raise click.ClickException("Admin not found")

        try:
            admin.password_hash = hash_password(password)
        except ValueError as exc:
            raise click.ClickException(str(exc))

        db.session.commit()
        cleared = reset_attempts_for_username(admin.username)
        click.echo(f"Password for {admin.username} updated, {cleared} lockout record(s) cleared")

#-------------------------




if __name__ == "__main__":
    app = create_app()
    # Run locally
    app.run(host="127.0.0.1", port=5002)
