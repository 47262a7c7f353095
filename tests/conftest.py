import pytest

from app import create_app
from config import Config
from models import db
from models.admin import Admin
from security.password import hash_password

ADMIN_USERNAME = "admin"
ADMIN_PASSWORD = "correct-horse-battery"
RECOVERY_PASSWORD = "recover-me-now"


class ConfigForTests(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    JWT_SECRET = "unit-test-secret-0123456789abcdef0123456789"
    BCRYPT_ROUNDS = 4
    RECOVERY_ADMIN_USERNAME = ADMIN_USERNAME
    RECOVERY_ADMIN_PASSWORD = RECOVERY_PASSWORD


class FakeClock:
    def __init__(self, start=1_000_000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture()
def app():
    app = create_app(ConfigForTests)
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def ctx(app):
    with app.app_context():
        yield app


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def admin(app):
    with app.app_context():
        row = Admin(username=ADMIN_USERNAME, password_hash=hash_password(ADMIN_PASSWORD))
        db.session.add(row)
        db.session.commit()
    return ADMIN_USERNAME


def login(client, username=ADMIN_USERNAME, password=ADMIN_PASSWORD, ip="1.2.3.4"):
    return client.post(
        "/api/auth",
        json={"username": username, "password": password},
        headers={"X-Forwarded-For": ip},
    )


@pytest.fixture()
def admin_client(client, admin):
    resp = login(client)
    assert resp.status_code == 200
    return client
