import os

BASE_DIR = os.path.abspath(os.path.dirname(__file__))

class Config:
    # Secrets
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-only-change-me")
    JWT_SECRET = os.getenv("JWT_SECRET")

    # SQLite database file stored next to the app as lulus_spp.db
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(BASE_DIR, "lulus_spp.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Admin session cookie
    AUTH_COOKIE_NAME = "lulus_spp_admin_token"

    # 7 days session lifetime
    SESSION_LIFETIME_SECONDS = 7 * 24 * 60 * 60

    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    SESSION_COOKIE_SECURE = os.getenv("SESSION_COOKIE_SECURE", "false").lower() == "true"

    BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))

    # Brute-force protection (per ip + username)
    MAX_LOGIN_ATTEMPTS = 5
    LOGIN_WINDOW_MINUTES = 15
    LOCKOUT_MINUTES = 15
    LOGIN_ATTEMPT_RETENTION_HOURS = 24

    # Disaster recovery login. Disabled unless a password is set.
    RECOVERY_ADMIN_USERNAME = os.getenv("RECOVERY_ADMIN_USERNAME", "admin")
    RECOVERY_ADMIN_PASSWORD = os.getenv("RECOVERY_ADMIN_PASSWORD")

    # Request size limits
    MAX_URL_LENGTH = 2048
    MAX_QUERY_LENGTH = 1200
    MAX_CONTENT_LENGTH_BYTES = 200_000

    # In-memory per-IP rate limits (requests per window)
    RATE_LIMIT_WINDOW_SECONDS = 60
    RATE_LIMIT_BLOCK_SECONDS = 5 * 60
    RATE_LIMIT_SWEEP_SECONDS = 30
    RATE_LIMITS = {
        "auth": 20,
        "search": 45,
        "read": 120,
        "write": 40,
    }

    # Scripting clients and scanners, matched case-insensitively
    BLOCKED_USER_AGENTS = (
        "curl",
        "wget",
        "python-requests",
        "python-urllib",
        "python-httpx",
        "aiohttp",
        "go-http-client",
        "okhttp",
        "libwww-perl",
        "httpclient",
        "scrapy",
        "sqlmap",
        "nikto",
        "nmap",
        "masscan",
        "zgrab",
        "nuclei",
        "gobuster",
        "dirbuster",
        "wpscan",
        "acunetix",
    )

    APP_VERSION = os.getenv("APP_VERSION", "0.1.0")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Basic app settings
    DEBUG = False
