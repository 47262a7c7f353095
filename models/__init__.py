from .db import db
from .admin import Admin
from .audit_log import AuditLog
from .login_attempt import LoginAttempt
from .announcement import Announcement, Banner
