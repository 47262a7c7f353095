from .auth import auth_bp
from .health import health_bp
from .announcements import announcement_bp
from .banner import banner_bp
