import logging

from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

logger = logging.getLogger(__name__)

cors = CORS()
limiter = Limiter(key_func=get_remote_address)


def init_extensions(app):
    """Bind CORS and rate limiting to the app. Limits come from RATELIMIT_* config."""
    cors.init_app(app, resources={r"/api/*": {"origins": app.config.get('CORS_ORIGINS', [])}})
    limiter.init_app(app)
    logger.info(f"Rate limiting {'enabled' if app.config.get('RATELIMIT_ENABLED', True) else 'disabled'}")
