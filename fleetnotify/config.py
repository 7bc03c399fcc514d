import os
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _env_bool(name, default=False):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def _env_list(name, default):
    value = os.environ.get(name)
    if not value:
        return list(default)
    return [item.strip() for item in value.split(',') if item.strip()]


class Config:
    """Base configuration - shared across all environments"""

    SECRET_KEY = os.environ.get('SECRET_KEY', 'dev-secret-key')

    # Firebase service account. FIREBASE_CREDENTIALS_FILE wins over the inline values.
    FIREBASE_CREDENTIALS_FILE = os.environ.get('FIREBASE_CREDENTIALS_FILE')
    FIREBASE_TYPE = os.environ.get('FIREBASE_TYPE', 'service_account')
    FIREBASE_PROJECT_ID = os.environ.get('FIREBASE_PROJECT_ID')
    FIREBASE_PRIVATE_KEY_ID = os.environ.get('FIREBASE_PRIVATE_KEY_ID')
    FIREBASE_PRIVATE_KEY = os.environ.get('FIREBASE_PRIVATE_KEY')
    FIREBASE_CLIENT_EMAIL = os.environ.get('FIREBASE_CLIENT_EMAIL')
    FIREBASE_CLIENT_ID = os.environ.get('FIREBASE_CLIENT_ID')
    FIREBASE_AUTH_URI = os.environ.get('FIREBASE_AUTH_URI', 'https://accounts.google.com/o/oauth2/auth')
    FIREBASE_TOKEN_URI = os.environ.get('FIREBASE_TOKEN_URI', 'https://oauth2.googleapis.com/token')
    FIREBASE_AUTH_PROVIDER_CERT_URL = os.environ.get(
        'FIREBASE_AUTH_PROVIDER_CERT_URL', 'https://www.googleapis.com/oauth2/v1/certs')
    FIREBASE_CLIENT_CERT_URL = os.environ.get('FIREBASE_CLIENT_CERT_URL')
    FIREBASE_UNIVERSE_DOMAIN = os.environ.get('FIREBASE_UNIVERSE_DOMAIN', 'googleapis.com')

    # Token collection layout in Firestore
    TOKEN_COLLECTION = os.environ.get('TOKEN_COLLECTION', 'token-usuarios')
    TOKEN_FIELD = os.environ.get('TOKEN_FIELD', 'fcmTokens')

    # Push delivery hints
    ANDROID_CHANNEL_ID = os.environ.get('ANDROID_CHANNEL_ID', 'high_importance_channel')
    ANDROID_CLICK_ACTION = os.environ.get('ANDROID_CLICK_ACTION', 'FLUTTER_NOTIFICATION_CLICK')
    WEBPUSH_BASE_URL = os.environ.get('WEBPUSH_BASE_URL')  # must be https for FCM
    WEBPUSH_ICON = os.environ.get('WEBPUSH_ICON', '/icon-192x192.png')
    WEBPUSH_BADGE = os.environ.get('WEBPUSH_BADGE', '/icon-64x64.png')

    # Traccar retries on anything but 2xx, so some deployments want the old silent 200
    ACCEPT_EVENTS_WITHOUT_IDENTITY = _env_bool('ACCEPT_EVENTS_WITHOUT_IDENTITY', False)

    # Rate limiting (Flask-Limiter)
    RATELIMIT_ENABLED = _env_bool('RATELIMIT_ENABLED', True)
    RATELIMIT_DEFAULT = os.environ.get('RATELIMIT_DEFAULT', '600 per minute')
    RATELIMIT_STORAGE_URI = os.environ.get('RATELIMIT_STORAGE_URI', 'memory://')

    CORS_ORIGINS = _env_list('CORS_ORIGINS', [
        'http://localhost:3000',
        'http://127.0.0.1:3000',
    ])

    # Logging
    BASE_DIR = os.path.dirname(os.path.abspath(__file__))
    LOGS_DIR = os.environ.get('LOGS_DIR', os.path.join(BASE_DIR, 'logs'))
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    LOG_TO_FILE = _env_bool('LOG_TO_FILE', True)

    FLASK_HOST = os.environ.get('FLASK_HOST', '0.0.0.0')
    FLASK_PORT = int(os.environ.get('FLASK_PORT', 5000))


class DevConfig(Config):
    """Development configuration"""
    DEBUG = True
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'DEBUG')


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False
    # Production: Use IPv6 dual-stack on Linux server
    FLASK_HOST = os.environ.get('FLASK_HOST', '::')
    LOGS_DIR = os.environ.get('LOGS_DIR', str(Path(__file__).resolve().parents[1] / 'logs'))


class TestConfig(Config):
    """Test configuration - no file logging, no rate limits"""
    __test__ = False  # not a pytest test class
    TESTING = True
    DEBUG = False
    RATELIMIT_ENABLED = False
    LOG_TO_FILE = False
    ACCEPT_EVENTS_WITHOUT_IDENTITY = False
    WEBPUSH_BASE_URL = None


CONFIGS = {
    'development': DevConfig,
    'production': ProductionConfig,
    'testing': TestConfig,
}


def get_config(name=None):
    """Resolve a config class from APP_ENV (defaults to development)."""
    name = (name or os.environ.get('APP_ENV', 'development')).lower()
    return CONFIGS.get(name, DevConfig)
