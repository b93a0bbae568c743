"""
Centralized Configuration for the Advisory Billing Service
Manages environment-specific settings, secrets, and service configurations.
"""
import os


def normalize_database_url(url):
    """Handle Heroku/Render style postgres:// URLs"""
    if url and url.startswith('postgres://'):
        return url.replace('postgres://', 'postgresql://', 1)
    return url


class Config:
    """Base configuration with defaults"""

    # Flask Settings
    SECRET_KEY = os.environ.get('SECRET_KEY') or os.urandom(32).hex()
    MAX_CONTENT_LENGTH = 2 * 1024 * 1024  # 2MB JSON payloads
    JSON_SORT_KEYS = False

    # CORS Settings
    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*').split(',')
    CORS_METHODS = ['GET', 'POST', 'PUT', 'PATCH', 'DELETE', 'OPTIONS']
    CORS_ALLOW_HEADERS = ['Content-Type', 'Authorization', 'X-Requested-With',
                          'X-Organization-Id', 'X-User-Id']

    # Database Settings
    DATABASE_URL = normalize_database_url(os.environ.get('DATABASE_URL', 'sqlite:///advisory_billing.db'))
    AUTO_CREATE_TABLES = os.environ.get('AUTO_CREATE_TABLES', 'true').lower() == 'true'

    # Tenancy
    DEFAULT_ORGANIZATION_ID = os.environ.get('DEFAULT_ORGANIZATION_ID', 'default')

    # Billing Rules
    # 'replace' deactivates the entity's current schedule, 'reject' answers 409
    FEE_SCHEDULE_CONFLICT_POLICY = os.environ.get('FEE_SCHEDULE_CONFLICT_POLICY', 'replace')
    FEE_HISTORY_DEFAULT_LIMIT = int(os.environ.get('FEE_HISTORY_DEFAULT_LIMIT', '12'))

    # Logging Configuration
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    LOG_FILE = os.environ.get('LOG_FILE', 'app.log')
    LOG_TO_FILE = os.environ.get('LOG_TO_FILE', 'true').lower() == 'true'


class DevelopmentConfig(Config):
    """Development-specific configuration"""
    DEBUG = True
    TESTING = False
    LOG_LEVEL = 'DEBUG'
    # Allow all CORS in development
    CORS_ORIGINS = ['*']


class ProductionConfig(Config):
    """Production-specific configuration"""
    DEBUG = False
    TESTING = False
    # Strict CORS in production
    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', 'https://advisor.example.com').split(',')
    AUTO_CREATE_TABLES = False  # Schema is managed by alembic
    PREFERRED_URL_SCHEME = 'https'
    SESSION_COOKIE_SECURE = True
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'


class TestingConfig(Config):
    """Testing-specific configuration"""
    DEBUG = True
    TESTING = True
    DATABASE_URL = 'sqlite://'  # In-memory database per app
    AUTO_CREATE_TABLES = True
    DEFAULT_ORGANIZATION_ID = 'test-org'
    FEE_SCHEDULE_CONFLICT_POLICY = 'replace'
    LOG_TO_FILE = False


# Configuration selector
config_by_name = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig,
}


def get_config(name=None):
    """Get configuration by name, defaulting to the FLASK_ENV environment variable"""
    env = name or os.environ.get('FLASK_ENV', 'development')
    return config_by_name.get(env, DevelopmentConfig)
