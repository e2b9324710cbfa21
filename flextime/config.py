# config.py
import os
from datetime import timedelta
from urllib.parse import urlencode, urlparse

from dotenv import load_dotenv

load_dotenv()


def _env_flag(name, default='false'):
    return os.environ.get(name, default).lower() == 'true'


def _database_settings(uri):
    """
    Resolve the SQLAlchemy URI and engine options for a DATABASE_URL.

    MySQL URIs get utf8mb4 plus connect/read/write timeouts appended and a
    recycled connection pool. Everything else (SQLite in development) keeps
    the URI as given.
    """
    if not uri.startswith('mysql'):
        return uri, {'pool_pre_ping': True}

    timeout = os.environ.get('MYSQL_TIMEOUT', '30')
    extra = urlencode({
        'charset': 'utf8mb4',
        'connect_timeout': timeout,
        'read_timeout': timeout,
        'write_timeout': timeout,
    })
    query = urlparse(uri).query
    uri = f"{uri}{'&' if query else '?'}{extra}"

    return uri, {
        'pool_pre_ping': True,
        'pool_recycle': 3600,
        'pool_size': int(os.environ.get('DB_POOL_SIZE', 10)),
        'max_overflow': 20,
    }


class Config:
    """Settings shared by every environment, read from the process environment."""

    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-me'
    DEBUG = _env_flag('FLASK_DEBUG')
    VERSION = '1.0.0'

    # Flask-Login cookie session
    PERMANENT_SESSION_LIFETIME = timedelta(hours=8)
    SESSION_COOKIE_SECURE = True
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'
    REMEMBER_COOKIE_DURATION = timedelta(days=7)
    REMEMBER_COOKIE_HTTPONLY = True

    SQLALCHEMY_DATABASE_URI, SQLALCHEMY_ENGINE_OPTIONS = _database_settings(
        os.environ.get('DATABASE_URL') or 'sqlite:///flextime.db'
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_TO_FILE = _env_flag('LOG_TO_FILE', 'true')
    LOG_DIR = os.environ.get('LOG_DIR', 'logs')
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

    SITE_NAME = 'Flex Time'
    BASE_URL = os.environ.get('BASE_URL', 'http://localhost:5000')
    CONTACT_EMAIL = os.environ.get('CONTACT_EMAIL', 'flextime@example.edu')

    # Scheduling rules
    SELECTION_WINDOW_DAYS = int(os.environ.get('SELECTION_WINDOW_DAYS', 7))
    STAFF_LOOKAHEAD_DAYS = 365
    STATS_LOOKAHEAD_DAYS = 30
    FLEX_DURATIONS = (45, 90)
    NOTIFICATION_LIST_LIMIT = 50

    # Outgoing mail (removal notices)
    MAIL_SERVER = os.environ.get('MAIL_SERVER', 'smtp.gmail.com')
    MAIL_PORT = int(os.environ.get('MAIL_PORT', 465))
    MAIL_USE_SSL = _env_flag('MAIL_USE_SSL', 'true')
    MAIL_USE_TLS = _env_flag('MAIL_USE_TLS')
    MAIL_USERNAME = os.environ.get('MAIL_USERNAME')
    MAIL_PASSWORD = os.environ.get('MAIL_PASSWORD')
    MAIL_DEFAULT_SENDER = os.environ.get('MAIL_DEFAULT_SENDER', 'Flex Time <flextime@example.edu>')
    MAIL_TIMEOUT = 30
    MAIL_SUPPRESS_SEND = _env_flag('MAIL_SUPPRESS_SEND')

    @staticmethod
    def init_app(app):
        pass


class DevelopmentConfig(Config):
    DEBUG = True
    SESSION_COOKIE_SECURE = False
    SQLALCHEMY_ECHO = _env_flag('SQL_DEBUG')


class ProductionConfig(Config):
    DEBUG = False

    @staticmethod
    def init_app(app):
        missing = [name for name in ('SECRET_KEY', 'DATABASE_URL') if not os.environ.get(name)]
        if missing:
            raise RuntimeError(f"Production requires environment variables: {', '.join(missing)}")


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    SQLALCHEMY_ENGINE_OPTIONS = {}
    WTF_CSRF_ENABLED = False
    SESSION_COOKIE_SECURE = False
    LOG_TO_FILE = False
    MAIL_SUPPRESS_SEND = True
    MAIL_USERNAME = 'tests@example.edu'
    MAIL_PASSWORD = 'not-a-real-password'


config_by_name = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig
}
