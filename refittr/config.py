"""
Configuration Module for the Refittr dashboard

This module defines configuration classes for different environments:
- DevelopmentConfig: Local development with SQLite and local file storage
- ProductionConfig: Hosted PostgreSQL + hosted object storage
- TestingConfig: Automated testing configuration
"""

import os
import sys
from pathlib import Path
from datetime import timedelta


class Config:
    """Base configuration with common settings"""

    # Secret key for session management and CSRF protection.
    # No insecure default: development generates an ephemeral key in the
    # factory, production refuses to start without one.
    SECRET_KEY = os.environ.get('SECRET_KEY')

    # Database configuration
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_recycle": 300,
    }

    # Pagination
    SCHEMAS_PER_PAGE = 10
    STREET_SEARCH_LIMIT = 20
    RECENT_ACTIVITY_LIMIT = 10

    # Request body cap. Per-bucket limits are enforced in utils.uploads.
    MAX_CONTENT_LENGTH = 16 * 1024 * 1024

    # Object storage
    # - supabase: hosted storage REST API (service-role key, server only)
    # - cloudinary: buckets map to folders under CLOUDINARY_FOLDER
    # - local: files under UPLOAD_FOLDER, served by the main blueprint
    STORAGE_BACKEND = os.environ.get('STORAGE_BACKEND', 'local').lower()
    UPLOAD_FOLDER = os.environ.get(
        'UPLOAD_FOLDER',
        os.path.join(os.path.dirname(os.path.abspath(__file__)), '..', 'uploads'),
    )
    SUPABASE_URL = os.environ.get('SUPABASE_URL')
    SUPABASE_SERVICE_ROLE_KEY = os.environ.get('SUPABASE_SERVICE_ROLE_KEY')
    STORAGE_CACHE_CONTROL = '3600'
    STORAGE_TIMEOUT_SECONDS = float(os.environ.get('STORAGE_TIMEOUT_SECONDS', '30'))
    CLOUDINARY_URL = os.environ.get('CLOUDINARY_URL')
    CLOUDINARY_FOLDER = os.environ.get('CLOUDINARY_FOLDER', 'refittr')

    # Session configuration
    PERMANENT_SESSION_LIFETIME = timedelta(minutes=720)
    SESSION_REFRESH_EACH_REQUEST = True
    REMEMBER_COOKIE_DURATION = timedelta(days=14)
    REMEMBER_COOKIE_SECURE = True
    REMEMBER_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SECURE = False
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'
    REMEMBER_COOKIE_SAMESITE = 'Lax'

    # Rate limiting (login + public signup)
    RATELIMIT_ENABLED = True
    RATELIMIT_STORAGE_URI = os.environ.get('RATELIMIT_STORAGE_URI', 'memory://')
    LOGIN_RATE_LIMIT = '10 per minute'
    SIGNUP_RATE_LIMIT = '5 per minute'

    # Site
    SITE_NAME = 'Refittr'
    SITE_TAGLINE = 'Precision-fit marketplace for second-hand home fixtures'
    SITE_URL = os.environ.get('SITE_URL', 'http://localhost:5000')

    ADMIN_EMAIL = os.environ.get('ADMIN_EMAIL')


class DevelopmentConfig(Config):
    """Development environment configuration"""

    DEBUG = True
    TESTING = False

    # SQLite URLs must use forward slashes (Windows).
    _project_root = Path(__file__).resolve().parent.parent
    _default_db_path = (_project_root / 'refittr.db').resolve()

    _env_db_url = os.environ.get('DATABASE_URL')
    if _env_db_url and _env_db_url.strip().startswith('sqlite:'):
        _env_db_url = _env_db_url.replace('\\', '/')

    SQLALCHEMY_DATABASE_URI = _env_db_url or f"sqlite:///{_default_db_path.as_posix()}"

    SESSION_COOKIE_SECURE = False
    REMEMBER_COOKIE_SECURE = False


class ProductionConfig(Config):
    """Production environment configuration"""

    DEBUG = False
    TESTING = False

    @property
    def SQLALCHEMY_DATABASE_URI(self):
        """
        Production database URI built from DATABASE_URL at instantiation time.

        - Hosted Postgres providers hand out postgres:// which SQLAlchemy rejects
        - SSL is required for the hosted database
        """
        db_uri = os.environ.get('DATABASE_URL')
        if not db_uri:
            print('FATAL: DATABASE_URL not set in environment', file=sys.stderr)
            return None

        if db_uri.startswith('postgres://'):
            db_uri = 'postgresql://' + db_uri[len('postgres://'):]

        if db_uri.startswith('postgresql://') and 'sslmode=' not in db_uri:
            separator = '&' if '?' in db_uri else '?'
            db_uri = f"{db_uri}{separator}sslmode=require"

        return db_uri

    STORAGE_BACKEND = os.environ.get('STORAGE_BACKEND', 'supabase').lower()

    SESSION_COOKIE_SECURE = True
    REMEMBER_COOKIE_SECURE = True


class TestingConfig(Config):
    """Testing environment configuration"""

    TESTING = True
    DEBUG = True

    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    SQLALCHEMY_ENGINE_OPTIONS = {}

    WTF_CSRF_ENABLED = False
    RATELIMIT_ENABLED = False

    STORAGE_BACKEND = 'local'
    SECRET_KEY = 'test-secret-key'

    SESSION_COOKIE_SECURE = False
    REMEMBER_COOKIE_SECURE = False


config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}
