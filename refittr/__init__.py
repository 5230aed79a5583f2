"""
Refittr Flask Application Factory

Admin dashboard for the Refittr fixture marketplace (builders, house schemas,
rooms, streets, developments) plus the public marketing site.
"""

import os
import sqlite3
from datetime import datetime

from flask import Flask, render_template, request, jsonify
from sqlalchemy import event
from sqlalchemy.engine import Engine

from refittr.config import config
from refittr.extensions import db, migrate, login_manager, limiter, csrf
from refittr.utils.storage import init_storage


@event.listens_for(Engine, 'connect')
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    """SQLite ignores ON DELETE rules unless foreign keys are switched on."""
    if isinstance(dbapi_connection, sqlite3.Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute('PRAGMA foreign_keys=ON')
        cursor.close()


def create_app(config_name='default', overrides=None, storage=None):
    """
    Application factory function

    Args:
        config_name (str): Configuration name ('development', 'production', 'testing')
        overrides (dict): Extra config values applied after the config class
        storage: Object storage client; built from STORAGE_BACKEND when omitted

    Returns:
        Flask: Configured Flask application instance
    """

    config_name = (config_name or 'default').lower()

    app = Flask(__name__)

    # Instantiate the config object so @property values (like
    # ProductionConfig.SQLALCHEMY_DATABASE_URI) are evaluated.
    cfg = config.get(config_name) or config['default']
    cfg_obj = cfg() if isinstance(cfg, type) else cfg
    app.config.from_object(cfg_obj)
    if overrides:
        app.config.update(overrides)

    if config_name == 'production':
        if not app.config.get('SECRET_KEY'):
            app.logger.error('Production requires SECRET_KEY to be set via environment variable')
            raise RuntimeError('Missing SECRET_KEY in production')
        db_uri = app.config.get('SQLALCHEMY_DATABASE_URI')
        if not db_uri:
            app.logger.error('Production requires DATABASE_URL (SQLALCHEMY_DATABASE_URI) to be set')
            raise RuntimeError('Missing DATABASE_URL in production')
        if db_uri.strip().startswith('sqlite:'):
            app.logger.error('Production requires PostgreSQL (DATABASE_URL must not be sqlite)')
            raise RuntimeError('SQLite not allowed in production')
    elif not app.config.get('SECRET_KEY'):
        app.config['SECRET_KEY'] = os.urandom(32)
        app.logger.warning('SECRET_KEY was missing; generated an ephemeral key for this process.')

    if app.config.get('STORAGE_BACKEND') == 'local':
        os.makedirs(app.config['UPLOAD_FOLDER'], exist_ok=True)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    limiter.init_app(app)
    csrf.init_app(app)
    init_storage(app, storage)

    register_blueprints(app)
    register_error_handlers(app)
    register_template_processors(app)
    register_shell_context(app)
    register_cli_commands(app)

    @app.after_request
    def _apply_security_headers(response):
        """Apply safe security headers without affecting app logic."""
        csp = (
            "default-src 'self'; "
            "base-uri 'self'; "
            "form-action 'self'; "
            "frame-ancestors 'none'; "
            "img-src 'self' data: https:; "
            "script-src 'self' 'unsafe-inline'; "
            "style-src 'self' 'unsafe-inline' https://fonts.googleapis.com; "
            "font-src 'self' https://fonts.gstatic.com; "
            "connect-src 'self';"
        )
        response.headers.setdefault('Content-Security-Policy', csp)
        response.headers.setdefault('X-Frame-Options', 'DENY')
        response.headers.setdefault('X-Content-Type-Options', 'nosniff')
        response.headers.setdefault('Referrer-Policy', 'strict-origin-when-cross-origin')
        return response

    @app.teardown_appcontext
    def _cleanup_appcontext(exc):
        """Ensure scoped sessions are removed when the app context ends."""
        db.session.remove()
        return None

    @app.route('/favicon.ico')
    def favicon_placeholder():  # pragma: no cover - trivial route
        return ('', 204)

    app.logger.info('Refittr started (config=%s, storage=%s)', config_name, app.config.get('STORAGE_BACKEND'))
    return app


def register_blueprints(app):
    """Register Flask blueprints"""

    from refittr.routes.main import main_bp
    from refittr.routes.auth import auth_bp
    from refittr.routes.dashboard import dashboard_bp
    from refittr.routes.schemas import schemas_bp
    from refittr.routes.api import api_bp
    from refittr.routes.health import health_bp

    app.register_blueprint(main_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(dashboard_bp)
    app.register_blueprint(schemas_bp)
    # JSON API: session cookie is SameSite=Lax and bodies must be JSON or
    # multipart from the dashboard itself, so form CSRF tokens are not used.
    csrf.exempt(api_bp)
    app.register_blueprint(api_bp)
    app.register_blueprint(health_bp)  # No prefix - accessible at /health


def _wants_json():
    return request.path.startswith('/api/')


def register_error_handlers(app):
    """Register error handlers; API paths get JSON, pages get templates"""

    @app.errorhandler(404)
    def not_found_error(error):
        if _wants_json():
            return jsonify({'error': 'Not found'}), 404
        return render_template('errors/404.html'), 404

    @app.errorhandler(403)
    def forbidden_error(error):
        if _wants_json():
            return jsonify({'error': 'Forbidden'}), 403
        return render_template('errors/403.html'), 403

    @app.errorhandler(413)
    def too_large_error(error):
        if _wants_json():
            return jsonify({'error': 'File is too large'}), 413
        return render_template('errors/413.html'), 413

    @app.errorhandler(429)
    def rate_limited_error(error):
        if _wants_json():
            return jsonify({'error': 'Too many requests. Please try again shortly.'}), 429
        return render_template('errors/429.html'), 429

    @app.errorhandler(500)
    def internal_error(error):
        app.logger.exception('Unhandled exception (500): %s', error)
        db.session.rollback()
        if _wants_json():
            return jsonify({'error': 'Internal server error'}), 500
        return render_template('errors/500.html'), 500


def register_template_processors(app):
    """Register context processors for templates"""

    @app.context_processor
    def inject_site_config():
        """Public site settings only; storage and database credentials stay server-side."""
        return {
            'site_name': app.config.get('SITE_NAME', 'Refittr'),
            'site_tagline': app.config.get('SITE_TAGLINE', ''),
            'current_year': datetime.utcnow().year,
        }


def register_shell_context(app):
    """Register shell context for Flask CLI"""

    @app.shell_context_processor
    def make_shell_context():
        """Make database models available in Flask shell"""
        from refittr.models import User, Builder, HouseSchema, Room, Street, Development, MailingListSubscriber
        return {
            'db': db,
            'User': User,
            'Builder': Builder,
            'HouseSchema': HouseSchema,
            'Room': Room,
            'Street': Street,
            'Development': Development,
            'MailingListSubscriber': MailingListSubscriber,
        }


def register_cli_commands(app):
    """Register custom Flask CLI commands."""
    from refittr.cli import (
        create_admin_command,
        reset_admin_password_command,
        init_db_command,
        seed_demo_command,
    )

    app.cli.add_command(create_admin_command)
    app.cli.add_command(reset_admin_password_command)
    app.cli.add_command(init_db_command)
    app.cli.add_command(seed_demo_command)
