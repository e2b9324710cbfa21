# __init__.py
"""
Application factory for the flex time scheduler.
"""

import os
import logging
from datetime import datetime
from logging.handlers import RotatingFileHandler

from dotenv import load_dotenv
from flask import Flask, jsonify
from flask.logging import default_handler
from flask_wtf.csrf import CSRFError
from werkzeug.exceptions import HTTPException

from flextime.config import config_by_name
from flextime.errors import FlexTimeError, InternalError, ValidationError
from flextime.extensions import check_database_health, db, email_service, init_extensions

SERVICE_LOGGERS = (
    'registration_service', 'session_service', 'flex_date_service', 'user_service',
    'notification_service', 'audit_service', 'auth_service', 'stats_service',
    'email_service', 'extensions', 'students',
)

LOG_FORMAT = '%(asctime)s %(levelname)s %(name)s %(threadName)s : %(message)s'


def setup_logging(app):
    """
    Send app and service logs to the console, plus a rotating file when
    LOG_TO_FILE is set. SQLAlchemy engine output is held at WARNING.
    """
    level = logging.DEBUG if app.debug else getattr(logging, app.config['LOG_LEVEL'].upper(), logging.INFO)
    formatter = logging.Formatter(LOG_FORMAT)

    handlers = [logging.StreamHandler()]
    if app.config.get('LOG_TO_FILE'):
        log_dir = os.path.join(app.root_path, app.config['LOG_DIR'])
        os.makedirs(log_dir, exist_ok=True)
        handlers.append(RotatingFileHandler(
            os.path.join(log_dir, 'flextime.log'),
            maxBytes=10 * 1024 * 1024,
            backupCount=5
        ))
    for handler in handlers:
        handler.setFormatter(formatter)

    app.logger.removeHandler(default_handler)
    for logger in [app.logger] + [logging.getLogger(name) for name in SERVICE_LOGGERS]:
        logger.setLevel(level)
        logger.propagate = False
        # create_app can run several times in one process
        if not logger.handlers:
            for handler in handlers:
                logger.addHandler(handler)

    sa_logger = logging.getLogger('sqlalchemy.engine')
    sa_logger.setLevel(logging.WARNING)
    sa_logger.propagate = False


def register_blueprints(app):
    from .controllers.admin import admin_bp
    from .controllers.auth import auth_bp
    from .controllers.flex_dates import flex_dates_bp
    from .controllers.notifications import notifications_bp
    from .controllers.registrations import registrations_bp
    from .controllers.sessions import sessions_bp
    from .controllers.students import students_bp

    for blueprint, prefix in (
        (auth_bp, '/api/auth'),
        (registrations_bp, '/api/registrations'),
        (students_bp, '/api/students'),
        (sessions_bp, '/api/sessions'),
        (flex_dates_bp, '/api/flex-dates'),
        (notifications_bp, '/api/notifications'),
        (admin_bp, '/api/admin'),
    ):
        app.register_blueprint(blueprint, url_prefix=prefix)


def register_error_handlers(app):
    """Render every error as {'success': False, 'error_code', 'message'} JSON."""

    @app.errorhandler(FlexTimeError)
    def handle_flextime_error(e):
        if e.status_code >= 500:
            app.logger.error(f"{type(e).__name__}: {e.message}")
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(CSRFError)
    def handle_csrf_error(e):
        error = ValidationError(e.description)
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        error_code = (e.name or 'http_error').lower().replace(' ', '_')
        return jsonify({'success': False, 'error_code': error_code, 'message': e.description}), e.code

    @app.errorhandler(Exception)
    def handle_unexpected(e):
        app.logger.error(f"Unhandled exception: {e}", exc_info=True)
        db.session.rollback()
        return jsonify(InternalError().to_dict()), 500


def register_shell_context(app):
    @app.shell_context_processor
    def make_shell_context():
        from flextime import models
        context = {name: getattr(models, name) for name in models.__all__}
        context.update(db=db, email_service=email_service)
        return context


def register_health_checks(app):

    @app.route('/health')
    def health_check():
        return jsonify({
            'status': 'ok',
            'version': app.config['VERSION'],
            'timestamp': datetime.now().isoformat()
        })

    @app.route('/health/database')
    def database_health_check():
        healthy, message = check_database_health()
        body = {
            'status': 'healthy' if healthy else 'unhealthy',
            'message': message,
            'timestamp': datetime.now().isoformat()
        }
        return jsonify(body), 200 if healthy else 503


def create_app(config_name=None):
    """
    Build a configured application.

    Args:
        config_name (str): 'development', 'production' or 'testing'. Falls back
            to FLASK_ENV, then 'development'.

    Returns:
        Flask: the application
    """
    load_dotenv()

    app = Flask(__name__)

    config_name = config_name or os.environ.get('FLASK_ENV', 'development')
    config_class = config_by_name[config_name]
    app.config.from_object(config_class)
    config_class.init_app(app)

    setup_logging(app)
    init_extensions(app)

    if not email_service.config_issues(app):
        app.logger.info("Email configuration looks complete")

    register_blueprints(app)
    register_error_handlers(app)
    register_shell_context(app)
    register_health_checks(app)

    from .cli import register_cli_commands
    register_cli_commands(app)

    app.logger.info(f"Flex time app created with '{config_name}' config")
    return app
