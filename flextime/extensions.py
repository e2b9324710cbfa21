# extensions.py
"""
Extension singletons, bound to an application by init_extensions().
Models and services import from here so nothing depends on the app object.
"""

import logging

from flask_login import LoginManager
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from flask_wtf.csrf import CSRFProtect
from sqlalchemy import event, text
from sqlalchemy.exc import SQLAlchemyError

from flextime.utils.email_service import EmailService

db = SQLAlchemy()
migrate = Migrate()
csrf = CSRFProtect()
login_manager = LoginManager()
email_service = EmailService()

logger = logging.getLogger('extensions')


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def check_database_health():
    """
    Run a trivial query against the bound database. Needs an app context.

    Returns:
        tuple: (healthy: bool, message: str)
    """
    try:
        db.session.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}")
        db.session.rollback()
        return False, "Database connection failed"
    return True, "Database connection is healthy"


def _load_user(user_id):
    from flextime.models import User

    user = db.session.get(User, user_id)
    if user is None or not user.is_active:
        return None
    return user


def _unauthorized():
    from flextime.errors import UnauthenticatedError
    raise UnauthenticatedError()


def init_extensions(app):
    """
    Bind every extension to the app.

    The database comes first since the login loader and migrations use it.
    """
    db.init_app(app)
    migrate.init_app(app, db)

    # SQLite only honours ON DELETE rules with foreign keys switched on
    with app.app_context():
        if db.engine.dialect.name == 'sqlite':
            event.listen(db.engine, 'connect', _enable_sqlite_foreign_keys)

    login_manager.init_app(app)
    login_manager.session_protection = 'basic'
    login_manager.user_loader(_load_user)
    login_manager.unauthorized_handler(_unauthorized)

    csrf.init_app(app)
    email_service.init_app(app)

    app.logger.info("Extensions initialized")
