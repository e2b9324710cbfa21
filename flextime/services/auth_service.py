# services/auth_service.py
"""
Authentication service for local email/password login.
"""

import logging

from flask import session
from flask_login import login_user, logout_user, current_user
from sqlalchemy import func

from flextime.errors import UnauthenticatedError
from flextime.extensions import db
from flextime.models import User


class AuthService:
    """Service class for authentication operations."""

    @staticmethod
    def authenticate_user(email, password, remember_me=False):
        """
        Authenticate a user and start their login session.

        Args:
            email: Account email address
            password: Plain text password
            remember_me: Whether to remember login session

        Returns:
            User: the logged in user

        Raises:
            UnauthenticatedError: unknown email, inactive account or wrong password
        """
        logger = logging.getLogger('auth_service')

        user = (
            db.session.query(User)
            .filter(func.lower(User.email) == email.strip().lower(), User.is_active.is_(True))
            .first()
        )

        if not user or not user.check_password(password):
            logger.warning(f"Failed login attempt for: {email}")
            raise UnauthenticatedError('Invalid email or password')

        login_user(user, remember=remember_me)

        logger.info(f"Successful login for user: {user.email}")
        return user

    @staticmethod
    def logout_user_session():
        """Logout current user and clear session."""
        logger = logging.getLogger('auth_service')

        if current_user.is_authenticated:
            email = current_user.email
            logout_user()
            session.clear()
            logger.info(f"User logged out: {email}")
