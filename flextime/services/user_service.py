# services/user_service.py
"""
User directory maintained by administrators.
"""

import logging

from sqlalchemy import func, or_

from flextime.errors import ConflictError, NotFoundError, ValidationError
from flextime.extensions import db
from flextime.models import GRADES, RoleType, Session, User
from flextime.services.audit_service import AuditService
from flextime.utils.auth import require_role

logger = logging.getLogger('user_service')


class UserService:

    @staticmethod
    def get(user_id):
        user = db.session.get(User, user_id)
        if not user:
            raise NotFoundError('User not found')
        return user

    @staticmethod
    def _check_role_and_grade(role, grade):
        if role not in RoleType.ALL:
            raise ValidationError('Invalid role', details={'role': f'Must be one of {", ".join(RoleType.ALL)}'})
        if role == RoleType.STUDENT and grade is not None and grade not in GRADES:
            raise ValidationError(
                f'Grade must be between {min(GRADES)} and {max(GRADES)}',
                details={'grade': 'Out of range'}
            )

    @staticmethod
    def list_users(caller, role=None, search=None):
        require_role(caller, RoleType.ADMIN)
        query = db.session.query(User)
        if role:
            query = query.filter(User.role == role)
        if search:
            pattern = f'%{search.strip()}%'
            query = query.filter(or_(User.name.ilike(pattern), User.email.ilike(pattern)))
        return query.order_by(User.name.asc()).all()

    @staticmethod
    def create_user(caller, email, name, role, password, grade=None, homeroom=None):
        """
        Create a local account.

        Raises:
            ValidationError: unknown role or grade out of range
            ConflictError: email already registered
        """
        require_role(caller, RoleType.ADMIN)
        email = email.strip().lower()
        UserService._check_role_and_grade(role, grade)

        if db.session.query(User).filter(func.lower(User.email) == email).first():
            raise ConflictError('A user with this email already exists')

        user = User(email=email, name=name.strip(), role=role)
        if role == RoleType.STUDENT:
            user.grade = grade
            user.homeroom = homeroom
        user.set_password(password)

        db.session.add(user)
        db.session.flush()
        AuditService.record(caller.id, 'create_user', user_id=user.id, email=email, role=role)
        db.session.commit()

        logger.info(f"Created {role} account {email}")
        return user

    @staticmethod
    def update_user(caller, user_id, **updates):
        """
        Partially update a user. Grade and homeroom are cleared when the role
        becomes anything other than student.
        """
        require_role(caller, RoleType.ADMIN)
        allowed = ('name', 'role', 'grade', 'homeroom', 'is_active', 'password')
        updates = {k: v for k, v in updates.items() if k in allowed and v is not None}
        if not updates:
            raise ValidationError('No fields to update')

        user = UserService.get(user_id)
        role = updates.get('role', user.role)
        grade = updates.get('grade', user.grade)
        UserService._check_role_and_grade(role, grade)

        password = updates.pop('password', None)
        if password:
            user.set_password(password)
        user.update_from(updates)

        if user.role != RoleType.STUDENT:
            user.grade = None
            user.homeroom = None

        AuditService.record(
            caller.id, 'update_user',
            user_id=user.id, fields=sorted(updates) + (['password'] if password else [])
        )
        db.session.commit()
        return user

    @staticmethod
    def delete_user(caller, user_id):
        """
        Delete a user together with their registrations, notifications and templates.

        Raises:
            ValidationError: admin tries to delete their own account
            ConflictError: teacher still owns sessions
        """
        require_role(caller, RoleType.ADMIN)
        if user_id == caller.id:
            raise ValidationError('Cannot delete your own account')

        user = UserService.get(user_id)
        session_count = (
            db.session.query(func.count(Session.id))
            .filter(Session.teacher_id == user.id)
            .scalar()
        )
        if session_count:
            raise ConflictError(
                f'Cannot delete. User teaches {session_count} session(s). Delete sessions first.',
                details={'session_count': session_count}
            )

        email = user.email
        db.session.delete(user)
        AuditService.record(caller.id, 'delete_user', user_id=user_id, email=email)
        db.session.commit()

        logger.info(f"Deleted user {email}")
