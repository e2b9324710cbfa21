# utils/auth.py
from dataclasses import dataclass
from functools import wraps
from typing import Optional

from flask_login import current_user

from flextime.errors import ForbiddenError, UnauthenticatedError
from flextime.models import RoleType


@dataclass(frozen=True)
class Caller:
    """Identity of whoever invokes a service operation."""

    id: str
    role: str
    grade: Optional[int] = None

    @classmethod
    def from_user(cls, user):
        return cls(id=user.id, role=user.role, grade=user.grade)

    @property
    def is_student(self):
        return self.role == RoleType.STUDENT

    @property
    def is_teacher(self):
        return self.role == RoleType.TEACHER

    @property
    def is_admin(self):
        return self.role == RoleType.ADMIN

    @property
    def is_staff(self):
        return self.role in RoleType.STAFF


def current_caller():
    """Build a Caller for the logged-in user of this request."""
    if not current_user.is_authenticated:
        raise UnauthenticatedError()
    return Caller.from_user(current_user)


def require_role(caller, *roles, message=None):
    """Raise ForbiddenError unless the caller holds one of the roles."""
    if caller.role not in roles:
        raise ForbiddenError(message or f'Role required: {", ".join(roles)}')


def role_required(*roles):
    """Decorator to require specific role(s)."""

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            require_role(current_caller(), *roles)
            return f(*args, **kwargs)

        return decorated_function

    return decorator


def staff_required(f):
    """Decorator to require staff role (teacher or admin)."""
    return role_required(*RoleType.STAFF)(f)


def admin_required(f):
    return role_required(RoleType.ADMIN)(f)
