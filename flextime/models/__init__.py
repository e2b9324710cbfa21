# models/__init__.py
from .base import BaseModel
from .user import GRADES, User, RoleType
from .flex_date import FlexDate, FlexType
from .session_template import SessionTemplate
from .session import Session
from .registration import Registration, RegistrationStatus
from .notification import Notification, NotificationType
from .audit_log import AuditLog

__all__ = [
    'BaseModel',
    'User',
    'RoleType',
    'GRADES',
    'FlexDate',
    'FlexType',
    'SessionTemplate',
    'Session',
    'Registration',
    'RegistrationStatus',
    'Notification',
    'NotificationType',
    'AuditLog'
]
