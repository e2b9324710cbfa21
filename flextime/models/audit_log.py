# models/audit_log.py
from flextime.extensions import db
from .base import BaseModel


class AuditLog(BaseModel):
    """Admin-facing record of who changed what."""

    __tablename__ = 'audit_log'

    user_id = db.Column(db.String(36), db.ForeignKey('users.id', ondelete='SET NULL'), nullable=True, index=True)
    action = db.Column(db.String(50), nullable=False, index=True)
    details = db.Column(db.JSON, nullable=True)

    def __repr__(self):
        return f'<AuditLog {self.action}>'
