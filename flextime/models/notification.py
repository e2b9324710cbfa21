# models/notification.py
from sqlalchemy import Index

from flextime.extensions import db
from .base import BaseModel


class NotificationType:
    REMOVED = 'removed'
    LOCKED = 'locked'
    SYSTEM = 'system'


class Notification(BaseModel):
    __tablename__ = 'notifications'

    student_id = db.Column(db.String(36), db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    type = db.Column(db.String(10), nullable=False)
    session_id = db.Column(db.String(36), db.ForeignKey('sessions.id', ondelete='SET NULL'), nullable=True)
    flex_date = db.Column(db.Date, nullable=True)
    message = db.Column(db.Text, nullable=False)
    read = db.Column(db.Boolean, default=False, nullable=False)

    student = db.relationship('User', back_populates='notifications')
    session = db.relationship('Session')

    __table_args__ = (
        Index('idx_notification_student_read', 'student_id', 'read'),
    )

    def __repr__(self):
        return f'<Notification {self.type} {self.student_id}>'
