# services/notification_service.py
"""
Student-facing notifications about registration changes.
"""

import logging

from sqlalchemy import func

from flextime.errors import ForbiddenError, NotFoundError
from flextime.extensions import db
from flextime.models import Notification, NotificationType


class NotificationService:

    @staticmethod
    def notify(student_id, notification_type, message, session_id=None, flex_date=None):
        """Stage a notification in the current database session."""
        notification = Notification(
            student_id=student_id,
            type=notification_type,
            session_id=session_id,
            flex_date=flex_date,
            message=message,
            read=False
        )
        db.session.add(notification)
        return notification

    @staticmethod
    def notify_locked(registration, session):
        return NotificationService.notify(
            registration.student_id,
            NotificationType.LOCKED,
            f"You have been locked to {session.title}. You cannot change this selection.",
            session_id=session.id,
            flex_date=session.date
        )

    @staticmethod
    def notify_removed(student_id, session):
        return NotificationService.notify(
            student_id,
            NotificationType.REMOVED,
            f"You have been removed from {session.title}. Please select another session.",
            session_id=session.id,
            flex_date=session.date
        )

    @staticmethod
    def list_for_student(caller, unread_only=False, limit=50):
        """
        Get the caller's notifications, newest first.

        Returns:
            tuple: (notifications: list, unread_count: int)
        """
        query = db.session.query(Notification).filter(Notification.student_id == caller.id)
        if unread_only:
            query = query.filter(Notification.read.is_(False))

        notifications = query.order_by(Notification.created_at.desc()).limit(limit).all()

        unread_count = (
            db.session.query(func.count(Notification.id))
            .filter(Notification.student_id == caller.id, Notification.read.is_(False))
            .scalar()
        )
        return notifications, unread_count

    @staticmethod
    def mark_read(caller, notification_id):
        notification = db.session.get(Notification, notification_id)
        if not notification:
            raise NotFoundError('Notification not found')
        if notification.student_id != caller.id:
            raise ForbiddenError()

        notification.read = True
        db.session.commit()
        return notification

    @staticmethod
    def mark_all_read(caller):
        """Mark every unread notification of the caller as read."""
        updated = (
            db.session.query(Notification)
            .filter(Notification.student_id == caller.id, Notification.read.is_(False))
            .update({Notification.read: True}, synchronize_session=False)
        )
        db.session.commit()
        logging.getLogger('notification_service').debug(
            f"Marked {updated} notifications read for {caller.id}"
        )
        return updated
