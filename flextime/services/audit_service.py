# services/audit_service.py
"""
Audit trail for administrative and roster changes.
Entries join the caller's open transaction; the owning operation commits them.
"""

import logging

from flextime.extensions import db
from flextime.models import AuditLog


class AuditService:

    @staticmethod
    def record(actor_id, action, **details):
        """
        Stage an audit entry in the current database session.

        Args:
            actor_id: ID of the user performing the action
            action: Short action name such as 'remove_student'
            **details: JSON-serializable context for the entry

        Returns:
            AuditLog: the pending entry
        """
        entry = AuditLog(user_id=actor_id, action=action, details=details or None)
        db.session.add(entry)
        logging.getLogger('audit_service').info(f"Audit {action} by {actor_id}: {details}")
        return entry

    @staticmethod
    def list_entries(action=None, limit=100):
        query = db.session.query(AuditLog)
        if action:
            query = query.filter(AuditLog.action == action)
        return query.order_by(AuditLog.created_at.desc()).limit(limit).all()
