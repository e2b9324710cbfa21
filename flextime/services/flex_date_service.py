# services/flex_date_service.py
"""
Flex date registry: the calendar of flex periods students sign up for.
"""

import logging
from datetime import datetime, timedelta

from flask import current_app
from sqlalchemy import func

from flextime.errors import ConflictError, NotFoundError, ValidationError
from flextime.extensions import db
from flextime.models import FlexDate, FlexType, Registration, RoleType, Session
from flextime.services.audit_service import AuditService
from flextime.utils.auth import require_role


class FlexDateService:

    @staticmethod
    def _validate_fields(flex_type=None, duration_minutes=None):
        if flex_type is not None and flex_type not in FlexType.ALL:
            raise ValidationError('Invalid flex_type')
        if duration_minutes is not None and duration_minutes not in current_app.config['FLEX_DURATIONS']:
            durations = ' or '.join(str(d) for d in current_app.config['FLEX_DURATIONS'])
            raise ValidationError(f'Duration must be {durations} minutes')

    @staticmethod
    def get(flex_date_id):
        flex_date = db.session.get(FlexDate, flex_date_id)
        if not flex_date:
            raise NotFoundError('Flex date not found')
        return flex_date

    @staticmethod
    def get_by_date(day):
        flex_date = db.session.query(FlexDate).filter(FlexDate.date == day).first()
        if not flex_date:
            raise NotFoundError('Flex date not found')
        return flex_date

    @staticmethod
    def create_flex_date(caller, date, flex_type, duration_minutes, selection_deadline, is_locked=False):
        """
        Create a flex date.

        Raises:
            ForbiddenError: caller is not an admin
            ValidationError: unknown flex type or duration other than 45/90
            ConflictError: a flex date already exists for that day
        """
        logger = logging.getLogger('flex_date_service')
        require_role(caller, RoleType.ADMIN)
        FlexDateService._validate_fields(flex_type, duration_minutes)

        exists = db.session.query(
            db.session.query(FlexDate.id).filter(FlexDate.date == date).exists()
        ).scalar()
        if exists:
            raise ConflictError('Flex date already exists for this date')

        flex_date = FlexDate(
            date=date,
            flex_type=flex_type,
            duration_minutes=duration_minutes,
            selection_deadline=selection_deadline,
            is_locked=bool(is_locked)
        )
        db.session.add(flex_date)
        db.session.flush()

        AuditService.record(
            caller.id, 'create_flex_date',
            flex_date_id=flex_date.id, date=date.isoformat(), flex_type=flex_type
        )
        db.session.commit()

        logger.info(f"Created flex date {date} ({flex_type}, {duration_minutes} min)")
        return flex_date

    @staticmethod
    def update_flex_date(caller, flex_date_id, **updates):
        """
        Partially update a flex date. Only flex_type, duration_minutes,
        selection_deadline and is_locked may change.
        """
        require_role(caller, RoleType.ADMIN)
        allowed = ('flex_type', 'duration_minutes', 'selection_deadline', 'is_locked')
        updates = {k: v for k, v in updates.items() if k in allowed and v is not None}

        if not updates:
            raise ValidationError('No fields to update')

        FlexDateService._validate_fields(updates.get('flex_type'), updates.get('duration_minutes'))
        flex_date = FlexDateService.get(flex_date_id)
        flex_date.update_from(updates)

        AuditService.record(
            caller.id, 'update_flex_date',
            flex_date_id=flex_date.id,
            updates={k: (v.isoformat() if isinstance(v, datetime) else v) for k, v in updates.items()}
        )
        db.session.commit()
        return flex_date

    @staticmethod
    def delete_flex_date(caller, flex_date_id):
        """
        Delete a flex date that no session references.

        Raises:
            ConflictError: sessions still exist for that day
        """
        require_role(caller, RoleType.ADMIN)
        flex_date = FlexDateService.get(flex_date_id)

        session_count = (
            db.session.query(func.count(Session.id))
            .filter(Session.date == flex_date.date)
            .scalar()
        )
        if session_count:
            raise ConflictError(
                f'Cannot delete. {session_count} session(s) exist for this date. Delete sessions first.',
                details={'session_count': session_count}
            )

        day = flex_date.date
        db.session.delete(flex_date)
        AuditService.record(caller.id, 'delete_flex_date', flex_date_id=flex_date_id, date=day.isoformat())
        db.session.commit()

        logging.getLogger('flex_date_service').info(f"Deleted flex date {day}")

    @staticmethod
    def _counts_by_date(column):
        return dict(
            db.session.query(column, func.count()).group_by(column).all()
        )

    @staticmethod
    def list_flex_dates(caller):
        """All flex dates with session and registration counts."""
        require_role(caller, RoleType.ADMIN)
        session_counts = FlexDateService._counts_by_date(Session.date)
        registration_counts = FlexDateService._counts_by_date(Registration.date)

        results = []
        for flex_date in db.session.query(FlexDate).order_by(FlexDate.date.asc()).all():
            data = flex_date.to_dict()
            data['session_count'] = session_counts.get(flex_date.date, 0)
            data['registration_count'] = registration_counts.get(flex_date.date, 0)
            results.append(data)
        return results

    @staticmethod
    def list_upcoming(caller, now=None):
        """
        Flex dates from today on: a week ahead for students, a year for staff.
        Each entry carries the caller's own registration for that day.
        """
        now = now or datetime.now()
        today = now.date()
        if caller.is_student:
            horizon = current_app.config.get('SELECTION_WINDOW_DAYS', 7)
        else:
            horizon = current_app.config.get('STAFF_LOOKAHEAD_DAYS', 365)

        flex_dates = (
            db.session.query(FlexDate)
            .filter(FlexDate.date >= today, FlexDate.date <= today + timedelta(days=horizon))
            .order_by(FlexDate.date.asc())
            .all()
        )

        session_counts = FlexDateService._counts_by_date(Session.date)
        registration_counts = FlexDateService._counts_by_date(Registration.date)
        my_registrations = {
            r.date: r for r in
            db.session.query(Registration)
            .filter(Registration.student_id == caller.id, Registration.date >= today)
            .all()
        }

        results = []
        for flex_date in flex_dates:
            data = flex_date.to_dict()
            data['total_sessions'] = session_counts.get(flex_date.date, 0)
            data['students_registered'] = registration_counts.get(flex_date.date, 0)
            data['can_select'] = flex_date.is_open(now)
            registration = my_registrations.get(flex_date.date)
            data['my_registration'] = None
            if registration:
                data['my_registration'] = registration.to_dict()
                data['my_registration']['session'] = {
                    'id': registration.session.id,
                    'title': registration.session.title,
                    'room_number': registration.session.room_number,
                    'teacher_name': registration.session.teacher.name
                }
            results.append(data)

        return {'flex_dates': results, 'today': today.isoformat()}
