# services/session_service.py
"""
Session catalog.
Teachers publish sessions for flex dates, optionally repeating them across every
later flex date of the same type and saving them as reusable templates.
"""

import logging
from datetime import datetime

from sqlalchemy import func
from sqlalchemy.orm import joinedload

from flextime.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from flextime.extensions import db
from flextime.models import (
    GRADES, FlexDate, Registration, RoleType, Session, SessionTemplate
)
from flextime.services.audit_service import AuditService
from flextime.services.registration_service import RegistrationService
from flextime.utils.auth import require_role

logger = logging.getLogger('session_service')


class SessionService:

    @staticmethod
    def get(session_id):
        session = db.session.get(Session, session_id)
        if not session:
            raise NotFoundError('Session not found')
        return session

    @staticmethod
    def _validate_details(room_number, capacity, title, allowed_grades):
        errors = {}

        if not room_number:
            errors['room_number'] = 'Room number is required'
        if not title:
            errors['title'] = 'Title is required'
        if capacity is None or capacity <= 0:
            errors['capacity'] = 'Capacity must be greater than 0'
        if not allowed_grades:
            errors['allowed_grades'] = 'At least one grade is required'
        elif any(g not in GRADES for g in allowed_grades):
            errors['allowed_grades'] = f'Grades must be between {min(GRADES)} and {max(GRADES)}'

        if errors:
            raise ValidationError('Invalid session details', details=errors)

    @staticmethod
    def _teacher_has_session(teacher_id, day):
        return db.session.query(
            db.session.query(Session.id)
            .filter(Session.teacher_id == teacher_id, Session.date == day)
            .exists()
        ).scalar()

    @staticmethod
    def create_session(caller, date, room_number=None, capacity=None, title=None,
                       long_description=None, allowed_grades=None, recurring=False,
                       save_as_template=False, template_name=None, template_id=None):
        """
        Create a session for the calling teacher.

        Fields missing from the request are filled from template_id when given.
        With recurring set, the session is repeated on every flex date on or
        after `date` that has the same flex type; dates where the teacher
        already runs a session are skipped.

        Returns:
            list[Session]: the created sessions, the requested date first

        Raises:
            ForbiddenError: caller is not a teacher
            ValidationError: missing or out-of-range fields
            NotFoundError: no flex date on that day, or unknown template
            ConflictError: teacher already has a session on that day
        """
        require_role(caller, RoleType.TEACHER, message='Only teachers can create sessions')

        template = None
        if template_id:
            template = db.session.get(SessionTemplate, template_id)
            if not template or template.teacher_id != caller.id:
                raise NotFoundError('Template not found')
            room_number = room_number or template.room_number
            capacity = capacity or template.capacity
            title = title or template.title
            long_description = long_description or template.long_description
            allowed_grades = allowed_grades or template.allowed_grades

        allowed_grades = sorted(set(allowed_grades or []))
        SessionService._validate_details(room_number, capacity, title, allowed_grades)
        if save_as_template and not template_name:
            raise ValidationError('Template name is required', details={'template_name': 'Required'})

        flex_date = db.session.query(FlexDate).filter(FlexDate.date == date).first()
        if not flex_date:
            raise NotFoundError('Flex date not found')

        if SessionService._teacher_has_session(caller.id, date):
            raise ConflictError('You already have a session on this date')

        if save_as_template:
            template = SessionTemplate(
                teacher_id=caller.id,
                name=template_name,
                room_number=room_number,
                capacity=capacity,
                title=title,
                long_description=long_description,
                allowed_grades=allowed_grades
            )
            db.session.add(template)
            db.session.flush()

        target_dates = [flex_date.date]
        if recurring:
            later = (
                db.session.query(FlexDate.date)
                .filter(
                    FlexDate.date > flex_date.date,
                    FlexDate.flex_type == flex_date.flex_type
                )
                .order_by(FlexDate.date.asc())
                .all()
            )
            taken = {
                d for (d,) in
                db.session.query(Session.date).filter(Session.teacher_id == caller.id)
            }
            target_dates.extend(d for (d,) in later if d not in taken)

        sessions = []
        for day in target_dates:
            session = Session(
                date=day,
                teacher_id=caller.id,
                room_number=room_number,
                capacity=capacity,
                title=title,
                long_description=long_description,
                allowed_grades=allowed_grades,
                created_from_template_id=template.id if template else None
            )
            db.session.add(session)
            sessions.append(session)

        db.session.flush()
        AuditService.record(
            caller.id, 'create_session',
            title=title, dates=[d.isoformat() for d in target_dates], recurring=bool(recurring)
        )
        db.session.commit()

        logger.info(f"Teacher {caller.id} created {len(sessions)} session(s) '{title}'")
        return sessions

    @staticmethod
    def delete_session(caller, session_id):
        """Delete a session and every registration in it. Owner teacher or admin only."""
        require_role(caller, *RoleType.STAFF)
        session = SessionService.get(session_id)
        if caller.is_teacher and session.teacher_id != caller.id:
            raise ForbiddenError('Can only delete your own sessions')

        registration_count = RegistrationService.enrolled_count(session.id)
        title, day = session.title, session.date

        db.session.delete(session)
        AuditService.record(
            caller.id, 'delete_session',
            session_id=session_id, title=title, date=day.isoformat(),
            registrations_removed=registration_count
        )
        db.session.commit()

        logger.info(f"Deleted session {session_id} ({registration_count} registrations removed)")
        return registration_count

    @staticmethod
    def get_session_detail(caller, session_id):
        session = (
            db.session.query(Session)
            .options(
                joinedload(Session.teacher),
                joinedload(Session.registrations).joinedload(Registration.student)
            )
            .filter(Session.id == session_id)
            .first()
        )
        if not session:
            raise NotFoundError('Session not found')

        data = SessionService.session_to_dict(session)
        if caller.is_staff:
            data['registrations'] = [
                dict(r.to_dict(), student={
                    'id': r.student.id,
                    'name': r.student.name,
                    'email': r.student.email,
                    'grade': r.student.grade
                })
                for r in sorted(session.registrations, key=lambda r: r.student.name)
            ]
        return data

    @staticmethod
    def session_to_dict(session, enrolled=None):
        data = session.to_dict()
        data['enrolled_count'] = session.enrolled_count if enrolled is None else enrolled
        data['is_full'] = data['enrolled_count'] >= session.capacity
        data['teacher'] = {'id': session.teacher.id, 'name': session.teacher.name}
        return data

    @staticmethod
    def list_available(caller, date, now=None):
        """
        Sessions offered on a flex date.

        Students only see sessions open to their grade. Every entry carries the
        enrolled count and the caller's registration in it, if any.
        """
        now = now or datetime.now()
        flex_date = db.session.query(FlexDate).filter(FlexDate.date == date).first()
        if not flex_date:
            raise NotFoundError('Flex date not found')

        sessions = (
            db.session.query(Session)
            .options(joinedload(Session.teacher))
            .filter(Session.date == date)
            .order_by(Session.title.asc())
            .all()
        )
        if caller.is_student:
            sessions = [s for s in sessions if s.allows_grade(caller.grade)]

        counts = dict(
            db.session.query(Registration.session_id, func.count(Registration.id))
            .filter(Registration.date == date)
            .group_by(Registration.session_id)
            .all()
        )
        current = (
            db.session.query(Registration)
            .filter(Registration.student_id == caller.id, Registration.date == date)
            .first()
        )

        results = []
        for session in sessions:
            data = SessionService.session_to_dict(session, enrolled=counts.get(session.id, 0))
            data['my_registration'] = (
                current.to_dict() if current and current.session_id == session.id else None
            )
            results.append(data)

        return {
            'flex_date': flex_date.to_dict(),
            'sessions': results,
            'my_current_registration': current.to_dict() if current else None,
            'can_select': flex_date.is_open(now)
        }

    @staticmethod
    def list_teacher_sessions(caller, upcoming_only=True, now=None):
        require_role(caller, RoleType.TEACHER)
        query = db.session.query(Session).filter(Session.teacher_id == caller.id)
        if upcoming_only:
            query = query.filter(Session.date >= (now or datetime.now()).date())
        return [SessionService.session_to_dict(s) for s in query.order_by(Session.date.asc()).all()]

    @staticmethod
    def list_templates(caller):
        require_role(caller, RoleType.TEACHER)
        return (
            db.session.query(SessionTemplate)
            .filter(SessionTemplate.teacher_id == caller.id)
            .order_by(SessionTemplate.name.asc())
            .all()
        )

