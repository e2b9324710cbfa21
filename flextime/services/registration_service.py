# services/registration_service.py
"""
Registration workflow.
Assigns students to sessions for a flex date and enforces the window, deadline,
grade and capacity rules. Teachers and admins can lock a student to a session,
unlock them again, or remove them from a roster.

Every operation takes an explicit Caller and either returns its result or raises
a FlexTimeError subclass.
"""

import logging
from datetime import datetime, timedelta

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import joinedload

from flextime.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from flextime.extensions import db, email_service
from flextime.models import (
    FlexDate, NotificationType, Registration, RegistrationStatus, RoleType, Session, User
)
from flextime.services.audit_service import AuditService
from flextime.services.notification_service import NotificationService
from flextime.utils.auth import require_role

logger = logging.getLogger('registration_service')


class RemovalResult:
    """Outcome of removing a student from a session."""

    def __init__(self, registration_id, student_id, session_id, email_sent):
        self.registration_id = registration_id
        self.student_id = student_id
        self.session_id = session_id
        self.email_sent = email_sent

    def to_dict(self):
        return {
            'registration_id': self.registration_id,
            'student_id': self.student_id,
            'session_id': self.session_id,
            'email_sent': self.email_sent
        }


class RegistrationService:

    # ===============================
    # LOOKUPS
    # ===============================

    @staticmethod
    def _get_session(session_id, for_update=False):
        query = db.session.query(Session).filter(Session.id == session_id)
        if for_update:
            # Serializes concurrent selects on engines with row locks
            query = query.with_for_update()
        session = query.first()
        if not session:
            raise NotFoundError('Session not found')
        return session

    @staticmethod
    def _get_registration(registration_id):
        registration = (
            db.session.query(Registration)
            .options(joinedload(Registration.session))
            .filter(Registration.id == registration_id)
            .first()
        )
        if not registration:
            raise NotFoundError('Registration not found')
        return registration

    @staticmethod
    def _registrations_for_date(student_id, flex_date):
        return (
            db.session.query(Registration)
            .filter(Registration.student_id == student_id, Registration.date == flex_date)
            .all()
        )

    @staticmethod
    def enrolled_count(session_id, exclude_student_id=None):
        query = db.session.query(func.count(Registration.id)).filter(Registration.session_id == session_id)
        if exclude_student_id:
            query = query.filter(Registration.student_id != exclude_student_id)
        return query.scalar()

    @staticmethod
    def _commit(action):
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            logger.warning(f"Concurrent registration change during {action}")
            raise ConflictError('Registration changed concurrently, please try again')

    # ===============================
    # STUDENT OPERATIONS
    # ===============================

    @staticmethod
    def select_session(caller, session_id, now=None):
        """
        Register the calling student for a session, replacing any registration
        they hold for the same flex date.

        Args:
            caller: Caller performing the selection (must be a student)
            session_id: ID of the session to join
            now: Current time, defaults to datetime.now()

        Returns:
            Registration: the student's registration for that date

        Raises:
            ForbiddenError: caller is not a student
            NotFoundError: session does not exist
            ValidationError: window, deadline, grade, lock or admin freeze rule broken
            ConflictError: the session is full
        """
        require_role(caller, RoleType.STUDENT, message='Only students can register')
        now = now or datetime.now()

        session = RegistrationService._get_session(session_id, for_update=True)
        flex_date = session.flex_date

        if flex_date.is_locked:
            raise ValidationError('Registration is locked for this date')

        today = now.date()
        window_days = current_app.config.get('SELECTION_WINDOW_DAYS', 7)
        if session.date < today or session.date > today + timedelta(days=window_days):
            raise ValidationError(f'Can only register within {window_days} days')

        if now > flex_date.selection_deadline:
            raise ValidationError('Deadline passed')

        if not session.allows_grade(caller.grade):
            raise ValidationError('Grade not allowed')

        existing = RegistrationService._registrations_for_date(caller.id, session.date)
        if any(r.is_locked for r in existing):
            raise ValidationError('Locked to another session')

        for registration in existing:
            if registration.session_id == session.id:
                return registration

        enrolled = RegistrationService.enrolled_count(session.id, exclude_student_id=caller.id)
        if enrolled >= session.capacity:
            raise ConflictError('Session full')

        for registration in existing:
            db.session.delete(registration)
        # Deletes must reach the database before the insert reuses (student, date)
        db.session.flush()

        registration = Registration(
            session_id=session.id,
            student_id=caller.id,
            date=session.date,
            status=RegistrationStatus.SELECTED
        )
        db.session.add(registration)
        RegistrationService._commit('select')

        logger.info(f"Student {caller.id} selected session {session.id} for {session.date}")
        return registration

    @staticmethod
    def cancel_registration(caller, registration_id):
        """
        Delete the caller's own registration.

        Raises:
            NotFoundError: registration does not exist
            ForbiddenError: registration belongs to someone else
            ValidationError: registration is locked or the date is frozen
        """
        registration = RegistrationService._get_registration(registration_id)

        if registration.student_id != caller.id:
            raise ForbiddenError()

        if registration.is_locked:
            raise ValidationError('Cannot delete locked registration')

        if registration.session.flex_date.is_locked:
            raise ValidationError('Registration is locked for this date')

        db.session.delete(registration)
        db.session.commit()
        logger.info(f"Student {caller.id} cancelled registration {registration_id}")

    @staticmethod
    def list_for_student(caller, now=None):
        """The caller's registrations from today onward, soonest first."""
        today = (now or datetime.now()).date()
        return (
            db.session.query(Registration)
            .options(
                joinedload(Registration.session).joinedload(Session.teacher),
                joinedload(Registration.session).joinedload(Session.flex_date)
            )
            .filter(Registration.student_id == caller.id, Registration.date >= today)
            .order_by(Registration.date.asc())
            .all()
        )

    # ===============================
    # STAFF OPERATIONS
    # ===============================

    @staticmethod
    def _require_session_owner(caller, session, message):
        require_role(caller, *RoleType.STAFF)
        if caller.is_teacher and session.teacher_id != caller.id:
            raise ForbiddenError(message)

    @staticmethod
    def lock_student(caller, student_id, session_id):
        """
        Lock a student to a session, overriding their own choice for that date.

        Raises:
            ForbiddenError: caller is not staff, or a teacher not owning the session
            NotFoundError: session or student missing
            ValidationError: target user is not a student
            ConflictError: student is already locked to another session that day
        """
        require_role(caller, *RoleType.STAFF)
        session = RegistrationService._get_session(session_id)
        RegistrationService._require_session_owner(caller, session, 'Can only lock to your sessions')

        student = db.session.get(User, student_id)
        if not student:
            raise NotFoundError('Student not found')
        if not student.is_student():
            raise ValidationError('Only students can be locked to a session')

        existing = RegistrationService._registrations_for_date(student.id, session.date)

        for registration in existing:
            if registration.is_locked and registration.session_id != session.id:
                holder = registration.locked_by or registration.session.teacher
                raise ConflictError(f'Already locked by {holder.name}')

        registration = None
        for other in existing:
            if other.session_id == session.id:
                registration = other
            else:
                db.session.delete(other)
        db.session.flush()

        if registration is None:
            registration = Registration(session_id=session.id, student_id=student.id, date=session.date)
            db.session.add(registration)
        registration.lock(caller.id)

        NotificationService.notify_locked(registration, session)
        AuditService.record(
            caller.id, 'lock_student',
            student_id=student.id, session_id=session.id, date=session.date.isoformat()
        )
        RegistrationService._commit('lock')

        logger.info(f"{caller.role} {caller.id} locked student {student.id} to session {session.id}")
        return registration

    @staticmethod
    def unlock_registration(caller, registration_id):
        """
        Return a locked registration to 'selected'.

        A registration that is not locked is rejected with ValidationError and
        left untouched.
        """
        require_role(caller, *RoleType.STAFF)
        registration = RegistrationService._get_registration(registration_id)

        if not registration.is_locked:
            raise ValidationError('Registration is not locked')

        if not caller.is_admin and registration.locked_by_teacher_id != caller.id:
            raise ForbiddenError('Only locking teacher or admin can unlock')

        registration.unlock()
        AuditService.record(
            caller.id, 'unlock_student',
            registration_id=registration.id, student_id=registration.student_id
        )
        db.session.commit()

        logger.info(f"{caller.role} {caller.id} unlocked registration {registration.id}")
        return registration

    @staticmethod
    def remove_student(caller, registration_id):
        """
        Remove a student from a session roster.

        The deletion and the 'removed' notification are committed together.
        One removal email is then attempted; its failure is reported in the
        result and does not undo the removal.

        Returns:
            RemovalResult
        """
        require_role(caller, *RoleType.STAFF)
        registration = RegistrationService._get_registration(registration_id)
        session = registration.session
        RegistrationService._require_session_owner(caller, session, 'Can only remove from your sessions')

        student = registration.student
        teacher = session.teacher
        flex_date = session.flex_date
        student_id = registration.student_id

        db.session.delete(registration)
        NotificationService.notify_removed(student_id, session)
        db.session.commit()

        email_result = email_service.send_removal_notice(
            student_email=student.email,
            student_name=student.name,
            session_title=session.title,
            teacher_name=teacher.name,
            room=session.room_number,
            flex_date=session.date,
            deadline=flex_date.selection_deadline
        )

        AuditService.record(
            caller.id, 'remove_student',
            registration_id=registration_id,
            student_id=student_id,
            session_id=session.id,
            session_title=session.title,
            email_sent=email_result.success
        )
        db.session.commit()

        logger.info(
            f"{caller.role} {caller.id} removed student {student_id} from session {session.id} "
            f"(email sent: {email_result.success})"
        )
        return RemovalResult(registration_id, student_id, session.id, email_result.success)

    # ===============================
    # DEADLINE HANDLING
    # ===============================

    @staticmethod
    def assign_homerooms(caller, flex_date_id, now=None):
        """
        Place every unregistered student into the session held in their homeroom.

        Only allowed once the selection deadline has passed. Students without a
        homeroom, or whose homeroom has no session that day, are skipped.

        Returns:
            dict: counts of 'assigned' and 'skipped' students
        """
        require_role(caller, RoleType.ADMIN)
        now = now or datetime.now()

        flex_date = db.session.get(FlexDate, flex_date_id)
        if not flex_date:
            raise NotFoundError('Flex date not found')
        if now <= flex_date.selection_deadline:
            raise ValidationError('Selection deadline has not passed yet')

        sessions_by_room = {s.room_number: s for s in flex_date.sessions}
        registered_ids = {
            student_id for (student_id,) in
            db.session.query(Registration.student_id).filter(Registration.date == flex_date.date)
        }

        students = (
            db.session.query(User)
            .filter(User.role == RoleType.STUDENT, User.is_active.is_(True))
            .all()
        )

        assigned = 0
        skipped = 0
        for student in students:
            if student.id in registered_ids:
                continue

            session = sessions_by_room.get(student.homeroom)
            if session is None:
                skipped += 1
                continue

            db.session.add(Registration(
                session_id=session.id,
                student_id=student.id,
                date=flex_date.date,
                status=RegistrationStatus.ASSIGNED
            ))
            NotificationService.notify(
                student.id,
                NotificationType.SYSTEM,
                f"You did not select a session before the deadline and were assigned to {session.title} "
                f"in room {session.room_number}.",
                session_id=session.id,
                flex_date=flex_date.date
            )
            assigned += 1

        AuditService.record(
            caller.id, 'assign_homerooms',
            flex_date_id=flex_date.id, assigned=assigned, skipped=skipped
        )
        RegistrationService._commit('assign_homerooms')

        logger.info(f"Homeroom assignment for {flex_date.date}: {assigned} assigned, {skipped} skipped")
        return {'assigned': assigned, 'skipped': skipped}
