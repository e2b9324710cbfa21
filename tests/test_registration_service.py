# tests/test_registration_service.py
from datetime import datetime

import pytest

from flextime.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from flextime.extensions import db, email_service
from flextime.models import (
    AuditLog, Notification, NotificationType, Registration, RegistrationStatus, RoleType
)
from flextime.services.registration_service import RegistrationService

from helpers import BEFORE_DEADLINE, FLEX_DAY, caller


def registrations_for(student):
    return Registration.query.filter_by(student_id=student.id, date=FLEX_DAY).all()


# ===============================
# SELECT
# ===============================

def test_select_creates_selected_registration(flex_date, teacher, student, make_session):
    session = make_session(teacher)

    registration = RegistrationService.select_session(caller(student), session.id, now=BEFORE_DEADLINE)

    assert registration.status == RegistrationStatus.SELECTED
    assert registration.date == FLEX_DAY
    assert registrations_for(student) == [registration]


def test_select_replaces_existing_choice_for_same_date(flex_date, make_user, student, make_session):
    first = make_session(make_user(RoleType.TEACHER), title='Chess')
    second = make_session(make_user(RoleType.TEACHER), title='Choir', room='102')

    RegistrationService.select_session(caller(student), first.id, now=BEFORE_DEADLINE)
    RegistrationService.select_session(caller(student), second.id, now=BEFORE_DEADLINE)

    registrations = registrations_for(student)
    assert len(registrations) == 1
    assert registrations[0].session_id == second.id


def test_select_after_deadline_is_rejected(flex_date, teacher, student, make_session):
    session = make_session(teacher)

    with pytest.raises(ValidationError, match='Deadline passed'):
        RegistrationService.select_session(caller(student), session.id, now=datetime(2025, 1, 10, 8, 1))

    assert registrations_for(student) == []


def test_select_full_session_is_rejected(flex_date, teacher, make_user, make_session):
    session = make_session(teacher, capacity=1)
    first, second = make_user(), make_user()
    RegistrationService.select_session(caller(first), session.id, now=BEFORE_DEADLINE)

    with pytest.raises(ConflictError, match='Session full'):
        RegistrationService.select_session(caller(second), session.id, now=BEFORE_DEADLINE)

    assert registrations_for(second) == []


def test_reselecting_same_session_keeps_registration(flex_date, teacher, student, make_session):
    session = make_session(teacher, capacity=1)
    original = RegistrationService.select_session(caller(student), session.id, now=BEFORE_DEADLINE)

    again = RegistrationService.select_session(caller(student), session.id, now=BEFORE_DEADLINE)

    assert again.id == original.id


def test_select_outside_window_is_rejected(flex_date, teacher, student, make_session):
    session = make_session(teacher)

    with pytest.raises(ValidationError, match='within 7 days'):
        RegistrationService.select_session(caller(student), session.id, now=datetime(2025, 1, 1, 9, 0))


def test_select_checks_grade(flex_date, teacher, student, make_session):
    session = make_session(teacher, grades=(11, 12))

    with pytest.raises(ValidationError, match='Grade not allowed'):
        RegistrationService.select_session(caller(student), session.id, now=BEFORE_DEADLINE)


def test_select_on_frozen_date_is_rejected(make_flex_date, teacher, student, make_session):
    make_flex_date(is_locked=True)
    session = make_session(teacher)

    with pytest.raises(ValidationError):
        RegistrationService.select_session(caller(student), session.id, now=BEFORE_DEADLINE)


def test_only_students_select(flex_date, teacher, make_session):
    session = make_session(teacher)

    with pytest.raises(ForbiddenError):
        RegistrationService.select_session(caller(teacher), session.id, now=BEFORE_DEADLINE)


def test_select_unknown_session(flex_date, student):
    with pytest.raises(NotFoundError):
        RegistrationService.select_session(caller(student), 'missing', now=BEFORE_DEADLINE)


# ===============================
# CANCEL
# ===============================

def test_cancel_own_registration(flex_date, teacher, student, make_session):
    session = make_session(teacher)
    registration = RegistrationService.select_session(caller(student), session.id, now=BEFORE_DEADLINE)

    RegistrationService.cancel_registration(caller(student), registration.id)

    assert registrations_for(student) == []


def test_cancel_someone_elses_registration_is_forbidden(flex_date, teacher, student, make_user, make_session):
    session = make_session(teacher)
    registration = RegistrationService.select_session(caller(student), session.id, now=BEFORE_DEADLINE)

    with pytest.raises(ForbiddenError):
        RegistrationService.cancel_registration(caller(make_user()), registration.id)


def test_cancel_locked_registration_is_rejected(flex_date, teacher, student, make_session):
    session = make_session(teacher)
    registration = RegistrationService.lock_student(caller(teacher), student.id, session.id)

    with pytest.raises(ValidationError, match='Cannot delete locked registration'):
        RegistrationService.cancel_registration(caller(student), registration.id)

    assert registrations_for(student)[0].is_locked


# ===============================
# LOCK / UNLOCK
# ===============================

def test_lock_moves_student_and_notifies(flex_date, make_user, student, make_session):
    elsewhere = make_session(make_user(RoleType.TEACHER), title='Chess')
    owner = make_user(RoleType.TEACHER, name='Morgan Math')
    tutoring = make_session(owner, title='Math Tutoring', room='110')
    RegistrationService.select_session(caller(student), elsewhere.id, now=BEFORE_DEADLINE)

    registration = RegistrationService.lock_student(caller(owner), student.id, tutoring.id)

    registrations = registrations_for(student)
    assert registrations == [registration]
    assert registration.session_id == tutoring.id
    assert registration.status == RegistrationStatus.LOCKED
    assert registration.locked_by_teacher_id == owner.id

    notification = Notification.query.filter_by(student_id=student.id).one()
    assert notification.type == NotificationType.LOCKED
    assert 'Math Tutoring' in notification.message
    assert AuditLog.query.filter_by(action='lock_student').count() == 1


def test_locked_student_cannot_select(flex_date, make_user, student, make_session):
    owner = make_user(RoleType.TEACHER)
    tutoring = make_session(owner)
    other = make_session(make_user(RoleType.TEACHER), room='102')
    RegistrationService.lock_student(caller(owner), student.id, tutoring.id)

    with pytest.raises(ValidationError, match='Locked to another session'):
        RegistrationService.select_session(caller(student), other.id, now=BEFORE_DEADLINE)


def test_teacher_can_only_lock_to_own_session(flex_date, teacher, make_user, student, make_session):
    session = make_session(make_user(RoleType.TEACHER))

    with pytest.raises(ForbiddenError, match='Can only lock to your sessions'):
        RegistrationService.lock_student(caller(teacher), student.id, session.id)


def test_lock_conflicts_with_other_teachers_lock(flex_date, make_user, student, make_session):
    first = make_user(RoleType.TEACHER, name='Pat Physics')
    second = make_user(RoleType.TEACHER)
    RegistrationService.lock_student(caller(first), student.id, make_session(first).id)

    with pytest.raises(ConflictError, match='Already locked by Pat Physics'):
        RegistrationService.lock_student(caller(second), student.id, make_session(second, room='102').id)


def test_lock_rejects_non_students(flex_date, teacher, make_user, make_session):
    session = make_session(teacher)

    with pytest.raises(ValidationError):
        RegistrationService.lock_student(caller(teacher), make_user(RoleType.TEACHER).id, session.id)


def test_unlock_by_other_teacher_is_forbidden(flex_date, teacher, make_user, student, make_session):
    registration = RegistrationService.lock_student(caller(teacher), student.id, make_session(teacher).id)

    with pytest.raises(ForbiddenError, match='Only locking teacher or admin can unlock'):
        RegistrationService.unlock_registration(caller(make_user(RoleType.TEACHER)), registration.id)


def test_admin_unlocks_and_second_unlock_is_rejected(flex_date, teacher, admin, student, make_session):
    registration = RegistrationService.lock_student(caller(teacher), student.id, make_session(teacher).id)

    unlocked = RegistrationService.unlock_registration(caller(admin), registration.id)
    assert unlocked.status == RegistrationStatus.SELECTED
    assert unlocked.locked_by_teacher_id is None

    with pytest.raises(ValidationError, match='Registration is not locked'):
        RegistrationService.unlock_registration(caller(admin), registration.id)

    db.session.expire_all()
    assert db.session.get(Registration, registration.id).status == RegistrationStatus.SELECTED


# ===============================
# REMOVE
# ===============================

def test_remove_notifies_and_emails_once(flex_date, teacher, student, make_session):
    session = make_session(teacher, title='Robotics Lab')
    registration = RegistrationService.select_session(caller(student), session.id, now=BEFORE_DEADLINE)

    result = RegistrationService.remove_student(caller(teacher), registration.id)

    assert result.email_sent is True
    assert registrations_for(student) == []

    notifications = Notification.query.filter_by(student_id=student.id).all()
    assert len(notifications) == 1
    assert notifications[0].type == NotificationType.REMOVED
    assert notifications[0].message == 'You have been removed from Robotics Lab. Please select another session.'

    assert len(email_service.outbox) == 1
    assert email_service.outbox[0]['To'] == student.email


def test_remove_survives_email_failure(app, flex_date, teacher, student, make_session, monkeypatch):
    session = make_session(teacher)
    registration = RegistrationService.select_session(caller(student), session.id, now=BEFORE_DEADLINE)
    attempts = []

    def refuse():
        attempts.append(1)
        raise OSError('connection refused')

    app.config['MAIL_SUPPRESS_SEND'] = False
    monkeypatch.setattr(email_service, '_create_smtp_connection', refuse)

    result = RegistrationService.remove_student(caller(teacher), registration.id)

    assert result.email_sent is False
    assert len(attempts) == 1
    assert registrations_for(student) == []
    assert Notification.query.filter_by(student_id=student.id, type=NotificationType.REMOVED).count() == 1
    audit = AuditLog.query.filter_by(action='remove_student').one()
    assert audit.details['email_sent'] is False


def test_teacher_cannot_remove_from_other_session(flex_date, teacher, make_user, student, make_session):
    session = make_session(make_user(RoleType.TEACHER))
    registration = RegistrationService.select_session(caller(student), session.id, now=BEFORE_DEADLINE)

    with pytest.raises(ForbiddenError, match='Can only remove from your sessions'):
        RegistrationService.remove_student(caller(teacher), registration.id)


def test_admin_can_remove_from_any_session(flex_date, teacher, admin, student, make_session):
    session = make_session(teacher)
    registration = RegistrationService.select_session(caller(student), session.id, now=BEFORE_DEADLINE)

    RegistrationService.remove_student(caller(admin), registration.id)

    assert registrations_for(student) == []


# ===============================
# HOMEROOM ASSIGNMENT
# ===============================

def test_assign_homerooms_requires_passed_deadline(flex_date, admin):
    with pytest.raises(ValidationError):
        RegistrationService.assign_homerooms(caller(admin), flex_date.id, now=BEFORE_DEADLINE)


def test_assign_homerooms_places_unregistered_students(flex_date, admin, teacher, make_user, make_session):
    homeroom = make_session(teacher, room='204', title='Homeroom 204')
    other = make_session(make_user(RoleType.TEACHER), room='301')
    waiting = make_user(homeroom='204')
    no_homeroom = make_user()
    registered = make_user(homeroom='204')
    RegistrationService.select_session(caller(registered), other.id, now=BEFORE_DEADLINE)

    result = RegistrationService.assign_homerooms(caller(admin), flex_date.id, now=datetime(2025, 1, 10, 9, 0))

    assert result == {'assigned': 1, 'skipped': 1}
    assigned = registrations_for(waiting)
    assert len(assigned) == 1
    assert assigned[0].session_id == homeroom.id
    assert assigned[0].status == RegistrationStatus.ASSIGNED
    assert registrations_for(no_homeroom) == []
    assert registrations_for(registered)[0].session_id == other.id
