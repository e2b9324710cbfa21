# tests/test_notifications_and_stats.py
from datetime import date

import pytest

from flextime.errors import ForbiddenError, NotFoundError
from flextime.models import Notification, NotificationType, RoleType
from flextime.services.notification_service import NotificationService
from flextime.services.registration_service import RegistrationService
from flextime.services.stats_service import StatsService

from helpers import BEFORE_DEADLINE, caller


@pytest.fixture
def notified(flex_date, teacher, student, make_session):
    """Student locked to one session and removed from another: two notifications."""
    lock_session = make_session(teacher, title='Tutoring')
    registration = RegistrationService.lock_student(caller(teacher), student.id, lock_session.id)
    RegistrationService.remove_student(caller(teacher), registration.id)
    return student


def test_list_newest_first_with_unread_count(notified):
    notifications, unread = NotificationService.list_for_student(caller(notified))

    assert unread == 2
    assert {n.type for n in notifications} == {NotificationType.LOCKED, NotificationType.REMOVED}


def test_mark_read(notified):
    notification = Notification.query.filter_by(type=NotificationType.LOCKED).one()

    NotificationService.mark_read(caller(notified), notification.id)

    _, unread = NotificationService.list_for_student(caller(notified))
    unread_only, _ = NotificationService.list_for_student(caller(notified), unread_only=True)
    assert unread == 1
    assert [n.type for n in unread_only] == [NotificationType.REMOVED]


def test_mark_read_of_someone_else_is_forbidden(notified, make_user):
    notification = Notification.query.first()

    with pytest.raises(ForbiddenError):
        NotificationService.mark_read(caller(make_user()), notification.id)


def test_mark_read_missing(student):
    with pytest.raises(NotFoundError):
        NotificationService.mark_read(caller(student), 'missing')


def test_mark_all_read(notified):
    assert NotificationService.mark_all_read(caller(notified)) == 2
    assert NotificationService.list_for_student(caller(notified))[1] == 0


def test_admin_stats(flex_date, make_flex_date, admin, make_user, student, make_session):
    make_flex_date(day=date(2025, 3, 1))
    full = make_session(make_user(RoleType.TEACHER), capacity=1)
    make_session(make_user(RoleType.TEACHER), room='102')
    make_user()
    RegistrationService.select_session(caller(student), full.id, now=BEFORE_DEADLINE)

    stats = StatsService.get_admin_stats(caller(admin), now=BEFORE_DEADLINE)

    assert stats['users'] == {'total': 5, 'students': 2, 'teachers': 2, 'admins': 1}
    assert stats['upcoming_flex_dates'] == 1
    assert stats['sessions'] == {'upcoming': 2, 'full': 1, 'empty': 1}
    assert stats['next_flex_date'] == {'date': '2025-01-10', 'registered': 1, 'unregistered': 1}


def test_stats_are_admin_only(teacher):
    with pytest.raises(ForbiddenError):
        StatsService.get_admin_stats(caller(teacher))
