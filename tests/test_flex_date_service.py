# tests/test_flex_date_service.py
from datetime import date, datetime

import pytest

from flextime.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from flextime.models import AuditLog, FlexDate, FlexType
from flextime.services.flex_date_service import FlexDateService
from flextime.services.registration_service import RegistrationService

from helpers import BEFORE_DEADLINE, DEADLINE, FLEX_DAY, caller


def create(admin, **overrides):
    fields = dict(
        date=FLEX_DAY,
        flex_type=FlexType.ACCESS,
        duration_minutes=45,
        selection_deadline=DEADLINE
    )
    fields.update(overrides)
    return FlexDateService.create_flex_date(caller(admin), **fields)


def test_create_flex_date(admin):
    flex_date = create(admin)

    assert flex_date.date == FLEX_DAY
    assert flex_date.is_locked is False
    assert AuditLog.query.filter_by(action='create_flex_date', user_id=admin.id).count() == 1


def test_duplicate_date_conflicts(admin):
    create(admin)

    with pytest.raises(ConflictError, match='Flex date already exists for this date'):
        create(admin, flex_type=FlexType.STUDY_TIME)

    assert FlexDate.query.count() == 1


def test_duration_must_be_45_or_90(admin):
    with pytest.raises(ValidationError):
        create(admin, duration_minutes=60)

    assert FlexDate.query.count() == 0


def test_unknown_flex_type(admin):
    with pytest.raises(ValidationError):
        create(admin, flex_type='LUNCH')


def test_every_flex_type_is_accepted(admin):
    for offset, flex_type in enumerate(FlexType.ALL):
        create(admin, date=date(2025, 2, 3 + offset), flex_type=flex_type)

    assert {f.flex_type for f in FlexDate.query.all()} == set(FlexType.ALL)


def test_only_admins_create(teacher):
    with pytest.raises(ForbiddenError):
        create(teacher)


def test_update_is_partial(admin, flex_date):
    updated = FlexDateService.update_flex_date(caller(admin), flex_date.id, duration_minutes=90)

    assert updated.duration_minutes == 90
    assert updated.flex_type == FlexType.ACCESS
    assert updated.selection_deadline == DEADLINE


def test_update_without_fields(admin, flex_date):
    with pytest.raises(ValidationError, match='No fields to update'):
        FlexDateService.update_flex_date(caller(admin), flex_date.id)


def test_update_validates_duration(admin, flex_date):
    with pytest.raises(ValidationError):
        FlexDateService.update_flex_date(caller(admin), flex_date.id, duration_minutes=30)


def test_update_missing(admin):
    with pytest.raises(NotFoundError):
        FlexDateService.update_flex_date(caller(admin), 'missing', is_locked=True)


def test_delete_with_sessions_names_count(admin, flex_date, make_user, make_session):
    make_session(make_user('teacher'))
    make_session(make_user('teacher'), room='102')

    with pytest.raises(ConflictError) as exc:
        FlexDateService.delete_flex_date(caller(admin), flex_date.id)

    assert exc.value.message == 'Cannot delete. 2 session(s) exist for this date. Delete sessions first.'
    assert FlexDate.query.count() == 1


def test_delete_empty_flex_date(admin, flex_date):
    FlexDateService.delete_flex_date(caller(admin), flex_date.id)

    assert FlexDate.query.count() == 0


def test_list_with_counts(admin, flex_date, teacher, student, make_session):
    session = make_session(teacher)
    RegistrationService.select_session(caller(student), session.id, now=BEFORE_DEADLINE)

    listed = FlexDateService.list_flex_dates(caller(admin))

    assert listed[0]['session_count'] == 1
    assert listed[0]['registration_count'] == 1


def test_upcoming_window_depends_on_role(make_flex_date, student, teacher, make_session):
    make_flex_date(day=date(2025, 1, 10))
    make_flex_date(day=date(2025, 1, 24), deadline=datetime(2025, 1, 24, 8, 0))
    make_flex_date(day=date(2025, 1, 3), deadline=datetime(2025, 1, 3, 8, 0))
    session = make_session(teacher)
    RegistrationService.select_session(caller(student), session.id, now=BEFORE_DEADLINE)

    for_student = FlexDateService.list_upcoming(caller(student), now=BEFORE_DEADLINE)
    for_teacher = FlexDateService.list_upcoming(caller(teacher), now=BEFORE_DEADLINE)

    assert [d['date'] for d in for_student['flex_dates']] == ['2025-01-10']
    assert [d['date'] for d in for_teacher['flex_dates']] == ['2025-01-10', '2025-01-24']

    entry = for_student['flex_dates'][0]
    assert entry['total_sessions'] == 1
    assert entry['students_registered'] == 1
    assert entry['can_select'] is True
    assert entry['my_registration']['session']['title'] == session.title
