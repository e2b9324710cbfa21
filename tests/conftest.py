# tests/conftest.py
import pytest

from flextime import create_app
from flextime.extensions import db, email_service
from flextime.models import GRADES, FlexDate, FlexType, RoleType, Session, User

from helpers import DEADLINE, FLEX_DAY, PASSWORD


@pytest.fixture
def app():
    app = create_app('testing')

    # Requests made by the test client reuse this context and its db.session
    with app.app_context():
        db.create_all()
        email_service.outbox.clear()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(app):
    counter = {'n': 0}

    def _make(role=RoleType.STUDENT, name=None, grade=None, homeroom=None, email=None):
        counter['n'] += 1
        if role == RoleType.STUDENT and grade is None:
            grade = 10
        user = User(
            email=email or f'{role}{counter["n"]}@westfield.edu',
            name=name or f'{role.title()} {counter["n"]}',
            role=role,
            grade=grade if role == RoleType.STUDENT else None,
            homeroom=homeroom
        )
        user.set_password(PASSWORD)
        db.session.add(user)
        db.session.commit()
        return user

    return _make


@pytest.fixture
def make_flex_date(app):
    def _make(day=FLEX_DAY, deadline=DEADLINE, flex_type=FlexType.ACCESS, duration=45, is_locked=False):
        flex_date = FlexDate(
            date=day,
            flex_type=flex_type,
            duration_minutes=duration,
            selection_deadline=deadline,
            is_locked=is_locked
        )
        db.session.add(flex_date)
        db.session.commit()
        return flex_date

    return _make


@pytest.fixture
def make_session(app):
    def _make(teacher, day=FLEX_DAY, capacity=20, title='Robotics Lab', room='101', grades=GRADES):
        session = Session(
            date=day,
            teacher_id=teacher.id,
            room_number=room,
            capacity=capacity,
            title=title,
            allowed_grades=list(grades)
        )
        db.session.add(session)
        db.session.commit()
        return session

    return _make


@pytest.fixture
def admin(make_user):
    return make_user(RoleType.ADMIN, name='Alex Admin')


@pytest.fixture
def teacher(make_user):
    return make_user(RoleType.TEACHER, name='Terry Teacher')


@pytest.fixture
def student(make_user):
    return make_user(RoleType.STUDENT, name='Sam Student', grade=10, homeroom='204')


@pytest.fixture
def flex_date(make_flex_date):
    return make_flex_date()

