# models/user.py
from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash
from sqlalchemy import Index

from flextime.extensions import db
from .base import BaseModel


class RoleType:
    STUDENT = 'student'
    TEACHER = 'teacher'
    ADMIN = 'admin'

    ALL = (STUDENT, TEACHER, ADMIN)
    STAFF = (TEACHER, ADMIN)


# Grades a student may be in
GRADES = (9, 10, 11, 12)


class User(UserMixin, BaseModel):
    """School account. Role and grade determine what a user may do."""

    __tablename__ = 'users'
    hidden_columns = ('password_hash',)

    email = db.Column(db.String(120), unique=True, nullable=False)
    name = db.Column(db.String(160), nullable=False)
    role = db.Column(db.String(20), nullable=False, default=RoleType.STUDENT)
    grade = db.Column(db.Integer, nullable=True)  # 9-12, students only
    homeroom = db.Column(db.String(20), nullable=True)
    password_hash = db.Column(db.String(255), nullable=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    registrations = db.relationship(
        'Registration',
        foreign_keys='Registration.student_id',
        back_populates='student',
        cascade='all, delete-orphan',
        passive_deletes=True
    )
    notifications = db.relationship(
        'Notification',
        back_populates='student',
        cascade='all, delete-orphan',
        passive_deletes=True
    )
    templates = db.relationship(
        'SessionTemplate',
        back_populates='teacher',
        cascade='all, delete-orphan',
        passive_deletes=True
    )
    sessions = db.relationship('Session', back_populates='teacher')

    __table_args__ = (
        Index('idx_user_role', 'role'),
        Index('idx_user_role_grade', 'role', 'grade'),
    )

    def __repr__(self):
        return f'<User {self.email} ({self.role})>'

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        """False for accounts without a local password."""
        return bool(self.password_hash) and check_password_hash(self.password_hash, password)

    def is_student(self):
        return self.role == RoleType.STUDENT
