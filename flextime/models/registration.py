# models/registration.py
from sqlalchemy import Index, UniqueConstraint

from flextime.extensions import db
from .base import BaseModel


class RegistrationStatus:
    SELECTED = 'selected'
    LOCKED = 'locked'
    ASSIGNED = 'assigned'


class Registration(BaseModel):
    """A student's claim on a session for one flex date."""

    __tablename__ = 'registrations'

    session_id = db.Column(db.String(36), db.ForeignKey('sessions.id', ondelete='CASCADE'), nullable=False)
    student_id = db.Column(db.String(36), db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    date = db.Column(db.Date, nullable=False)
    status = db.Column(db.String(10), default=RegistrationStatus.SELECTED, nullable=False)
    locked_by_teacher_id = db.Column(
        db.String(36), db.ForeignKey('users.id', ondelete='SET NULL'), nullable=True
    )

    session = db.relationship('Session', back_populates='registrations')
    student = db.relationship('User', foreign_keys=[student_id], back_populates='registrations')
    locked_by = db.relationship('User', foreign_keys=[locked_by_teacher_id])

    __table_args__ = (
        # One registration per student per flex date
        UniqueConstraint('student_id', 'date', name='uq_registration_student_date'),
        Index('idx_registration_session', 'session_id'),
        Index('idx_registration_date_status', 'date', 'status'),
    )

    @property
    def is_locked(self):
        return self.status == RegistrationStatus.LOCKED

    def lock(self, teacher_id):
        self.status = RegistrationStatus.LOCKED
        self.locked_by_teacher_id = teacher_id
        return self

    def unlock(self):
        self.status = RegistrationStatus.SELECTED
        self.locked_by_teacher_id = None
        return self

    def __repr__(self):
        return f'<Registration {self.student_id} {self.date} {self.status}>'
