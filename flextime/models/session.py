# models/session.py
from sqlalchemy import Index, UniqueConstraint

from flextime.extensions import db
from .base import BaseModel


class Session(BaseModel):
    """A teacher-run activity offered on one flex date."""

    __tablename__ = 'sessions'

    date = db.Column(db.Date, db.ForeignKey('flex_dates.date', ondelete='RESTRICT'), nullable=False)
    teacher_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False)
    room_number = db.Column(db.String(20), nullable=False)
    capacity = db.Column(db.Integer, nullable=False)
    title = db.Column(db.String(200), nullable=False)
    long_description = db.Column(db.Text, nullable=True)
    allowed_grades = db.Column(db.JSON, nullable=False, default=list)
    created_from_template_id = db.Column(
        db.String(36), db.ForeignKey('session_templates.id', ondelete='SET NULL'), nullable=True
    )

    teacher = db.relationship('User', back_populates='sessions')
    flex_date = db.relationship('FlexDate', back_populates='sessions')
    registrations = db.relationship(
        'Registration',
        back_populates='session',
        cascade='all, delete-orphan',
        passive_deletes=True
    )

    __table_args__ = (
        # A teacher runs at most one session per flex date
        UniqueConstraint('teacher_id', 'date', name='uq_session_teacher_date'),
        Index('idx_session_date', 'date'),
    )

    @property
    def enrolled_count(self):
        return len(self.registrations)

    def allows_grade(self, grade):
        return grade is not None and grade in (self.allowed_grades or [])

    def __repr__(self):
        return f'<Session {self.date} {self.title}>'
