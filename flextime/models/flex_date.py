# models/flex_date.py
from flextime.extensions import db
from .base import BaseModel


class FlexType:
    ACCESS = 'ACCESS'
    STUDY_TIME = 'STUDY TIME'

    ALL = (ACCESS, STUDY_TIME)


class FlexDate(BaseModel):
    """A calendar day with a flex period students sign up for."""

    __tablename__ = 'flex_dates'

    date = db.Column(db.Date, unique=True, nullable=False, index=True)
    flex_type = db.Column(db.String(20), nullable=False)
    duration_minutes = db.Column(db.Integer, nullable=False)
    selection_deadline = db.Column(db.DateTime, nullable=False)
    is_locked = db.Column(db.Boolean, default=False, nullable=False)

    sessions = db.relationship('Session', back_populates='flex_date', lazy='dynamic')

    def is_open(self, now):
        """Whether students may still change their selection."""
        return now < self.selection_deadline and not self.is_locked

    def __repr__(self):
        return f'<FlexDate {self.date} {self.flex_type}>'
