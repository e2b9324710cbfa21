# models/session_template.py
from flextime.extensions import db
from .base import BaseModel


class SessionTemplate(BaseModel):
    __tablename__ = 'session_templates'

    teacher_id = db.Column(db.String(36), db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    name = db.Column(db.String(120), nullable=False)
    room_number = db.Column(db.String(20), nullable=False)
    capacity = db.Column(db.Integer, nullable=False)
    title = db.Column(db.String(200), nullable=False)
    long_description = db.Column(db.Text, nullable=True)
    allowed_grades = db.Column(db.JSON, nullable=False, default=list)

    teacher = db.relationship('User', back_populates='templates')

    def __repr__(self):
        return f'<SessionTemplate {self.name}>'
