# models/base.py
import uuid
from datetime import date, datetime

from flextime.extensions import db

PROTECTED_COLUMNS = frozenset(('id', 'created_at', 'updated_at'))


def _json_value(value):
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


class BaseModel(db.Model):
    """UUID primary key, audit timestamps and JSON-ready serialization."""

    __abstract__ = True

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    created_at = db.Column(db.DateTime, default=datetime.now, nullable=False, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.now, onupdate=datetime.now, nullable=False)

    # Columns never exposed by to_dict()
    hidden_columns = ()

    def to_dict(self):
        return {
            column.name: _json_value(getattr(self, column.name))
            for column in self.__table__.columns
            if column.name not in self.hidden_columns
        }

    def update_from(self, values):
        """Assign known column values, leaving the key and timestamps alone."""
        columns = self.__table__.columns.keys()
        for name, value in values.items():
            if name in columns and name not in PROTECTED_COLUMNS:
                setattr(self, name, value)
