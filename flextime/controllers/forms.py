# controllers/forms.py
"""
Flask-WTF forms for the JSON API.
FlaskForm reads JSON request bodies directly; CSRF is enforced app-wide by
CSRFProtect so the forms themselves skip the token field.
"""

from datetime import datetime

from flask import request
from flask_wtf import FlaskForm
from werkzeug.datastructures import ImmutableMultiDict
from wtforms import (
    BooleanField, DateField, IntegerField, PasswordField, SelectField,
    SelectMultipleField, StringField, TextAreaField
)
from wtforms.validators import DataRequired, Email, InputRequired, Length, NumberRange, Optional

from flextime.errors import ValidationError
from flextime.models import GRADES, FlexType, RoleType

GRADE_CHOICES = [(g, str(g)) for g in GRADES]


def _json_payload():
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return {}
    # null means "not given"
    return {key: value for key, value in payload.items() if value is not None}


def _is_int(value):
    return isinstance(value, int) and not isinstance(value, bool)


def _json_type_error(field_class, value):
    """Message for a JSON value of the wrong type for its field, else None."""
    if issubclass(field_class, SelectMultipleField):
        if not isinstance(value, list) or not all(_is_int(v) or isinstance(v, str) for v in value):
            return 'Must be a list of values'
    elif issubclass(field_class, BooleanField):
        if not isinstance(value, (bool, str)):
            return 'Must be true or false'
    elif issubclass(field_class, IntegerField):
        if not (_is_int(value) or isinstance(value, str)):
            return 'Must be an integer'
    elif not isinstance(value, str):
        return 'Must be a string'
    return None


class ISODateTimeField(StringField):
    """Datetime given as an ISO 8601 string. Aware values are converted to local time."""

    def _value(self):
        return self.data.isoformat() if self.data else ''

    def process_formdata(self, valuelist):
        if not valuelist or valuelist[0] in (None, ''):
            self.data = None
            return
        try:
            value = datetime.fromisoformat(str(valuelist[0]).replace('Z', '+00:00'))
        except ValueError:
            self.data = None
            raise ValueError(self.gettext('Not a valid ISO 8601 datetime'))
        if value.tzinfo is not None:
            value = value.astimezone().replace(tzinfo=None)
        self.data = value


class JsonForm(FlaskForm):
    """Base form for JSON bodies."""

    class Meta:
        csrf = False

    def __init__(self, *args, **kwargs):
        # Values that cannot feed their field are reported instead of bound
        type_errors = {}
        if 'formdata' not in kwargs and request.is_json:
            payload = _json_payload()
            field_classes = {name: unbound.field_class for name, unbound in self._unbound_fields}
            for name in list(payload):
                if name not in field_classes:
                    continue
                message = _json_type_error(field_classes[name], payload[name])
                if message:
                    type_errors[name] = message
                    del payload[name]
            kwargs['formdata'] = ImmutableMultiDict(payload)
        super().__init__(*args, **kwargs)
        self.type_errors = type_errors

    def validate_or_raise(self):
        valid = self.validate_on_submit()
        if not valid or self.type_errors:
            errors = {name: messages[0] for name, messages in self.errors.items()}
            errors.update(self.type_errors)
            raise ValidationError('Invalid request data', details=errors)
        return self

    def present_data(self):
        """Data of the fields actually sent in the body, for partial updates."""
        payload = _json_payload()
        return {name: field.data for name, field in self._fields.items() if name in payload}


# ===============================
# AUTH
# ===============================

class LoginForm(JsonForm):
    email = StringField('Email', validators=[DataRequired(message='Email is required'), Email()])
    password = PasswordField('Password', validators=[DataRequired(message='Password is required')])
    remember_me = BooleanField('Remember me', default=False)


# ===============================
# REGISTRATIONS
# ===============================

class SelectSessionForm(JsonForm):
    session_id = StringField('Session', validators=[DataRequired(message='session_id is required')])


class LockStudentForm(JsonForm):
    student_id = StringField('Student', validators=[DataRequired(message='student_id is required')])
    session_id = StringField('Session', validators=[DataRequired(message='session_id is required')])


class RegistrationIdForm(JsonForm):
    registration_id = StringField('Registration', validators=[DataRequired(message='registration_id is required')])


# ===============================
# SESSIONS
# ===============================

class SessionForm(JsonForm):
    date = DateField('Date', validators=[DataRequired(message='date is required')])
    room_number = StringField('Room', validators=[Optional(), Length(max=20)])
    capacity = IntegerField('Capacity', validators=[Optional(), NumberRange(min=1, message='Capacity must be greater than 0')])
    title = StringField('Title', validators=[Optional(), Length(max=200)])
    long_description = TextAreaField('Description', validators=[Optional()])
    allowed_grades = SelectMultipleField('Grades', choices=GRADE_CHOICES, coerce=int, validate_choice=False)
    recurring = BooleanField('Recurring', default=False)
    save_as_template = BooleanField('Save as template', default=False)
    template_name = StringField('Template name', validators=[Optional(), Length(max=120)])
    template_id = StringField('Template', validators=[Optional()])


# ===============================
# FLEX DATES
# ===============================

class FlexDateForm(JsonForm):
    date = DateField('Date', validators=[DataRequired(message='date is required')])
    flex_type = SelectField('Flex type', choices=[(t, t) for t in FlexType.ALL])
    duration_minutes = IntegerField('Duration', validators=[InputRequired(message='duration_minutes is required')])
    selection_deadline = ISODateTimeField('Selection deadline', validators=[InputRequired(message='selection_deadline is required')])
    is_locked = BooleanField('Locked', default=False)


class FlexDateUpdateForm(JsonForm):
    flex_type = SelectField('Flex type', choices=[(t, t) for t in FlexType.ALL], validators=[Optional()])
    duration_minutes = IntegerField('Duration', validators=[Optional()])
    selection_deadline = ISODateTimeField('Selection deadline', validators=[Optional()])
    is_locked = BooleanField('Locked')


# ===============================
# USERS
# ===============================

class UserForm(JsonForm):
    email = StringField('Email', validators=[DataRequired(message='email is required'), Email(), Length(max=120)])
    name = StringField('Name', validators=[DataRequired(message='name is required'), Length(max=160)])
    role = SelectField('Role', choices=[(r, r) for r in RoleType.ALL])
    password = PasswordField('Password', validators=[DataRequired(message='password is required'), Length(min=8)])
    grade = IntegerField('Grade', validators=[Optional()])
    homeroom = StringField('Homeroom', validators=[Optional(), Length(max=20)])


class UserUpdateForm(JsonForm):
    name = StringField('Name', validators=[Optional(), Length(max=160)])
    role = SelectField('Role', choices=[(r, r) for r in RoleType.ALL], validators=[Optional()])
    password = PasswordField('Password', validators=[Optional(), Length(min=8)])
    grade = IntegerField('Grade', validators=[Optional()])
    homeroom = StringField('Homeroom', validators=[Optional(), Length(max=20)])
    is_active = BooleanField('Active')


class MarkReadForm(JsonForm):
    notification_id = StringField('Notification', validators=[Optional()])
    mark_all = BooleanField('Mark all', default=False)
