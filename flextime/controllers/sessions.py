# controllers/sessions.py
"""
Session catalog endpoints for teachers and students.
"""

from datetime import date

from flask import Blueprint, jsonify, request

from flextime.controllers.forms import SessionForm
from flextime.errors import ValidationError
from flextime.models import RoleType
from flextime.services.session_service import SessionService
from flextime.utils.auth import current_caller, role_required

sessions_bp = Blueprint('sessions', __name__)


def date_arg(name='date'):
    value = request.args.get(name)
    if not value:
        raise ValidationError(f'{name} query parameter is required')
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise ValidationError(f'{name} must be YYYY-MM-DD')


@sessions_bp.route('/create', methods=['POST'])
@role_required(RoleType.TEACHER)
def create_session():
    """Create a session, optionally recurring and saved as a template."""
    form = SessionForm().validate_or_raise()
    sessions = SessionService.create_session(
        current_caller(),
        date=form.date.data,
        room_number=form.room_number.data,
        capacity=form.capacity.data,
        title=form.title.data,
        long_description=form.long_description.data,
        allowed_grades=form.allowed_grades.data,
        recurring=form.recurring.data,
        save_as_template=form.save_as_template.data,
        template_name=form.template_name.data,
        template_id=form.template_id.data
    )
    return jsonify({
        'success': True,
        'created': len(sessions),
        'sessions': [SessionService.session_to_dict(s) for s in sessions]
    }), 201


@sessions_bp.route('/available')
def available_sessions():
    result = SessionService.list_available(current_caller(), date_arg())
    return jsonify({'success': True, **result})


@sessions_bp.route('/mine')
@role_required(RoleType.TEACHER)
def my_sessions():
    upcoming_only = request.args.get('all', 'false').lower() != 'true'
    sessions = SessionService.list_teacher_sessions(current_caller(), upcoming_only=upcoming_only)
    return jsonify({'success': True, 'sessions': sessions})


@sessions_bp.route('/templates')
@role_required(RoleType.TEACHER)
def my_templates():
    templates = SessionService.list_templates(current_caller())
    return jsonify({'success': True, 'templates': [t.to_dict() for t in templates]})


@sessions_bp.route('/<session_id>')
def session_detail(session_id):
    return jsonify({'success': True, 'session': SessionService.get_session_detail(current_caller(), session_id)})


@sessions_bp.route('/<session_id>', methods=['DELETE'])
def delete_session(session_id):
    removed = SessionService.delete_session(current_caller(), session_id)
    return jsonify({'success': True, 'message': 'Session deleted', 'registrations_removed': removed})
