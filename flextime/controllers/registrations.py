# controllers/registrations.py
"""
Student registration endpoints: pick a session, cancel it, list upcoming picks.
"""

from flask import Blueprint, jsonify

from flextime.controllers.forms import SelectSessionForm
from flextime.services.registration_service import RegistrationService
from flextime.utils.auth import current_caller

registrations_bp = Blueprint('registrations', __name__)


def registration_to_dict(registration):
    data = registration.to_dict()
    session = registration.session
    data['session'] = {
        'id': session.id,
        'title': session.title,
        'room_number': session.room_number,
        'teacher_name': session.teacher.name
    }
    return data


@registrations_bp.route('/create', methods=['POST'])
def create_registration():
    """Select a session for its flex date, replacing any earlier choice."""
    form = SelectSessionForm().validate_or_raise()
    registration = RegistrationService.select_session(current_caller(), form.session_id.data)
    return jsonify({'success': True, 'registration': registration_to_dict(registration)}), 201


@registrations_bp.route('/<registration_id>', methods=['DELETE'])
def delete_registration(registration_id):
    RegistrationService.cancel_registration(current_caller(), registration_id)
    return jsonify({'success': True, 'message': 'Registration cancelled'})


@registrations_bp.route('/my-registrations')
def my_registrations():
    registrations = RegistrationService.list_for_student(current_caller())
    results = []
    for registration in registrations:
        data = registration_to_dict(registration)
        flex_date = registration.session.flex_date
        data['flex_date'] = {
            'flex_type': flex_date.flex_type,
            'duration_minutes': flex_date.duration_minutes,
            'selection_deadline': flex_date.selection_deadline.isoformat()
        }
        results.append(data)
    return jsonify({'success': True, 'registrations': results})
