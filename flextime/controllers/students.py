# controllers/students.py
"""
Staff roster actions on individual students.
"""

import logging

from flask import Blueprint, jsonify

from flextime.controllers.forms import LockStudentForm, RegistrationIdForm
from flextime.controllers.registrations import registration_to_dict
from flextime.services.registration_service import RegistrationService
from flextime.utils.auth import current_caller, staff_required

students_bp = Blueprint('students', __name__)

logger = logging.getLogger('students')


@students_bp.route('/lock', methods=['POST'])
@staff_required
def lock_student():
    form = LockStudentForm().validate_or_raise()
    registration = RegistrationService.lock_student(
        current_caller(), form.student_id.data, form.session_id.data
    )
    return jsonify({'success': True, 'registration': registration_to_dict(registration)})


@students_bp.route('/unlock', methods=['POST'])
@staff_required
def unlock_student():
    form = RegistrationIdForm().validate_or_raise()
    registration = RegistrationService.unlock_registration(current_caller(), form.registration_id.data)
    return jsonify({'success': True, 'registration': registration_to_dict(registration)})


@students_bp.route('/remove', methods=['POST'])
@staff_required
def remove_student():
    """Remove a student from a roster. Email delivery failure is reported, not raised."""
    form = RegistrationIdForm().validate_or_raise()
    result = RegistrationService.remove_student(current_caller(), form.registration_id.data)

    if not result.email_sent:
        logger.warning(f"Student {result.student_id} removed but notice email was not delivered")

    return jsonify({
        'success': True,
        'message': 'Student removed' if result.email_sent else 'Student removed, email notice failed',
        **result.to_dict()
    })
