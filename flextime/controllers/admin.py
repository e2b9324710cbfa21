# controllers/admin.py
"""
Administrator endpoints: flex date calendar, user directory, audit log and dashboard stats.
"""

from flask import Blueprint, jsonify, request

from flextime.controllers.forms import FlexDateForm, FlexDateUpdateForm, UserForm, UserUpdateForm
from flextime.services.audit_service import AuditService
from flextime.services.flex_date_service import FlexDateService
from flextime.services.registration_service import RegistrationService
from flextime.services.stats_service import StatsService
from flextime.services.user_service import UserService
from flextime.utils.auth import admin_required, current_caller

admin_bp = Blueprint('admin', __name__)


# ===============================
# FLEX DATES
# ===============================

@admin_bp.route('/flex-dates')
@admin_required
def list_flex_dates():
    return jsonify({'success': True, 'flex_dates': FlexDateService.list_flex_dates(current_caller())})


@admin_bp.route('/flex-dates', methods=['POST'])
@admin_required
def create_flex_date():
    form = FlexDateForm().validate_or_raise()
    flex_date = FlexDateService.create_flex_date(
        current_caller(),
        date=form.date.data,
        flex_type=form.flex_type.data,
        duration_minutes=form.duration_minutes.data,
        selection_deadline=form.selection_deadline.data,
        is_locked=form.is_locked.data
    )
    return jsonify({'success': True, 'flex_date': flex_date.to_dict()}), 201


@admin_bp.route('/flex-dates/<flex_date_id>', methods=['PUT'])
@admin_required
def update_flex_date(flex_date_id):
    form = FlexDateUpdateForm().validate_or_raise()
    flex_date = FlexDateService.update_flex_date(current_caller(), flex_date_id, **form.present_data())
    return jsonify({'success': True, 'flex_date': flex_date.to_dict()})


@admin_bp.route('/flex-dates/<flex_date_id>', methods=['DELETE'])
@admin_required
def delete_flex_date(flex_date_id):
    FlexDateService.delete_flex_date(current_caller(), flex_date_id)
    return jsonify({'success': True, 'message': 'Flex date deleted'})


@admin_bp.route('/flex-dates/<flex_date_id>/assign-homerooms', methods=['POST'])
@admin_required
def assign_homerooms(flex_date_id):
    """Place unregistered students in their homeroom session after the deadline."""
    result = RegistrationService.assign_homerooms(current_caller(), flex_date_id)
    return jsonify({'success': True, **result})


# ===============================
# USERS
# ===============================

@admin_bp.route('/users')
@admin_required
def list_users():
    users = UserService.list_users(
        current_caller(),
        role=request.args.get('role'),
        search=request.args.get('search')
    )
    return jsonify({'success': True, 'users': [u.to_dict() for u in users]})


@admin_bp.route('/users', methods=['POST'])
@admin_required
def create_user():
    form = UserForm().validate_or_raise()
    user = UserService.create_user(
        current_caller(),
        email=form.email.data,
        name=form.name.data,
        role=form.role.data,
        password=form.password.data,
        grade=form.grade.data,
        homeroom=form.homeroom.data
    )
    return jsonify({'success': True, 'user': user.to_dict()}), 201


@admin_bp.route('/users/<user_id>', methods=['PUT'])
@admin_required
def update_user(user_id):
    form = UserUpdateForm().validate_or_raise()
    user = UserService.update_user(current_caller(), user_id, **form.present_data())
    return jsonify({'success': True, 'user': user.to_dict()})


@admin_bp.route('/users/<user_id>', methods=['DELETE'])
@admin_required
def delete_user(user_id):
    UserService.delete_user(current_caller(), user_id)
    return jsonify({'success': True, 'message': 'User deleted'})


@admin_bp.route('/stats')
@admin_required
def admin_stats():
    return jsonify({'success': True, 'stats': StatsService.get_admin_stats(current_caller())})


@admin_bp.route('/audit-log')
@admin_required
def audit_log():
    entries = AuditService.list_entries(
        action=request.args.get('action'),
        limit=min(request.args.get('limit', 100, type=int), 500)
    )
    return jsonify({'success': True, 'entries': [e.to_dict() for e in entries]})
