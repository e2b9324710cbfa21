# controllers/auth.py
"""
Login, logout and identity endpoints.
"""

from flask import Blueprint, jsonify
from flask_login import current_user, login_required
from flask_wtf.csrf import generate_csrf

from flextime.controllers.forms import LoginForm
from flextime.services.auth_service import AuthService

auth_bp = Blueprint('auth', __name__)


@auth_bp.route('/login', methods=['POST'])
def login():
    form = LoginForm().validate_or_raise()
    user = AuthService.authenticate_user(form.email.data, form.password.data, form.remember_me.data)
    return jsonify({'success': True, 'user': user.to_dict()})


@auth_bp.route('/signout', methods=['POST'])
def logout():
    AuthService.logout_user_session()
    return jsonify({'success': True, 'message': 'Signed out'})


@auth_bp.route('/me')
@login_required
def me():
    return jsonify({'success': True, 'user': current_user.to_dict()})


@auth_bp.route('/csrf-token')
def csrf_token():
    return jsonify({'csrf_token': generate_csrf()})
