"""
Auth Controller Module
Handles login, registration, logout and profile requests
"""
from flask import Blueprint, request, jsonify
import logging

from course_catalog.models.user import Role
from course_catalog.utils.guards import get_context, get_registry, login_required, session_id

logger = logging.getLogger(__name__)
auth_bp = Blueprint('auth', __name__)


def _json_body():
    return request.get_json(silent=True) or {}


@auth_bp.route('/login', methods=['POST'])
def login():
    """
    Log in with email and password
    @body: {"email": str, "password": str}
    @returns: JSON response with the logged in user
    """
    data = _json_body()
    user = get_context(create=True).session.login(data.get('email', ''), data.get('password', ''))
    return jsonify({
        'message': 'Logged in successfully',
        'data': user.to_dict()
    }), 200


@auth_bp.route('/register', methods=['POST'])
def register():
    """
    Register a new account
    @body: {"name": str, "email": str, "password": str, "role": "student" | "admin"}
    @returns: JSON response with the registered user
    """
    data = _json_body()
    try:
        role = Role(data.get('role') or Role.STUDENT)
    except ValueError:
        return jsonify({
            'error': f"Invalid role: {data.get('role')}"
        }), 400

    user = get_context(create=True).session.register(
        name=data.get('name', ''),
        email=data.get('email', ''),
        password=data.get('password', ''),
        role=role
    )
    return jsonify({
        'message': 'Registered successfully',
        'data': user.to_dict()
    }), 201


@auth_bp.route('/logout', methods=['POST'])
def logout():
    """Log out and drop this session's context"""
    sid = session_id(create=False)
    if sid is not None and sid in get_registry():
        get_context().session.logout()
        get_registry().discard(sid)
    return jsonify({'message': 'Logged out successfully'}), 200


@auth_bp.route('/me', methods=['GET'])
def me():
    user = get_context().session.get_current_user()
    return jsonify({'data': user.to_dict() if user else None}), 200


@auth_bp.route('/profile', methods=['PATCH'])
@login_required
def update_profile():
    """
    Update the current user's name or avatar
    @body: {"name": str, "avatar": str}
    """
    data = _json_body()
    user = get_context().session.update_profile(name=data.get('name'), avatar=data.get('avatar'))
    return jsonify({
        'message': 'Profile updated successfully',
        'data': user.to_dict()
    }), 200
