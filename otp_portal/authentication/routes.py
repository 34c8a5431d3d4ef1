# otp_portal/authentication/routes.py
from flask import Blueprint, jsonify, request
from flask_login import login_required, current_user
from otp_portal.logging_config import setup_logging
from otp_portal.authentication import schemas
from otp_portal.authentication.registration import stage_registration, promote_registration
from otp_portal.authentication.views import (
    begin_login, complete_login, resume_session, request_password_reset,
    verify_password_reset, reset_password, sign_out, client_ip, user_profile
)


auth_bp = Blueprint('auth', __name__)
user_bp = Blueprint('user', __name__)

logger = setup_logging(__name__)


def _payload():
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


@auth_bp.route('/signup', methods=['POST'])
def signup():
    candidate = schemas.signup_schema.load(_payload())
    stage_registration(candidate)
    return jsonify({
        'success': True,
        'message': 'New OTP sent to email. Please verify to complete signup.'
    }), 200


@auth_bp.route('/verify-signup-otp', methods=['POST'])
def verify_signup_otp():
    data = schemas.verify_signup_schema.load(_payload())
    user = promote_registration(data['email'], data['otp'])
    return jsonify({
        'success': True,
        'message': 'OTP verified. Signup complete.',
        'userId': user.id
    }), 201


@auth_bp.route('/login', methods=['POST'])
def login():
    data = _payload()
    ip = client_ip(request)

    token = data.get('token')
    if token:
        user = resume_session(token, ip)
        if user is not None:
            return jsonify({
                'success': True,
                'message': 'Already logged in with valid token',
                'token': token
            }), 200

    credentials = schemas.credentials_schema.load(data)
    user = begin_login(credentials['email'], credentials['password'], ip)
    return jsonify({
        'success': True,
        'message': 'OTP sent to your email',
        'userId': user.id
    }), 200


@auth_bp.route('/verify-login-otp', methods=['POST'])
def verify_login_otp():
    data = schemas.verify_otp_schema.load(_payload())
    user, token = complete_login(data['user_id'], data['otp'])
    return jsonify({
        'success': True,
        'message': 'Login successful',
        'token': token
    }), 200


@auth_bp.route('/forgot-password', methods=['POST'])
def forgot_password():
    data = schemas.forgot_password_schema.load(_payload())
    user = request_password_reset(data['email'], client_ip(request))
    return jsonify({
        'success': True,
        'message': 'OTP sent to email for password reset',
        'userId': user.id
    }), 200


@auth_bp.route('/verify-forgot-otp', methods=['POST'])
def verify_forgot_otp():
    data = schemas.verify_otp_schema.load(_payload())
    reset_token = verify_password_reset(data['user_id'], data['otp'])
    return jsonify({
        'success': True,
        'message': 'OTP verified. You can now reset your password.',
        'resetToken': reset_token
    }), 200


@auth_bp.route('/reset-password', methods=['POST'])
def reset_password_route():
    data = schemas.reset_password_schema.load(_payload())
    reset_password(data['reset_token'], data['new_password'])
    return jsonify({
        'success': True,
        'message': 'Password has been reset successfully'
    }), 200


@auth_bp.route('/logout', methods=['POST'])
@login_required
def logout():
    sign_out(current_user, client_ip(request))
    return jsonify({'success': True, 'message': 'Logged out successfully'}), 200


@auth_bp.route('/check-token', methods=['GET'])
@login_required
def check_token():
    return jsonify({'valid': True, 'user': user_profile(current_user)}), 200


@user_bp.route('/profile', methods=['GET'])
@login_required
def get_user_profile():
    logger.info(f"User profile fetched successfully for email: {current_user.email}")
    return jsonify({
        'success': True,
        'message': 'User profile fetched successfully',
        'user': user_profile(current_user)
    }), 200
