# otp_portal/admin/routes.py
from flask import Blueprint, jsonify, request
from otp_portal.decorators import admin_required
from otp_portal.logging_config import setup_logging
from otp_portal.admin import views


admin_bp = Blueprint('admin', __name__)

logger = setup_logging(__name__)


def _listing(users, summary=False):
    return jsonify({'success': True, 'count': len(users), 'users': views.serialize_users(users, summary)}), 200


@admin_bp.route('/login', methods=['POST'])
def admin_login():
    data = request.get_json(silent=True)
    secret = data.get('secret') if isinstance(data, dict) else None
    token = views.admin_login(secret)
    return jsonify({'success': True, 'message': 'Admin login successful', 'token': token}), 200


@admin_bp.route('/users', methods=['GET'])
@admin_required
def get_all_users():
    return _listing(views.all_users())


@admin_bp.route('/users/logged-in', methods=['GET'])
@admin_required
def get_logged_in_users():
    return _listing(views.logged_in_users())


@admin_bp.route('/users/active', methods=['GET'])
@admin_required
def get_active_users():
    """Users whose last login is newer than their last logout."""
    return _listing(views.active_users())


@admin_bp.route('/users/overview', methods=['GET'])
@admin_required
def get_user_overview():
    return _listing(views.all_users(), summary=True)


@admin_bp.route('/users/location', methods=['GET'])
@admin_required
def get_users_by_location():
    users = views.users_by_location(
        district=request.args.get('district'),
        taluka=request.args.get('taluka'),
        police_station=request.args.get('policeStation')
    )
    return _listing(users)


@admin_bp.route('/users/date-range', methods=['GET'])
@admin_required
def get_users_by_date_range():
    users = views.users_by_date_range(request.args.get('startDate'), request.args.get('endDate'))
    return _listing(users)


@admin_bp.route('/users/top-active', methods=['GET'])
@admin_required
def get_top_active_users():
    return _listing(views.top_active_users(), summary=True)


@admin_bp.route('/users/<user_id>', methods=['GET'])
@admin_required
def get_user_by_id(user_id):
    user = views.user_by_id(user_id)
    logger.info(f"Admin fetched user {user.id}.")
    return jsonify({'success': True, 'user': views.user_overview(user)}), 200
