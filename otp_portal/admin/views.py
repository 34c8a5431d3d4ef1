# otp_portal/admin/views.py
import hmac
from datetime import datetime
from flask import current_app
from sqlalchemy import func
from sqlalchemy.orm import selectinload
from otp_portal.errors import InvalidCredentials, ValidationError
from otp_portal.logging_config import setup_logging
from otp_portal.authentication import tokens
from otp_portal.authentication.models import User, LoginEvent
from otp_portal.authentication.views import get_user, user_profile

logger = setup_logging(__name__)

TOP_ACTIVE_LIMIT = 10


def admin_login(secret):
    expected = current_app.config.get('ADMIN_SECRET')
    if not secret or not expected or not hmac.compare_digest(str(secret).encode(), expected.encode()):
        logger.warning("Rejected admin login attempt.")
        raise InvalidCredentials('Invalid admin password', status_code=401)
    logger.info("Admin logged in.")
    return tokens.issue_admin_token()


def users_with_history():
    # Serializers read both histories; load them in two queries, not two per user
    return User.query.options(selectinload(User.login_history), selectinload(User.logout_history))


def all_users():
    return users_with_history().order_by(User.id).all()


def logged_in_users():
    return users_with_history().filter(User.last_login.isnot(None)).order_by(User.id).all()


def active_users():
    return users_with_history().filter(User.is_currently_active).order_by(User.id).all()


def users_by_location(district=None, taluka=None, police_station=None):
    query = users_with_history()
    if district:
        query = query.filter(User.district == district)
    if taluka:
        query = query.filter(User.taluka == taluka)
    if police_station:
        query = query.filter(User.police_station == police_station)
    return query.order_by(User.id).all()


def parse_date(value, field):
    try:
        return datetime.fromisoformat(value)
    except (TypeError, ValueError):
        raise ValidationError('Invalid date format.', fields={field: 'Use ISO 8601, e.g. 2025-01-31'})


def users_by_date_range(start_date, end_date):
    if not start_date or not end_date:
        raise ValidationError('Start and end dates are required',
                              fields={name: 'This field is required'
                                      for name, value in (('startDate', start_date), ('endDate', end_date))
                                      if not value})
    start = parse_date(start_date, 'startDate')
    end = parse_date(end_date, 'endDate')
    # A bare date as the end bound covers that whole day
    if len(end_date) == 10:
        end = end.replace(hour=23, minute=59, second=59, microsecond=999999)
    return users_with_history().filter(User.registered_at >= start, User.registered_at <= end).order_by(User.id).all()


def top_active_users(limit=TOP_ACTIVE_LIMIT):
    login_count = func.count(LoginEvent.id)
    return (
        users_with_history()
        .outerjoin(LoginEvent, LoginEvent.user_id == User.id)
        .group_by(User.id)
        .order_by(login_count.desc(), User.id)
        .limit(limit)
        .all()
    )


def user_by_id(user_id):
    return get_user(user_id)


def user_overview(user):
    return {
        'id': user.id,
        'name': user.name,
        'email': user.email,
        'phoneNumber': user.phone_number,
        'district': user.district,
        'taluka': user.taluka,
        'policeStation': user.police_station,
        'registeredAt': user.registered_at.isoformat() if user.registered_at else None,
        'lastLogin': user.last_login.isoformat() if user.last_login else None,
        'lastLogout': user.last_logout.isoformat() if user.last_logout else None,
        'loginCount': user.login_count,
        'logoutCount': user.logout_count,
        'lastKnownIP': user.last_known_ip,
        'isVerified': user.is_verified,
        'isActive': user.is_currently_active,
    }


def serialize_users(users, summary=False):
    render = user_overview if summary else user_profile
    return [render(user) for user in users]
