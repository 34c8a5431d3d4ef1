# otp_portal/authentication/views.py
import secrets
from datetime import timedelta
from flask import current_app
from werkzeug.security import generate_password_hash, check_password_hash
from otp_portal import clock
from otp_portal.init_db import db
from otp_portal.errors import (
    ChallengeError, ChallengeExpired, ChallengeMismatch, ChallengeNotFound,
    DeliveryError, InvalidCredentials, InvalidToken, UserNotFound, ValidationError
)
from otp_portal.logging_config import setup_logging
from otp_portal.mailer import send_email, render_otp_email
from otp_portal.authentication import tokens
from otp_portal.authentication.models import (
    User, LoginEvent, LogoutEvent, OTPChallenge, PURPOSE_LOGIN, PURPOSE_RESET
)

logger = setup_logging(__name__)


# Function to generate a 6-digit OTP
def generate_otp():
    return str(100000 + secrets.randbelow(900000))


def hash_secret(value):
    return generate_password_hash(str(value), method=current_app.config['PASSWORD_HASH_METHOD'])


def secret_matches(hashed, value):
    return bool(hashed) and check_password_hash(hashed, str(value))


def otp_expiry(now):
    return now + timedelta(minutes=current_app.config['OTP_EXPIRY_MINUTES'])


def notify_otp(recipient, otp, subject, heading):
    """Best effort. A lost email never undoes the state that was already committed."""
    html_content = render_otp_email(otp, heading, current_app.config['OTP_EXPIRY_MINUTES'])
    try:
        send_email(recipient, subject, html_content)
    except DeliveryError as e:
        logger.error(f"OTP email to {recipient} was not delivered: {e}")


def client_ip(request):
    # Proxy headers only count once ProxyFix has vetted them
    return request.remote_addr


def get_user(user_id):
    try:
        user = db.session.get(User, int(user_id))
    except (TypeError, ValueError):
        user = None
    if user is None:
        raise UserNotFound()
    return user


def find_user_by_email(email):
    return User.query.filter_by(email=email.lower()).first()


def user_profile(user):
    return {
        'id': user.id,
        'name': user.name,
        'email': user.email,
        'phoneNumber': user.phone_number,
        'district': user.district,
        'taluka': user.taluka,
        'policeStation': user.police_station,
        'isVerified': user.is_verified,
        'registeredAt': _iso(user.registered_at),
        'lastLogin': _iso(user.last_login),
        'lastLogout': _iso(user.last_logout),
        'logoutCount': user.logout_count,
        'loginHistory': [{'timestamp': _iso(e.timestamp), 'ip': e.ip} for e in user.login_history],
        'logoutHistory': [{'timestamp': _iso(e.timestamp), 'ip': e.ip} for e in user.logout_history],
    }


def _iso(value):
    return value.isoformat() if value else None


# --- challenges -------------------------------------------------------------

def issue_challenge(user, purpose, ip=None):
    """Replace the user's live challenge for ``purpose``. Caller commits."""
    now = clock.utcnow()
    otp = generate_otp()
    challenge = OTPChallenge.query.filter_by(user_id=user.id, purpose=purpose).first()
    if challenge is None:
        challenge = OTPChallenge(user_id=user.id, purpose=purpose)
        db.session.add(challenge)
    challenge.code_hash = hash_secret(otp)
    challenge.nonce = secrets.token_hex(16)
    challenge.created_at = now
    challenge.expires_at = otp_expiry(now)
    challenge.ip = ip
    return challenge, otp


def verify_challenge(user, purpose, code):
    challenge = OTPChallenge.query.filter_by(user_id=user.id, purpose=purpose).first()
    try:
        if challenge is None:
            raise ChallengeNotFound()
        if clock.utcnow() > challenge.expires_at:
            raise ChallengeExpired()
        if not secret_matches(challenge.code_hash, code):
            raise ChallengeMismatch()
    except ChallengeError as e:
        logger.warning(f"Rejected {purpose} OTP for user {user.id}: {e.reason}")
        raise
    return challenge


def consume_challenge(challenge):
    # Only the request whose delete hits the row gets to proceed
    deleted = OTPChallenge.query.filter_by(id=challenge.id, nonce=challenge.nonce).delete(
        synchronize_session=False
    )
    if deleted != 1:
        db.session.rollback()
        logger.warning(f"Challenge {challenge.id} was consumed concurrently")
        raise ChallengeNotFound()


# --- activity ---------------------------------------------------------------

def record_login(user, ip):
    now = clock.utcnow()
    user.last_login = now
    user.login_history.append(LoginEvent(timestamp=now, ip=ip))


def record_logout(user, ip):
    now = clock.utcnow()
    user.last_logout = now
    user.logout_history.append(LogoutEvent(timestamp=now, ip=ip))
    user.logout_count = User.logout_count + 1


def sign_out(user, ip):
    record_logout(user, ip)
    db.session.commit()
    logger.info(f"User {user.email} logged out from {ip}.")


# --- login ------------------------------------------------------------------

def resume_session(token, ip):
    """Token fast path. Returns the user, or None to fall back to credentials."""
    try:
        claims = tokens.verify(token, role=tokens.ROLE_USER)
        user = get_user(claims.get('sub'))
    except (InvalidToken, UserNotFound):
        logger.info("Presented token is not reusable; continuing with credentials.")
        return None

    record_login(user, ip)
    db.session.commit()
    logger.info(f"User {user.email} re-entered with an existing token.")
    return user


def begin_login(email, password, ip):
    user = find_user_by_email(email)
    if not user:
        logger.warning(f"Login attempt for unknown email: {email}")
        raise UserNotFound()

    if not check_password_hash(user.password, password):
        logger.warning(f"Failed login attempt for email: {email}")
        raise InvalidCredentials()

    # Attempted logins show up in activity before the OTP is confirmed
    record_login(user, ip)
    challenge, otp = issue_challenge(user, PURPOSE_LOGIN, ip)
    db.session.commit()
    logger.info(f"Login OTP issued for {user.email}.")

    notify_otp(user.email, otp, 'Login Verification OTP', 'Login Verification OTP')
    return user


def complete_login(user_id, code):
    user = get_user(user_id)
    challenge = verify_challenge(user, PURPOSE_LOGIN, code)
    consume_challenge(challenge)
    db.session.commit()

    token = tokens.issue_user_token(user)
    logger.info(f"User {user.email} logged in successfully.")
    return user, token


# --- password reset ---------------------------------------------------------

def request_password_reset(email, ip):
    user = find_user_by_email(email)
    if not user:
        logger.warning(f"Password reset requested for unknown email: {email}")
        raise UserNotFound()

    challenge, otp = issue_challenge(user, PURPOSE_RESET, ip)
    db.session.commit()
    logger.info(f"Password reset OTP issued for {user.email}.")

    notify_otp(user.email, otp, 'Password Reset OTP', 'Password Reset OTP')
    return user


def verify_password_reset(user_id, code):
    user = get_user(user_id)
    # Left on file: the reset step consumes it
    challenge = verify_challenge(user, PURPOSE_RESET, code)
    logger.info(f"Password reset OTP verified for {user.email}.")
    return tokens.issue_reset_token(user, challenge)


def reset_password(reset_token, new_password):
    claims = tokens.verify(reset_token, role=tokens.ROLE_RESET)
    user = get_user(claims.get('sub'))

    challenge = OTPChallenge.query.filter_by(
        user_id=user.id, purpose=PURPOSE_RESET, nonce=claims.get('challenge')
    ).first()
    if challenge is None:
        logger.warning(f"Reset proof for user {user.id} no longer matches a challenge")
        raise ChallengeNotFound()
    if clock.utcnow() > challenge.expires_at:
        logger.warning(f"Reset proof for user {user.id} outlived its challenge")
        raise ChallengeExpired()

    if check_password_hash(user.password, new_password):
        logger.warning("Attempt to reset password to the current password.")
        raise ValidationError('New password cannot be the same as the current password.',
                              fields={'newPassword': 'Must differ from the current password'})

    consume_challenge(challenge)
    user.password = hash_secret(new_password)
    db.session.commit()
    logger.info(f"Password reset for {user.email}.")
    return user
