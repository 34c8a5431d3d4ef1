# otp_portal/authentication/tokens.py
from datetime import datetime, timedelta, timezone
import jwt
from flask import current_app
from otp_portal.errors import InvalidToken

ROLE_USER = 'user'
ROLE_ADMIN = 'admin'
ROLE_RESET = 'reset'


def sign(claims, ttl):
    """Encode ``claims`` into a signed token that expires after ``ttl``."""
    issued_at = datetime.now(timezone.utc)
    payload = dict(claims)
    payload['iat'] = issued_at
    payload['exp'] = issued_at + ttl
    return jwt.encode(
        payload,
        current_app.config['JWT_SECRET_KEY'],
        algorithm=current_app.config['JWT_ALGORITHM']
    )


def verify(token, role=None):
    try:
        claims = jwt.decode(
            token,
            current_app.config['JWT_SECRET_KEY'],
            algorithms=[current_app.config['JWT_ALGORITHM']]
        )
    except jwt.ExpiredSignatureError:
        raise InvalidToken('Token has expired')
    except jwt.InvalidTokenError:
        raise InvalidToken()

    if role is not None and claims.get('role') != role:
        raise InvalidToken()
    return claims


def issue_user_token(user):
    ttl = timedelta(hours=current_app.config['USER_TOKEN_TTL_HOURS'])
    return sign({'sub': str(user.id), 'email': user.email, 'role': ROLE_USER}, ttl)


def issue_admin_token():
    ttl = timedelta(hours=current_app.config['ADMIN_TOKEN_TTL_HOURS'])
    return sign({'sub': ROLE_ADMIN, 'role': ROLE_ADMIN}, ttl)


def issue_reset_token(user, challenge):
    # Bound to one issuance of the reset challenge
    ttl = timedelta(minutes=current_app.config['RESET_TOKEN_TTL_MINUTES'])
    return sign({'sub': str(user.id), 'role': ROLE_RESET, 'challenge': challenge.nonce}, ttl)


def bearer_token(request):
    header = request.headers.get('Authorization', '')
    if header.startswith('Bearer '):
        return header.split(' ', 1)[1].strip() or None
    return None
