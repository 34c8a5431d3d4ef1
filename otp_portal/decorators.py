# otp_portal/decorators.py
from functools import wraps
from flask import request
from otp_portal.errors import Unauthorized
from otp_portal.authentication import tokens


def admin_required(f):
    """Allow the request only with a valid admin bearer token."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = tokens.bearer_token(request)
        if not token:
            raise Unauthorized('Not authorized, no token')
        tokens.verify(token, role=tokens.ROLE_ADMIN)
        return f(*args, **kwargs)
    return decorated_function
