# otp_portal/authentication/schemas.py
import re
from otp_portal.errors import ValidationError

EMAIL_PATTERN = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')
PHONE_PATTERN = re.compile(r'^\d{10}$')
OTP_PATTERN = re.compile(r'^\d{6}$')

MIN_NAME_LENGTH = 2
MIN_PASSWORD_LENGTH = 6


def _email(value):
    if not EMAIL_PATTERN.match(value):
        return 'Please provide a valid email address'


def _phone(value):
    if not PHONE_PATTERN.match(value):
        return 'Please provide a valid 10-digit phone number'


def _otp(value):
    if not OTP_PATTERN.match(value):
        return 'OTP must be 6 digits'


def _name(value):
    if len(value) < MIN_NAME_LENGTH:
        return f'Name must be at least {MIN_NAME_LENGTH} characters long'


def _password(value):
    if len(value) < MIN_PASSWORD_LENGTH:
        return f'Password must be at least {MIN_PASSWORD_LENGTH} characters long'


class Schema:
    """Request body contract: required fields plus per-field checks.

    ``load`` returns a dict keyed by the internal attribute names, with strings
    stripped. Nothing is returned until every field passes.
    """

    def __init__(self, required=(), checks=None, rename=None, raw=(), message='All fields are required'):
        self.required = tuple(required)
        self.checks = checks or {}
        self.rename = rename or {}
        self.raw = tuple(raw)
        self.message = message

    def load(self, data):
        if not isinstance(data, dict):
            raise ValidationError('Request body must be a JSON object.')

        errors = {}
        cleaned = {}
        for field in self.required:
            value = data.get(field)
            if isinstance(value, str):
                if field not in self.raw:
                    value = value.strip()
            elif value is not None:
                value = str(value)

            if not value:
                errors[field] = 'This field is required'
                continue

            check = self.checks.get(field)
            problem = check(value) if check else None
            if problem:
                errors[field] = problem
                continue

            cleaned[self.rename.get(field, field)] = value

        if errors:
            missing = all(message == 'This field is required' for message in errors.values())
            raise ValidationError(self.message if missing else 'Invalid request.', fields=errors)
        return cleaned


signup_schema = Schema(
    required=('name', 'email', 'password', 'phoneNumber', 'district', 'taluka', 'policeStation'),
    checks={'name': _name, 'email': _email, 'password': _password, 'phoneNumber': _phone},
    raw=('password',),
    rename={'phoneNumber': 'phone_number', 'policeStation': 'police_station'},
)

verify_signup_schema = Schema(
    required=('email', 'otp'),
    checks={'otp': _otp},
    message='Email and OTP are required.',
)

credentials_schema = Schema(
    required=('email', 'password'),
    raw=('password',),
    message='Please fill out all fields.',
)

verify_otp_schema = Schema(
    required=('userId', 'otp'),
    checks={'otp': _otp},
    rename={'userId': 'user_id'},
    message='userId and OTP are required.',
)

forgot_password_schema = Schema(
    required=('email',),
    message='Email is required.',
)

reset_password_schema = Schema(
    required=('resetToken', 'newPassword'),
    checks={'newPassword': _password},
    raw=('newPassword',),
    rename={'resetToken': 'reset_token', 'newPassword': 'new_password'},
    message='resetToken and newPassword are required',
)