# otp_portal/errors.py


class PortalError(Exception):
    status_code = 400
    message = 'Request could not be processed.'

    def __init__(self, message=None, status_code=None):
        super().__init__(message or self.message)
        if message is not None:
            self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self):
        return {'success': False, 'message': self.message}


class ValidationError(PortalError):
    message = 'Invalid request.'

    def __init__(self, message=None, fields=None):
        super().__init__(message)
        self.fields = fields or {}

    def to_dict(self):
        body = super().to_dict()
        if self.fields:
            body['errors'] = self.fields
        return body


class DuplicateIdentity(PortalError):
    message = 'User with this email or phone already exists'


class ChallengeError(PortalError):
    """Any OTP rejection. Subclasses only differ in what gets logged."""
    message = 'Invalid or expired OTP'
    reason = 'invalid'

    def __init__(self):
        # Outward message is fixed so callers cannot tell challenge states apart
        super().__init__(ChallengeError.message)


class ChallengeNotFound(ChallengeError):
    reason = 'not_found'


class ChallengeExpired(ChallengeError):
    reason = 'expired'


class ChallengeMismatch(ChallengeError):
    reason = 'mismatch'


class NotFound(PortalError):
    status_code = 404
    message = 'Not found'


class UserNotFound(NotFound):
    message = 'User not found'


class PendingNotFound(NotFound):
    message = 'No OTP request found for this email'


class InvalidCredentials(PortalError):
    message = 'Invalid credentials'


class Unauthorized(PortalError):
    status_code = 401
    message = 'Not authorized'


class InvalidToken(Unauthorized):
    message = 'Not authorized, token failed'


class DeliveryError(Exception):
    """Raised by the mailer. Never surfaced to API callers."""
