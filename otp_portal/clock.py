# otp_portal/clock.py
from datetime import datetime


def utcnow():
    """Naive UTC now. Every expiry and activity timestamp goes through here."""
    return datetime.utcnow()
