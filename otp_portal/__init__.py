# otp_portal/__init__.py
from otp_portal.app_factory import create_app

__all__ = ['create_app']
