# otp_portal/config.py
import os
import binascii

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or binascii.hexlify(os.urandom(24)).decode()

    BASE_DIR = os.path.abspath(os.path.dirname(__file__))

    DATABASE_PATH = os.path.join(BASE_DIR, 'portal_data.db')

    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL', f'sqlite:///{DATABASE_PATH}')

    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Tokens
    # Unset means tokens die with the process; create_app warns about it
    JWT_SECRET_KEY = os.environ.get('JWT_SECRET_KEY') or os.environ.get('SECRET_KEY')
    JWT_ALGORITHM = os.environ.get('JWT_ALGORITHM', 'HS256')
    USER_TOKEN_TTL_HOURS = int(os.environ.get('USER_TOKEN_TTL_HOURS', '24'))
    ADMIN_TOKEN_TTL_HOURS = int(os.environ.get('ADMIN_TOKEN_TTL_HOURS', '2'))
    RESET_TOKEN_TTL_MINUTES = int(os.environ.get('RESET_TOKEN_TTL_MINUTES', '10'))

    ADMIN_SECRET = os.environ.get('ADMIN_SECRET')

    # Number of reverse proxies whose X-Forwarded-For hop is trusted
    TRUSTED_PROXY_HOPS = int(os.environ.get('TRUSTED_PROXY_HOPS', '0'))

    OTP_EXPIRY_MINUTES = int(os.environ.get('OTP_EXPIRY_MINUTES', '10'))
    PASSWORD_HASH_METHOD = os.environ.get('PASSWORD_HASH_METHOD', 'pbkdf2:sha256')

    EMAIL_CONFIG_PATH = os.environ.get('EMAIL_CONFIG_PATH', os.path.join(BASE_DIR, 'email_config.json'))

    LOG_TIMEZONE = os.environ.get('LOG_TIMEZONE', 'Asia/Kolkata')


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = 'test-secret'
    JWT_SECRET_KEY = 'test-jwt-secret'
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    ADMIN_SECRET = 'let-me-in'
    PASSWORD_HASH_METHOD = 'pbkdf2:sha256:1000'
