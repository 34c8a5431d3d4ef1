# otp_portal/authentication/models.py
from flask_login import UserMixin
from sqlalchemy import and_, or_
from sqlalchemy.ext.hybrid import hybrid_property
from otp_portal.clock import utcnow
from otp_portal.init_db import db

PURPOSE_LOGIN = 'login'
PURPOSE_RESET = 'reset'

PROFILE_FIELDS = ('name', 'email', 'password', 'phone_number', 'district', 'taluka', 'police_station')


class User(UserMixin, db.Model):
    __tablename__ = 'users'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password = db.Column(db.String(255), nullable=False)
    phone_number = db.Column(db.String(10), unique=True, nullable=False, index=True)
    district = db.Column(db.String(100), nullable=False)
    taluka = db.Column(db.String(100), nullable=False)
    police_station = db.Column(db.String(100), nullable=False)
    is_verified = db.Column(db.Boolean, default=False, nullable=False)

    registered_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    last_login = db.Column(db.DateTime, nullable=True)
    last_logout = db.Column(db.DateTime, nullable=True)
    logout_count = db.Column(db.Integer, default=0, nullable=False)

    login_history = db.relationship(
        'LoginEvent', backref='user', lazy=True,
        order_by='LoginEvent.id', cascade='all, delete-orphan'
    )
    logout_history = db.relationship(
        'LogoutEvent', backref='user', lazy=True,
        order_by='LogoutEvent.id', cascade='all, delete-orphan'
    )

    @hybrid_property
    def is_currently_active(self):
        if self.last_login is None:
            return False
        return self.last_logout is None or self.last_login > self.last_logout

    @is_currently_active.expression
    def is_currently_active(cls):
        return and_(
            cls.last_login.isnot(None),
            or_(cls.last_logout.is_(None), cls.last_login > cls.last_logout)
        )

    @property
    def login_count(self):
        return len(self.login_history)

    @property
    def last_known_ip(self):
        return self.login_history[-1].ip if self.login_history else None


class LoginEvent(db.Model):
    __tablename__ = 'login_events'
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    timestamp = db.Column(db.DateTime, default=utcnow, nullable=False)
    ip = db.Column(db.String(64), nullable=True)


class LogoutEvent(db.Model):
    __tablename__ = 'logout_events'
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    timestamp = db.Column(db.DateTime, default=utcnow, nullable=False)
    ip = db.Column(db.String(64), nullable=True)


class OTPChallenge(db.Model):
    __tablename__ = 'otp_challenges'
    __table_args__ = (
        db.UniqueConstraint('user_id', 'purpose', name='uq_otp_challenge_user_purpose'),
    )
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    purpose = db.Column(db.String(16), nullable=False)
    code_hash = db.Column(db.String(255), nullable=False)
    # Fresh per issuance; reset proofs reference it
    nonce = db.Column(db.String(32), nullable=False)
    expires_at = db.Column(db.DateTime, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    ip = db.Column(db.String(64), nullable=True)

    user = db.relationship('User', backref=db.backref('challenges', lazy=True, cascade='all, delete-orphan'))


class PendingRegistration(db.Model):
    __tablename__ = 'pending_registrations'
    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    name = db.Column(db.String(100), nullable=True)
    # Hashed at staging time; plaintext never reaches the ledger
    password = db.Column(db.String(255), nullable=True)
    phone_number = db.Column(db.String(10), nullable=True)
    district = db.Column(db.String(100), nullable=True)
    taluka = db.Column(db.String(100), nullable=True)
    police_station = db.Column(db.String(100), nullable=True)
    code_hash = db.Column(db.String(255), nullable=False)
    expires_at = db.Column(db.DateTime, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    def missing_fields(self):
        return [field for field in PROFILE_FIELDS if not getattr(self, field)]
