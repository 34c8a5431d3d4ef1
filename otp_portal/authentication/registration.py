# otp_portal/authentication/registration.py
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from otp_portal import clock
from otp_portal.init_db import db
from otp_portal.errors import (
    ChallengeError, ChallengeExpired, ChallengeMismatch, ChallengeNotFound,
    DuplicateIdentity, PendingNotFound, ValidationError
)
from otp_portal.logging_config import setup_logging
from otp_portal.authentication.models import User, PendingRegistration
from otp_portal.authentication.views import (
    generate_otp, hash_secret, secret_matches, otp_expiry, notify_otp
)

logger = setup_logging(__name__)


def identity_taken(email, phone_number):
    return db.session.query(
        User.query.filter(or_(User.email == email, User.phone_number == phone_number)).exists()
    ).scalar()


def purge_expired_registrations(now=None):
    now = now or clock.utcnow()
    return PendingRegistration.query.filter(PendingRegistration.expires_at < now).delete(
        synchronize_session=False
    )


def stage_registration(candidate):
    """Hold a signup until its OTP comes back.

    A repeat signup for the same email replaces the earlier entry, so only the
    newest code can confirm it.
    """
    email = candidate['email'].lower()
    if identity_taken(email, candidate['phone_number']):
        logger.warning(f"Signup attempt with existing email or phone: {email}")
        raise DuplicateIdentity()

    now = clock.utcnow()
    purge_expired_registrations(now)

    otp = generate_otp()
    entry = PendingRegistration.query.filter_by(email=email).first()
    if entry is None:
        entry = PendingRegistration(email=email)
        db.session.add(entry)

    entry.name = candidate['name']
    entry.password = hash_secret(candidate['password'])
    entry.phone_number = candidate['phone_number']
    entry.district = candidate['district']
    entry.taluka = candidate['taluka']
    entry.police_station = candidate['police_station']
    entry.code_hash = hash_secret(otp)
    entry.created_at = now
    entry.expires_at = otp_expiry(now)
    db.session.commit()
    logger.info(f"Signup staged for {email}; awaiting OTP confirmation.")

    notify_otp(email, otp, 'Email Verification OTP', 'Email Verification OTP')
    return entry


def promote_registration(email, code):
    email = email.lower()
    entry = PendingRegistration.query.filter_by(email=email).first()
    if entry is None:
        logger.warning(f"No pending registration for {email}")
        raise PendingNotFound()

    now = clock.utcnow()
    try:
        if now > entry.expires_at:
            db.session.delete(entry)
            db.session.commit()
            raise ChallengeExpired()
        if not secret_matches(entry.code_hash, code):
            raise ChallengeMismatch()
    except ChallengeError as e:
        logger.warning(f"Rejected signup OTP for {email}: {e.reason}")
        raise

    missing = entry.missing_fields()
    if missing:
        logger.error(f"Pending registration for {email} is incomplete: {', '.join(missing)}")
        raise ValidationError(f"Missing field: {missing[0]}",
                              fields={field: 'Missing from pending registration' for field in missing})

    user = User(
        name=entry.name,
        email=entry.email,
        password=entry.password,
        phone_number=entry.phone_number,
        district=entry.district,
        taluka=entry.taluka,
        police_station=entry.police_station,
        is_verified=True,
        registered_at=now,
        created_at=now,
        updated_at=now
    )
    try:
        db.session.add(user)
        # Conditional on the code we checked; a concurrent re-stage or promote wins otherwise
        deleted = PendingRegistration.query.filter_by(id=entry.id, code_hash=entry.code_hash).delete(
            synchronize_session=False
        )
        if deleted != 1:
            db.session.rollback()
            logger.warning(f"Pending registration for {email} changed during promotion")
            raise ChallengeNotFound()
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        logger.warning(f"Signup for {email} collided with an existing account")
        raise DuplicateIdentity()

    logger.info(f"New user {email} signed up successfully.")
    return user
