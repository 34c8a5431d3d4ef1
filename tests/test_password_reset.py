from datetime import timedelta

from werkzeug.security import check_password_hash

from otp_portal.init_db import db
from otp_portal.authentication.models import OTPChallenge, User, PURPOSE_RESET

from conftest import ALICE, login


def start_reset(client, outbox, email=ALICE['email']):
    response = client.post('/api/auth/forgot-password', json={'email': email})
    assert response.status_code == 200
    return response.get_json()['userId'], outbox.last_otp(email)


def verify_reset(client, user_id, otp):
    return client.post('/api/auth/verify-forgot-otp', json={'userId': user_id, 'otp': otp})


def test_full_reset_flow(client, outbox, registered_user):
    user_id, otp = start_reset(client, outbox)
    assert user_id == registered_user

    response = verify_reset(client, user_id, otp)
    assert response.status_code == 200
    reset_token = response.get_json()['resetToken']
    # Verification alone leaves the challenge on file
    assert OTPChallenge.query.filter_by(user_id=user_id, purpose=PURPOSE_RESET).count() == 1

    response = client.post('/api/auth/reset-password', json={'resetToken': reset_token, 'newPassword': 'fresh-pass9'})
    assert response.status_code == 200

    db.session.expire_all()
    user = db.session.get(User, user_id)
    assert check_password_hash(user.password, 'fresh-pass9')
    assert OTPChallenge.query.filter_by(user_id=user_id, purpose=PURPOSE_RESET).count() == 0

    assert login(client, outbox, password='fresh-pass9')


def test_reset_proof_is_single_use(client, outbox, registered_user):
    user_id, otp = start_reset(client, outbox)
    reset_token = verify_reset(client, user_id, otp).get_json()['resetToken']

    first = client.post('/api/auth/reset-password', json={'resetToken': reset_token, 'newPassword': 'fresh-pass9'})
    second = client.post('/api/auth/reset-password', json={'resetToken': reset_token, 'newPassword': 'other-pass9'})
    assert first.status_code == 200
    assert second.status_code == 400
    assert second.get_json()['message'] == 'Invalid or expired OTP'


def test_reset_requires_a_proof_not_just_a_user_id(client, outbox, registered_user):
    response = client.post('/api/auth/reset-password', json={'userId': registered_user, 'newPassword': 'fresh-pass9'})
    assert response.status_code == 400
    assert 'resetToken' in response.get_json()['errors']

    response = client.post('/api/auth/reset-password', json={'resetToken': 'forged', 'newPassword': 'fresh-pass9'})
    assert response.status_code == 401


def test_user_token_is_not_a_reset_proof(client, outbox, registered_user):
    token = login(client, outbox)
    response = client.post('/api/auth/reset-password', json={'resetToken': token, 'newPassword': 'fresh-pass9'})
    assert response.status_code == 401


def test_reissued_reset_otp_voids_older_proof(client, outbox, registered_user):
    user_id, otp = start_reset(client, outbox)
    stale_token = verify_reset(client, user_id, otp).get_json()['resetToken']
    start_reset(client, outbox)

    response = client.post('/api/auth/reset-password', json={'resetToken': stale_token, 'newPassword': 'fresh-pass9'})
    assert response.status_code == 400


def test_wrong_reset_code(client, outbox, registered_user):
    user_id, otp = start_reset(client, outbox)
    response = verify_reset(client, user_id, '012345')
    assert response.status_code == 400
    assert response.get_json()['message'] == 'Invalid or expired OTP'


def test_expired_reset_code(client, outbox, registered_user, clock):
    user_id, otp = start_reset(client, outbox)
    clock.advance(timedelta(minutes=11))
    assert verify_reset(client, user_id, otp).status_code == 400


def test_reset_to_same_password_is_rejected(client, outbox, registered_user):
    user_id, otp = start_reset(client, outbox)
    reset_token = verify_reset(client, user_id, otp).get_json()['resetToken']
    response = client.post('/api/auth/reset-password', json={'resetToken': reset_token, 'newPassword': ALICE['password']})
    assert response.status_code == 400
    assert OTPChallenge.query.filter_by(user_id=user_id, purpose=PURPOSE_RESET).count() == 1


def test_forgot_password_for_unknown_email(client, outbox):
    response = client.post('/api/auth/forgot-password', json={'email': 'ghost@x.com'})
    assert response.status_code == 404
    assert response.get_json()['message'] == 'User not found'
    assert outbox == []


def test_short_new_password(client, outbox, registered_user):
    user_id, otp = start_reset(client, outbox)
    reset_token = verify_reset(client, user_id, otp).get_json()['resetToken']
    response = client.post('/api/auth/reset-password', json={'resetToken': reset_token, 'newPassword': 'abc'})
    assert response.status_code == 400
    assert 'newPassword' in response.get_json()['errors']


def test_reset_proof_outliving_its_challenge_is_rejected(client, outbox, registered_user, clock):
    user_id, otp = start_reset(client, outbox)
    clock.advance(timedelta(minutes=9))
    reset_token = verify_reset(client, user_id, otp).get_json()['resetToken']

    clock.advance(timedelta(minutes=2))
    response = client.post('/api/auth/reset-password', json={'resetToken': reset_token, 'newPassword': 'fresh-pass9'})
    assert response.status_code == 400
    assert response.get_json()['message'] == 'Invalid or expired OTP'

    db.session.expire_all()
    assert check_password_hash(db.session.get(User, user_id).password, ALICE['password'])
