import re
from datetime import datetime

import pytest
from flask import g
from flask.testing import FlaskClient

from otp_portal import create_app
from otp_portal.init_db import db
from otp_portal.errors import DeliveryError

OTP_IN_EMAIL = re.compile(r'>(\d{6})<')

ALICE = {
    'name': 'Alice Patil',
    'email': 'alice@x.com',
    'password': 'secret1!',
    'phoneNumber': '9876543210',
    'district': 'Pune',
    'taluka': 'Haveli',
    'policeStation': 'Loni Kalbhor',
}


class Outbox(list):
    def last_otp(self, recipient=None):
        for to, subject, html in reversed(self):
            if recipient is None or to.lower() == recipient.lower():
                return OTP_IN_EMAIL.search(html).group(1)
        raise AssertionError(f"no email sent to {recipient}")


class FrozenClock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, delta):
        self.now = self.now + delta


class PortalClient(FlaskClient):
    """Test client whose requests never see a user loaded by an earlier request."""

    def open(self, *args, **kwargs):
        # The fixture's app context outlives each request, and so does its g
        g.pop('_login_user', None)
        return super().open(*args, **kwargs)


@pytest.fixture
def app(request):
    app = create_app(getattr(request, 'param', 'otp_portal.config.TestConfig'))
    app.test_client_class = PortalClient
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def outbox(monkeypatch):
    sent = Outbox()

    def fake_send_email(recipient, subject, html_content):
        sent.append((recipient, subject, html_content))

    monkeypatch.setattr('otp_portal.authentication.views.send_email', fake_send_email)
    return sent


@pytest.fixture
def broken_mailer(monkeypatch):
    def failing_send_email(recipient, subject, html_content):
        raise DeliveryError('smtp down')

    monkeypatch.setattr('otp_portal.authentication.views.send_email', failing_send_email)


@pytest.fixture
def clock(monkeypatch):
    frozen = FrozenClock(datetime(2025, 3, 1, 9, 0, 0))
    monkeypatch.setattr('otp_portal.clock.utcnow', frozen)
    return frozen


def register(client, outbox, **overrides):
    payload = dict(ALICE, **overrides)
    response = client.post('/api/auth/signup', json=payload)
    assert response.status_code == 200, response.get_json()
    otp = outbox.last_otp(payload['email'])
    response = client.post('/api/auth/verify-signup-otp', json={'email': payload['email'], 'otp': otp})
    assert response.status_code == 201, response.get_json()
    return response.get_json()['userId']


def login(client, outbox, email=ALICE['email'], password=ALICE['password']):
    response = client.post('/api/auth/login', json={'email': email, 'password': password})
    assert response.status_code == 200, response.get_json()
    user_id = response.get_json()['userId']
    otp = outbox.last_otp(email)
    response = client.post('/api/auth/verify-login-otp', json={'userId': user_id, 'otp': otp})
    assert response.status_code == 200, response.get_json()
    return response.get_json()['token']


def bearer(token):
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def registered_user(client, outbox):
    return register(client, outbox)
