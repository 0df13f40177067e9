from datetime import datetime, timedelta

import pytest

from dms import create_app, db
from dms.config import Settings
from dms.services.sms import SmsDeliveryError

TEST_JWT_SECRET = 'test-jwt-secret-that-is-long-enough-for-hs256'
PHONE = '+15551234567'


class FakeSmsProvider:
    def __init__(self, fail=False):
        self.fail = fail
        self.sent = []

    def send(self, to, body):
        if self.fail:
            raise SmsDeliveryError('provider unavailable')
        self.sent.append((to, body))
        return f"SM{len(self.sent):032d}"


class FakeClock:
    def __init__(self, start=None):
        self.now = start or datetime(2024, 1, 1, 12, 0, 0)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


def make_settings(**overrides):
    values = {
        'env': 'testing',
        'database_url': 'sqlite://',
        'jwt_secret': TEST_JWT_SECRET,
        'auto_create_tables': True,
        'log_level': 'WARNING',
    }
    values.update(overrides)
    return Settings(**values)


def build_app(settings=None, sms_provider=None):
    app = create_app(settings or make_settings(), sms_provider=sms_provider)
    app.config['TESTING'] = True
    return app


@pytest.fixture
def sms():
    return FakeSmsProvider()


@pytest.fixture
def app():
    app = build_app()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def app_ctx(app):
    with app.app_context():
        yield app
