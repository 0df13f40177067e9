from datetime import timedelta

import pytest

from dms import create_app
from dms.config import DEV_JWT_SECRET, Settings, parse_duration

from .conftest import make_settings


@pytest.mark.parametrize('raw, expected', [
    ('7d', timedelta(days=7)),
    ('12h', timedelta(hours=12)),
    ('30m', timedelta(minutes=30)),
    ('45s', timedelta(seconds=45)),
    ('3600', timedelta(hours=1)),
])
def test_parse_duration(raw, expected):
    assert parse_duration(raw) == expected


def test_parse_duration_rejects_garbage():
    with pytest.raises(ValueError):
        parse_duration('soon')


def test_from_env(monkeypatch):
    monkeypatch.setenv('APP_ENV', 'Production')
    monkeypatch.setenv('JWT_SECRET', 's3cret')
    monkeypatch.setenv('OTP_RATE_LIMIT_MAX', '5')
    monkeypatch.setenv('TWILIO_ACCOUNT_SID', 'AC123')
    monkeypatch.setenv('TWILIO_AUTH_TOKEN', 'token')
    monkeypatch.setenv('TWILIO_PHONE_NUMBER', '+15550000000')
    monkeypatch.setenv('OTP_EXPOSE_FALLBACK', 'yes')

    settings = Settings.from_env()

    assert settings.is_production
    assert settings.jwt_secret == 's3cret'
    assert settings.otp_rate_limit_max == 5
    assert settings.sms_configured
    assert settings.disclose_fallback_otp is True


def test_defaults_follow_environment():
    dev = Settings()
    prod = Settings(env='production', jwt_secret='x')

    assert dev.disclose_fallback_otp and dev.create_tables
    assert not prod.disclose_fallback_otp and not prod.create_tables
    assert not dev.sms_configured
    assert dev.jwt_expires_delta == timedelta(days=7)


def test_development_falls_back_to_dev_secret():
    assert Settings().resolved_jwt_secret() == DEV_JWT_SECRET


def test_production_requires_jwt_secret():
    with pytest.raises(RuntimeError):
        create_app(make_settings(env='production', jwt_secret=None))
