import os
import re
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Optional

DEV_JWT_SECRET = 'super-secret-development-key-change-me'

_DURATION_RE = re.compile(r'^\s*(\d+)\s*([smhd]?)\s*$')
_DURATION_UNITS = {'': 1, 's': 1, 'm': 60, 'h': 3600, 'd': 86400}


def parse_duration(value):
    """Turn '7d', '12h', '30m', '45s' or '3600' into a timedelta."""
    match = _DURATION_RE.match(str(value))
    if not match:
        raise ValueError(f"Invalid duration: {value!r}")
    amount, unit = match.groups()
    return timedelta(seconds=int(amount) * _DURATION_UNITS[unit])


def _env_bool(name, default):
    raw = os.getenv(name)
    if raw is None or raw.strip() == '':
        return default
    return raw.strip().lower() in ('1', 'true', 'yes', 'on')


def _env_int(name, default):
    raw = os.getenv(name)
    if raw is None or raw.strip() == '':
        return default
    return int(raw)


@dataclass
class Settings:
    env: str = 'development'
    database_url: str = 'sqlite:///dms.db'
    jwt_secret: Optional[str] = None
    jwt_expires_in: str = '7d'
    otp_ttl_seconds: int = 300
    otp_max_attempts: int = 3
    otp_rate_limit_window: int = 60
    otp_rate_limit_max: int = 3
    api_rate_limit_window: int = 900
    api_rate_limit_max: int = 100
    twilio_account_sid: Optional[str] = None
    twilio_auth_token: Optional[str] = None
    twilio_phone_number: Optional[str] = None
    sms_timeout_seconds: float = 5.0
    expose_fallback_otp: Optional[bool] = None
    cors_origin: str = 'http://localhost:3000'
    auto_create_tables: Optional[bool] = None
    log_level: str = 'INFO'
    port: int = 5000
    extra: dict = field(default_factory=dict)

    @classmethod
    def from_env(cls):
        env = (os.getenv('APP_ENV') or 'development').strip().lower()
        return cls(
            env=env,
            database_url=os.getenv('DATABASE_URL', 'sqlite:///dms.db'),
            jwt_secret=os.getenv('JWT_SECRET') or None,
            jwt_expires_in=os.getenv('JWT_EXPIRES_IN', '7d'),
            otp_ttl_seconds=_env_int('OTP_TTL_SECONDS', 300),
            otp_max_attempts=_env_int('OTP_MAX_ATTEMPTS', 3),
            otp_rate_limit_window=_env_int('OTP_RATE_LIMIT_WINDOW', 60),
            otp_rate_limit_max=_env_int('OTP_RATE_LIMIT_MAX', 3),
            api_rate_limit_window=_env_int('API_RATE_LIMIT_WINDOW', 900),
            api_rate_limit_max=_env_int('API_RATE_LIMIT_MAX', 100),
            twilio_account_sid=os.getenv('TWILIO_ACCOUNT_SID') or None,
            twilio_auth_token=os.getenv('TWILIO_AUTH_TOKEN') or None,
            twilio_phone_number=os.getenv('TWILIO_PHONE_NUMBER') or None,
            sms_timeout_seconds=float(os.getenv('SMS_TIMEOUT_SECONDS', '5')),
            expose_fallback_otp=_env_bool('OTP_EXPOSE_FALLBACK', None),
            cors_origin=os.getenv('CORS_ORIGIN', 'http://localhost:3000'),
            auto_create_tables=_env_bool('AUTO_CREATE_TABLES', None),
            log_level=os.getenv('LOG_LEVEL', 'INFO').upper(),
            port=_env_int('PORT', 5000),
        )

    @property
    def is_production(self):
        return self.env == 'production'

    @property
    def is_development(self):
        return self.env == 'development'

    @property
    def sms_configured(self):
        return bool(self.twilio_account_sid and self.twilio_auth_token and self.twilio_phone_number)

    @property
    def disclose_fallback_otp(self):
        if self.expose_fallback_otp is None:
            return not self.is_production
        return self.expose_fallback_otp

    @property
    def create_tables(self):
        if self.auto_create_tables is None:
            return not self.is_production
        return self.auto_create_tables

    @property
    def jwt_expires_delta(self):
        return parse_duration(self.jwt_expires_in)

    def resolved_jwt_secret(self):
        """Signing secret for tokens. Production refuses to start without one."""
        if self.jwt_secret:
            return self.jwt_secret
        if self.is_production:
            raise RuntimeError('JWT_SECRET must be set when APP_ENV=production')
        return DEV_JWT_SECRET

    def flask_config(self):
        config = {
            'SQLALCHEMY_DATABASE_URI': self.database_url,
            'SQLALCHEMY_TRACK_MODIFICATIONS': False,
            'JWT_SECRET_KEY': self.resolved_jwt_secret(),
            'JWT_ACCESS_TOKEN_EXPIRES': self.jwt_expires_delta,
        }
        config.update(self.extra)
        return config
