"""One-time passcode challenges for phone-number login.

A phone number has at most one challenge row. Issuing replaces it; verifying
moves it through PENDING to VERIFIED, or deletes it once the attempt ceiling
is reached. Expired rows are never cleaned up, lookups simply skip them.
"""
import enum
import hmac
import logging
import secrets
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from flask_jwt_extended import create_access_token
from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from dms import db
from dms.errors import ChallengeInvalid, ChallengeLocked, CodeMismatch
from dms.models import OTPChallenge, User
from dms.models.user import DEFAULT_ROLE
from dms.services.sms import SmsDeliveryError, otp_message
from dms.utils import mask_phone, utcnow

logger = logging.getLogger('dms.otp')


def generate_otp_code():
    return str(100000 + secrets.randbelow(900000))


class DeliveryMode(enum.Enum):
    SENT = 'sent'
    FALLBACK = 'fallback'


@dataclass
class IssuedChallenge:
    phone_number: str
    code: str
    expires_in: int
    delivery: DeliveryMode
    message_sid: Optional[str] = None

    @property
    def delivered(self):
        return self.delivery is DeliveryMode.SENT


@dataclass
class VerifiedLogin:
    token: str
    user: User


class OTPService:
    def __init__(self, sms_provider=None, ttl_seconds=300, max_attempts=3,
                 clock=utcnow, code_factory=generate_otp_code):
        self.sms_provider = sms_provider
        self.ttl_seconds = ttl_seconds
        self.max_attempts = max_attempts
        self.clock = clock
        self.code_factory = code_factory

    def issue(self, phone_number):
        """Replace any challenge for `phone_number` with a fresh one and try to deliver it."""
        now = self.clock()
        previous = db.session.scalar(
            select(OTPChallenge.code).where(OTPChallenge.phone_number == phone_number)
        )
        code = self.code_factory()
        while code == previous:
            code = self.code_factory()

        try:
            db.session.execute(
                delete(OTPChallenge)
                .where(OTPChallenge.phone_number == phone_number)
                .execution_options(synchronize_session=False)
            )
            db.session.add(OTPChallenge(
                phone_number=phone_number,
                code=code,
                expires_at=now + timedelta(seconds=self.ttl_seconds),
                attempts=0,
                verified=False,
                created_at=now,
            ))
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            raise

        issued = IssuedChallenge(phone_number, code, self.ttl_seconds, DeliveryMode.FALLBACK)
        if self.sms_provider is None:
            logger.info("SMS provider not configured, OTP for %s kept for fallback disclosure",
                        mask_phone(phone_number))
            return issued

        try:
            issued.message_sid = self.sms_provider.send(phone_number, otp_message(code, self.ttl_seconds))
        except SmsDeliveryError as exc:
            logger.error("OTP delivery to %s failed: %s", mask_phone(phone_number), exc)
            return issued
        issued.delivery = DeliveryMode.SENT
        return issued

    def verify(self, phone_number, code):
        """Check `code` against the live challenge and log the user in.

        Raises ChallengeInvalid, ChallengeLocked or CodeMismatch.
        """
        now = self.clock()
        challenge = OTPChallenge.query.filter(
            OTPChallenge.phone_number == phone_number,
            OTPChallenge.verified.is_(False),
            OTPChallenge.expires_at > now,
        ).first()
        if challenge is None:
            raise ChallengeInvalid()

        if challenge.attempts >= self.max_attempts:
            db.session.execute(
                delete(OTPChallenge)
                .where(OTPChallenge.id == challenge.id)
                .execution_options(synchronize_session=False)
            )
            db.session.commit()
            logger.warning("OTP challenge for %s locked out", mask_phone(phone_number))
            raise ChallengeLocked()

        if not hmac.compare_digest(challenge.code, code):
            raise CodeMismatch(self._record_failure(challenge.id))

        result = db.session.execute(
            update(OTPChallenge)
            .where(
                OTPChallenge.id == challenge.id,
                OTPChallenge.verified.is_(False),
                OTPChallenge.attempts < self.max_attempts,
                OTPChallenge.expires_at > now,
            )
            .values(verified=True)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            db.session.rollback()
            raise ChallengeInvalid()
        db.session.commit()

        user = self._login_user(phone_number, now)
        token = create_access_token(
            identity=str(user.id),
            additional_claims={'mobile_number': user.phone_number, 'role': user.role},
        )
        logger.info("OTP verified for %s, user %s", mask_phone(phone_number), user.id)
        return VerifiedLogin(token=token, user=user)

    def _record_failure(self, challenge_id):
        result = db.session.execute(
            update(OTPChallenge)
            .where(
                OTPChallenge.id == challenge_id,
                OTPChallenge.verified.is_(False),
                OTPChallenge.attempts < self.max_attempts,
            )
            .values(attempts=OTPChallenge.attempts + 1)
            .execution_options(synchronize_session=False)
        )
        db.session.commit()
        if result.rowcount != 1:
            raise ChallengeInvalid()
        attempts = db.session.scalar(
            select(OTPChallenge.attempts).where(OTPChallenge.id == challenge_id)
        )
        if attempts is None:
            raise ChallengeInvalid()
        return max(self.max_attempts - attempts, 0)

    def _login_user(self, phone_number, now):
        user = User.query.filter_by(phone_number=phone_number).first()
        if user is None:
            user = User(
                phone_number=phone_number,
                name=f"User {phone_number[-4:]}",
                role=DEFAULT_ROLE,
                created_at=now,
            )
            db.session.add(user)
            try:
                db.session.flush()
            except IntegrityError:
                # Another request created the same user first.
                db.session.rollback()
                user = User.query.filter_by(phone_number=phone_number).one()
        user.last_login = now
        db.session.commit()
        return user
