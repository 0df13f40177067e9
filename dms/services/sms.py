import logging

import requests
from twilio.base.exceptions import TwilioException
from twilio.http.http_client import TwilioHttpClient
from twilio.rest import Client

from dms.utils import mask_phone

logger = logging.getLogger('dms.sms')

OTP_MESSAGE = 'Your Document Management System OTP is: {otp}. It is valid for {minutes} minutes.'


class SmsDeliveryError(Exception):
    pass


class TwilioSmsProvider:
    """Sends text messages through the Twilio SDK."""

    def __init__(self, account_sid, auth_token, from_number, timeout=5.0, client=None):
        self.from_number = from_number
        self.client = client or Client(
            account_sid,
            auth_token,
            http_client=TwilioHttpClient(timeout=timeout),
        )

    def send(self, to, body):
        try:
            message = self.client.messages.create(body=body, from_=self.from_number, to=to)
        except TwilioException as exc:
            raise SmsDeliveryError(f"Twilio error: {exc}") from exc
        except requests.RequestException as exc:
            raise SmsDeliveryError(f"Twilio request failed: {exc}") from exc
        except ValueError as exc:
            raise SmsDeliveryError(f"Unreadable Twilio response: {exc}") from exc

        sid = getattr(message, 'sid', None)
        logger.info("SMS sent to %s, message SID %s", mask_phone(to), sid)
        return sid


def build_sms_provider(settings):
    if not settings.sms_configured:
        return None
    return TwilioSmsProvider(
        settings.twilio_account_sid,
        settings.twilio_auth_token,
        settings.twilio_phone_number,
        timeout=settings.sms_timeout_seconds,
    )


def otp_message(otp, ttl_seconds):
    return OTP_MESSAGE.format(otp=otp, minutes=max(ttl_seconds // 60, 1))
