import re
from typing import Annotated, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, ValidationError

from dms.errors import RequestValidationError

PHONE_RE = re.compile(r'^\+?[1-9]\d{1,14}$')
OTP_RE = re.compile(r'^\d{6}$')


def _check_phone(value):
    if not PHONE_RE.match(value):
        raise ValueError('Please enter a valid mobile number')
    return value


def _check_otp(value):
    if not OTP_RE.match(value):
        raise ValueError('OTP must be 6 digits')
    return value


PhoneNumber = Annotated[str, AfterValidator(_check_phone)]
OTPCode = Annotated[str, AfterValidator(_check_otp)]
RequiredText = Annotated[str, Field(min_length=1)]


class RequestModel(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra='ignore')


class GenerateOTPRequest(RequestModel):
    mobile_number: PhoneNumber


class ValidateOTPRequest(RequestModel):
    mobile_number: PhoneNumber
    otp: OTPCode


class CreateDocumentRequest(RequestModel):
    title: RequiredText
    content: RequiredText


class CreateUserRequest(RequestModel):
    name: RequiredText
    mobile_number: PhoneNumber
    email: Optional[str] = None


def _error_message(error):
    ctx = error.get('ctx') or {}
    if 'error' in ctx:
        return str(ctx['error'])
    if error.get('type') == 'missing':
        return 'Field is required'
    return error.get('msg', 'Invalid value')


def parse_request(model, data, message=None):
    """Validate a JSON body into `model`, raising RequestValidationError on failure."""
    if not isinstance(data, dict):
        raise RequestValidationError(
            [{'field': 'body', 'message': 'Request body must be a JSON object'}], message)
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        errors = [
            {
                'field': '.'.join(str(part) for part in err['loc']) or 'body',
                'message': _error_message(err),
            }
            for err in exc.errors()
        ]
        raise RequestValidationError(errors, message) from None
