class APIError(Exception):
    """An error that maps directly onto a JSON error response."""

    status_code = 400

    def __init__(self, message, status_code=None, payload=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.payload = payload or {}

    def to_dict(self):
        body = {"success": False, "message": self.message}
        body.update(self.payload)
        return body


class RequestValidationError(APIError):
    def __init__(self, errors, message=None):
        super().__init__(message or "Validation failed", payload={"errors": errors})
        self.errors = errors


class RateLimitExceeded(APIError):
    status_code = 429

    def __init__(self, message, retry_after):
        super().__init__(message)
        self.retry_after = retry_after


class ChallengeError(APIError):
    pass


class ChallengeInvalid(ChallengeError):
    def __init__(self):
        super().__init__("Invalid or expired OTP")


class ChallengeLocked(ChallengeError):
    def __init__(self):
        super().__init__("Too many failed attempts. Please request a new OTP.")


class CodeMismatch(ChallengeError):
    def __init__(self, attempts_remaining):
        super().__init__("Invalid OTP", payload={"attempts_remaining": attempts_remaining})
        self.attempts_remaining = attempts_remaining


class DeliveryUnavailable(APIError):
    status_code = 503

    def __init__(self):
        super().__init__("OTP delivery is currently unavailable")
