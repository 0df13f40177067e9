from .user import User
from .otp import OTPChallenge
from .document import Document
