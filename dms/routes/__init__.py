from flask import Blueprint

auth_bp = Blueprint('auth', __name__)
user_bp = Blueprint('user', __name__)
document_bp = Blueprint('document', __name__)

from .auth import *
from .user import *
from .document import *
