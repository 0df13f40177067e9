import logging

from flask import Flask, jsonify, request
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from dotenv import load_dotenv
from flask_jwt_extended import JWTManager
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

load_dotenv()

db = SQLAlchemy()
migrate = Migrate()
jwt = JWTManager()

logger = logging.getLogger('dms.app')

SECURITY_HEADERS = {
    'X-Content-Type-Options': 'nosniff',
    'X-Frame-Options': 'DENY',
    'Referrer-Policy': 'no-referrer',
}


def create_app(settings=None, sms_provider=None):
    from dms.config import Settings
    from dms.services.otp import OTPService
    from dms.services.rate_limit import SlidingWindowLimiter
    from dms.services.sms import build_sms_provider

    settings = settings or Settings.from_env()
    logging.basicConfig(
        level=settings.log_level,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )

    app = Flask(__name__)
    app.config.update(settings.flask_config())
    app.config['APP_ENV'] = settings.env
    app.config['OTP_EXPOSE_FALLBACK'] = settings.disclose_fallback_otp

    if not settings.jwt_secret:
        logger.warning("JWT_SECRET not set, using an insecure development secret")

    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)

    if sms_provider is None:
        sms_provider = build_sms_provider(settings)

    app.extensions['dms_settings'] = settings
    app.extensions['otp_service'] = OTPService(
        sms_provider=sms_provider,
        ttl_seconds=settings.otp_ttl_seconds,
        max_attempts=settings.otp_max_attempts,
    )
    app.extensions['otp_rate_limiter'] = SlidingWindowLimiter(
        settings.otp_rate_limit_max, settings.otp_rate_limit_window)
    app.extensions['api_rate_limiter'] = SlidingWindowLimiter(
        settings.api_rate_limit_max, settings.api_rate_limit_window)

    from dms import models  # noqa: F401
    from dms.routes import auth_bp, user_bp, document_bp
    app.register_blueprint(auth_bp, url_prefix='/api/auth')
    app.register_blueprint(user_bp, url_prefix='/api/users')
    app.register_blueprint(document_bp, url_prefix='/api/documents')

    CORS(app, origins=[settings.cors_origin], supports_credentials=True)

    _register_hooks(app)
    _register_error_handlers(app)

    @app.route('/health')
    def health():
        from dms.utils import utcnow
        return jsonify({"status": "OK", "timestamp": utcnow().isoformat() + 'Z'})

    if settings.create_tables:
        with app.app_context():
            db.create_all()

    logger.info("Environment: %s", settings.env)
    logger.info("SMS delivery configured: %s", sms_provider is not None)
    return app


def _register_hooks(app):
    from dms.errors import RateLimitExceeded
    from dms.services.rate_limit import client_address

    @app.before_request
    def throttle_api():
        if not request.path.startswith('/api/'):
            return None
        retry_after = app.extensions['api_rate_limiter'].hit(f"ip:{client_address()}")
        if retry_after is not None:
            raise RateLimitExceeded("Too many requests. Try again later.", retry_after)
        return None

    @app.after_request
    def finish_response(response):
        for header, value in SECURITY_HEADERS.items():
            response.headers.setdefault(header, value)
        logger.info("%s %s %s", request.method, request.path, response.status_code)
        return response


def _register_error_handlers(app):
    from dms.errors import APIError, RateLimitExceeded

    @app.errorhandler(APIError)
    def handle_api_error(error):
        response = jsonify(error.to_dict())
        response.status_code = error.status_code
        if isinstance(error, RateLimitExceeded):
            response.headers['Retry-After'] = str(error.retry_after)
        return response

    @app.errorhandler(404)
    def handle_not_found(error):
        return jsonify({"success": False, "message": "Route not found"}), 404

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return jsonify({"success": False, "message": error.description}), error.code

    @app.errorhandler(Exception)
    def handle_unexpected(error):
        logger.exception("Unhandled error")
        body = {"success": False, "message": "Something went wrong!"}
        if app.config['APP_ENV'] == 'development':
            body['error'] = str(error)
        return jsonify(body), 500
