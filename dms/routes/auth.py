import logging

from flask import current_app, jsonify, request
from flask_jwt_extended import get_jwt_identity, jwt_required
from sqlalchemy.exc import SQLAlchemyError

from dms import db
from dms.errors import APIError, DeliveryUnavailable
from dms.models import User
from dms.schemas import GenerateOTPRequest, ValidateOTPRequest, parse_request
from dms.services.otp import DeliveryMode
from dms.services.rate_limit import otp_request_key, rate_limited

from . import auth_bp

logger = logging.getLogger('dms.auth')

OTP_LIMIT_MESSAGE = "Too many OTP requests. Please try again later."


def _otp_service():
    return current_app.extensions['otp_service']


@auth_bp.route('/generateOTP', methods=['POST'])
@rate_limited('otp_rate_limiter', otp_request_key, OTP_LIMIT_MESSAGE)
def generate_otp():
    payload = parse_request(GenerateOTPRequest, request.get_json(silent=True))

    try:
        issued = _otp_service().issue(payload.mobile_number)
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Generate OTP error")
        raise APIError("Failed to generate OTP", 500)

    if issued.delivery is DeliveryMode.SENT:
        return jsonify({
            "success": True,
            "message": "OTP sent successfully",
            "expires_in": issued.expires_in,
        }), 200

    if not current_app.config['OTP_EXPOSE_FALLBACK']:
        raise DeliveryUnavailable()

    return jsonify({
        "success": True,
        "message": "OTP generated (dev mode)",
        "otp": issued.code,
        "expires_in": issued.expires_in,
    }), 200


@auth_bp.route('/validateOTP', methods=['POST'])
def validate_otp():
    payload = parse_request(ValidateOTPRequest, request.get_json(silent=True))

    try:
        login = _otp_service().verify(payload.mobile_number, payload.otp)
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Validate OTP error")
        raise APIError("Failed to validate OTP", 500)

    return jsonify({
        "success": True,
        "message": "OTP verified successfully",
        "token": login.token,
        "user": login.user.to_public_dict(),
    }), 200


@auth_bp.route('/me', methods=['GET'])
@jwt_required()
def me():
    user = db.session.get(User, int(get_jwt_identity()))
    if not user:
        return jsonify({"success": False, "message": "User not found"}), 404
    return jsonify({"success": True, "user": user.to_public_dict()}), 200
