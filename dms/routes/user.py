import logging

from flask import jsonify, request
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from dms import db
from dms.errors import APIError
from dms.models import User
from dms.schemas import CreateUserRequest, parse_request

from . import user_bp

logger = logging.getLogger('dms.users')


@user_bp.route('', methods=['GET'])
def list_users():
    users = User.query.order_by(User.created_at.desc()).all()
    return jsonify({
        "success": True,
        "message": "Fetched all users!",
        "users": [user.to_dict() for user in users],
    }), 200


@user_bp.route('', methods=['POST'])
def create_user():
    data = parse_request(CreateUserRequest, request.get_json(silent=True),
                         message="Name and mobile number are required")

    user = User(name=data.name, phone_number=data.mobile_number, email=data.email)
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise APIError("A user with this mobile number already exists", 409)
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Create user error")
        raise APIError("Failed to create user", 500)

    return jsonify({"success": True, "message": "User created successfully!", "user": user.to_dict()}), 201


@user_bp.route('/<int:user_id>', methods=['GET'])
def get_user(user_id):
    user = db.session.get(User, user_id)
    if not user:
        return jsonify({"success": False, "message": "User not found"}), 404
    return jsonify({"success": True, "user": user.to_dict()}), 200
