import secrets
from functools import wraps

import jwt
from flask import Blueprint, jsonify, request

from ..extensions import db
from ..models.user import User
from ..repositories.user_repository import get_user_by_client_id
from ..utils.error_handler import Unauthorized, ValidationError
from ..utils.jwt_helper import encode_token, decode_token


auth_bp = Blueprint("auth", __name__)


@auth_bp.route('/token', methods=['POST'])
def get_token():
    data = request.get_json(silent=True) or {}
    client_id = data.get("client_id")
    client_secret = data.get("client_secret")

    if not client_id or not client_secret:
        raise ValidationError("Missing credentials")

    user = get_user_by_client_id(client_id)
    if not user or not user.client_secret or not secrets.compare_digest(user.client_secret, client_secret):
        raise Unauthorized("Invalid credentials")

    return jsonify({"access_token": encode_token(user.id), "token_type": "bearer"})


def token_required(f):

    @wraps(f)
    def decorated(*args, **kwargs):
        token = None
        if 'Authorization' in request.headers:
            auth_header = request.headers['Authorization']
            if " " in auth_header:
                token = auth_header.split(" ", 1)[1]
            else:
                token = auth_header

        if not token:
            raise Unauthorized()

        try:
            payload = decode_token(token)
        except jwt.InvalidTokenError:
            raise Unauthorized("Invalid or expired token")

        current_user = db.session.get(User, payload.get('user_id'))
        if not current_user:
            raise Unauthorized()

        return f(current_user, *args, **kwargs)

    return decorated
