import datetime
import jwt
from flask import current_app


def encode_token(user_id: int) -> str:
    days = int(current_app.config.get("TOKEN_TTL_DAYS", 7))
    payload = {
        "user_id": user_id,
        "exp": datetime.datetime.now(datetime.timezone.utc) + datetime.timedelta(days=days),
    }
    return jwt.encode(payload, current_app.config["SECRET_KEY"], algorithm="HS256")


def decode_token(token: str) -> dict:
    return jwt.decode(token, current_app.config["SECRET_KEY"], algorithms=["HS256"])
