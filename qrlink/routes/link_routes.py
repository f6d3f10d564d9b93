import datetime
from urllib.parse import urlparse

from flask import Blueprint, Response, jsonify, request
from sqlalchemy.exc import IntegrityError

from ..extensions import db, get_link_cache
from ..models.scan_event import ScanEvent
from ..models.short_link import ShortLink
from ..repositories.link_repository import get_link_by_code
from ..routes.auth_routes import token_required
from ..schemas.link_schema import serialize_link
from ..services.analytics_service import get_owned_link
from ..utils.error_handler import Conflict, ValidationError
from ..utils.qr_generator import render_qr_png

link_bp = Blueprint("links", __name__)

MAX_CODE_LENGTH = 20
MAX_URL_LENGTH = 2000


def _normalize_destination(value) -> str:
    url = (value or "").strip() if isinstance(value, str) else ""
    if not url:
        raise ValidationError("destinationUrl is required")

    parsed = urlparse(url)
    if not parsed.scheme:
        url = "https://" + url
    elif parsed.scheme not in ("http", "https"):
        raise ValidationError("destinationUrl must be an http(s) URL")

    if len(url) > MAX_URL_LENGTH:
        raise ValidationError("destinationUrl is too long")
    return url


@link_bp.route("/api/links", methods=["GET"])
@token_required
def list_links(current_user):
    links = (
        ShortLink.query.filter_by(user_id=current_user.id)
        .order_by(ShortLink.created_at.desc())
        .all()
    )
    return jsonify({"links": [serialize_link(link) for link in links]})


@link_bp.route("/api/links", methods=["POST"])
@token_required
def create_link(current_user):
    data = request.get_json(silent=True) or {}

    short_code = (data.get("shortCode") or "").strip()
    if not short_code or not short_code.isalnum() or len(short_code) > MAX_CODE_LENGTH:
        raise ValidationError(f"shortCode must be 1-{MAX_CODE_LENGTH} alphanumeric characters")

    destination = _normalize_destination(data.get("destinationUrl"))

    if get_link_by_code(short_code):
        raise Conflict("This short code already exists.")

    link = ShortLink(
        user_id=current_user.id,
        short_code=short_code,
        destination_url=destination,
        name=(data.get("name") or "").strip() or None,
    )
    db.session.add(link)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise Conflict("This short code already exists.")

    return jsonify(serialize_link(link)), 201


@link_bp.route("/api/links/<link_id>", methods=["PATCH"])
@token_required
def update_link(current_user, link_id):
    link = get_owned_link(link_id, current_user.id)
    data = request.get_json(silent=True) or {}

    if "destinationUrl" in data:
        link.destination_url = _normalize_destination(data["destinationUrl"])
    if "name" in data:
        link.name = (data["name"] or "").strip() or None
    if "isActive" in data:
        if not isinstance(data["isActive"], bool):
            raise ValidationError("isActive must be a boolean")
        link.is_active = data["isActive"]

    link.updated_at = datetime.datetime.utcnow()
    db.session.commit()

    get_link_cache().delete(link.short_code)

    return jsonify(serialize_link(link))


@link_bp.route("/api/links/<link_id>", methods=["DELETE"])
@token_required
def delete_link(current_user, link_id):
    link = get_owned_link(link_id, current_user.id)
    short_code = link.short_code

    ScanEvent.query.filter_by(link_id=link.id).delete(synchronize_session=False)
    db.session.delete(link)
    db.session.commit()

    get_link_cache().delete(short_code)

    return "", 204


@link_bp.route("/api/links/<link_id>/qr.png", methods=["GET"])
@token_required
def link_qr(current_user, link_id):
    link = get_owned_link(link_id, current_user.id)
    png = render_qr_png(
        link.short_code,
        color_dark=request.args.get("color", "#000000"),
        style=request.args.get("style", "square"),
    )
    return Response(
        png,
        mimetype="image/png",
        headers={"Content-Disposition": f'inline; filename="qr-{link.short_code}.png"'},
    )
