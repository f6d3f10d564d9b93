from flask import Blueprint

from ..services.redirect_service import handle_redirect
from ..utils.response import api_error

redirect_bp = Blueprint("redirect", __name__)


@redirect_bp.route("/go/<code>")
def go(code):
    return handle_redirect(code)


@redirect_bp.route("/go/<code>/not-found")
def code_not_found(code):
    return api_error("QR code not found", 404)


@redirect_bp.route("/go/<code>/gone")
def code_gone(code):
    return api_error("QR code deactivated", 410)
