from flask import Blueprint, jsonify

core_bp = Blueprint("core", __name__)


@core_bp.route("/")
def root():
    return jsonify({"service": "qrlink", "redirect": "/go/<code>"})


@core_bp.route("/health")
def health():
    return {"status": "ok"}, 200
