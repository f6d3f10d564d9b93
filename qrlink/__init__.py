# qrlink/__init__.py

from flask import Flask
from werkzeug.middleware.proxy_fix import ProxyFix

from qrlink.extensions import db, cors, init_redis
from qrlink.utils.error_handler import register_error_handlers
from qrlink.repositories.link_repository import LinkCache
from qrlink.services.rate_limiter import build_rate_limiter
from qrlink.services.scan_recorder import ScanRecorder
from qrlink.commands import commands_bp
from qrlink.routes.core_routes import core_bp
from qrlink.routes.auth_routes import auth_bp
from qrlink.routes.redirect_routes import redirect_bp
from qrlink.routes.link_routes import link_bp
from qrlink.routes.analytics_routes import analytics_bp


def create_app(config_object=None) -> Flask:
    app = Flask(__name__)

    # Load configuration
    if config_object is None:
        from qrlink.config import Config
        config_object = Config
    app.config.from_object(config_object)
    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Initialize extensions
    cors.init_app(app)
    db.init_app(app)

    # Counter store, shared by the rate limiter and the link cache
    redis_client = init_redis(app)
    app.extensions["qrlink.redis"] = redis_client
    app.extensions["qrlink.rate_limiter"] = build_rate_limiter(app, redis_client)
    app.extensions["qrlink.link_cache"] = LinkCache(
        redis_client, ttl=int(app.config.get("REDIS_TTL", 3600)), logger=app.logger
    )
    app.extensions["qrlink.scan_recorder"] = ScanRecorder(
        app,
        max_workers=int(app.config.get("SCAN_RECORDER_WORKERS", 4)),
        max_pending=int(app.config.get("SCAN_RECORDER_MAX_PENDING", 1000)),
    )

    # Fix proxy headers
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1)

    register_error_handlers(app)

    # Register blueprints
    app.register_blueprint(core_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(redirect_bp)
    app.register_blueprint(link_bp)
    app.register_blueprint(analytics_bp)
    app.register_blueprint(commands_bp)

    # Create tables if not exists
    with app.app_context():
        from qrlink.models.user import User
        from qrlink.models.short_link import ShortLink
        from qrlink.models.scan_event import ScanEvent
        db.create_all()

    return app
