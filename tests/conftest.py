import datetime

import pytest

from qrlink import create_app
from qrlink.extensions import db
from qrlink.models.scan_event import ScanEvent
from qrlink.models.short_link import ShortLink
from qrlink.models.user import User
from qrlink.services.rate_limiter import RateLimitResult
from qrlink.utils.jwt_helper import encode_token


class StubRateLimiter:
    def __init__(self, result=None):
        self.result = result or RateLimitResult(admitted=True, limit=100, remaining=99, reset=1_700_000_060_000)
        self.calls = []

    def admit(self, identifier):
        self.calls.append(identifier)
        return self.result


class FakeRedis:
    def __init__(self):
        self.store = {}

    def get(self, key):
        return self.store.get(key)

    def setex(self, key, ttl, value):
        self.store[key] = value

    def delete(self, key):
        self.store.pop(key, None)


class SpyRecorder:
    def __init__(self):
        self.calls = []

    def detach(self, link_id, country, client_id):
        self.calls.append((link_id, country, client_id))


@pytest.fixture
def app(tmp_path):
    class TestConfig:
        TESTING = True
        SECRET_KEY = "test-secret-key-with-enough-length-for-hs256"
        SQLALCHEMY_DATABASE_URI = f"sqlite:///{tmp_path / 'qrlink.db'}"
        SQLALCHEMY_TRACK_MODIFICATIONS = False
        SQLALCHEMY_ENGINE_OPTIONS = {"connect_args": {"timeout": 30}}
        BASE_URL = "http://qr.test"
        REDIS_URL = None
        GEO_COUNTRY_HEADER = "CF-IPCountry"
        GEO_LOOKUP_URL = None
        SCAN_RECORDER_WORKERS = 2
        EXPORT_PAGE_SIZE = 1000

    app = create_app(TestConfig)
    app.extensions["qrlink.rate_limiter"] = StubRateLimiter()
    # tests may swap in a SpyRecorder; the real pool still needs shutting down
    scan_recorder = app.extensions["qrlink.scan_recorder"]

    yield app

    scan_recorder.shutdown()
    with app.app_context():
        db.session.remove()
        db.engine.dispose()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def recorder(app):
    return app.extensions["qrlink.scan_recorder"]


def make_user(app, email="owner@example.com"):
    with app.app_context():
        user = User(email=email, client_id=f"cid-{email}", client_secret="s3cret")
        db.session.add(user)
        db.session.commit()
        return user.id


def make_link(app, user_id, code="abc123", destination="https://example.com", active=True):
    with app.app_context():
        link = ShortLink(user_id=user_id, short_code=code, destination_url=destination, is_active=active)
        db.session.add(link)
        db.session.commit()
        return link.id


def add_scans(app, link_id, scans):
    """scans: iterable of (datetime, country)."""
    with app.app_context():
        for scanned_at, country in scans:
            db.session.add(ScanEvent(link_id=link_id, scanned_at=scanned_at, country=country, ip_hash="x" * 64))
        db.session.commit()


def auth_headers(app, user_id):
    with app.app_context():
        return {"Authorization": f"Bearer {encode_token(user_id)}"}


@pytest.fixture
def owner_id(app):
    return make_user(app)


@pytest.fixture
def utc_scans():
    return [
        (datetime.datetime(2024, 1, 15, 10, 30, 0), "US"),
        (datetime.datetime(2024, 1, 15, 11, 45, 0), "GB"),
        (datetime.datetime(2024, 1, 16, 23, 59, 59, 999000), None),
        (datetime.datetime(2024, 1, 31, 18, 0, 0), "US"),
        (datetime.datetime(2024, 2, 1, 0, 0, 0), "FR"),
    ]
