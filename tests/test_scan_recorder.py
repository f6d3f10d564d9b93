import logging
import threading
import time

from conftest import add_scans, make_link
from qrlink.extensions import db
from qrlink.models.scan_event import ScanEvent
from qrlink.models.short_link import ShortLink
from qrlink.services import scan_recorder as scan_recorder_module
from qrlink.services.scan_recorder import ScanRecorder, reconcile_scan_counts, record_scan
from qrlink.utils.privacy import hash_client_id


def _events(app, link_id):
    with app.app_context():
        return ScanEvent.query.filter_by(link_id=link_id).all()


def _scan_count(app, link_id):
    with app.app_context():
        return db.session.get(ShortLink, link_id).scan_count


def test_record_scan_inserts_event_and_increments_counter(app, owner_id):
    link_id = make_link(app, owner_id)

    with app.app_context():
        record_scan(link_id, "US", "h" * 64)
        record_scan(link_id, None, "h" * 64)

    events = _events(app, link_id)
    assert len(events) == 2
    assert sorted(e.country or "" for e in events) == ["", "US"]
    assert all(e.scanned_at is not None for e in events)
    assert _scan_count(app, link_id) == 2


def test_record_scan_swallows_insert_failure(app, owner_id, monkeypatch, caplog):
    link_id = make_link(app, owner_id)

    def broken_commit():
        raise RuntimeError("connection lost")

    with app.app_context():
        monkeypatch.setattr(db.session, "commit", broken_commit)
        with caplog.at_level(logging.WARNING):
            record_scan(link_id, "US", "h" * 64)
        monkeypatch.undo()

    assert "Failed to log scan event" in caplog.text
    assert _events(app, link_id) == []
    assert _scan_count(app, link_id) == 0


def test_detach_returns_immediately_and_records_in_background(app, recorder, owner_id, monkeypatch):
    link_id = make_link(app, owner_id)
    release = threading.Event()
    original = scan_recorder_module.record_scan

    def slow_record(*args):
        release.wait(5)
        original(*args)

    monkeypatch.setattr(scan_recorder_module, "record_scan", slow_record)

    assert recorder.detach(link_id, "DE", "198.51.100.4") is None
    assert _events(app, link_id) == []

    release.set()
    assert recorder.wait(timeout=5)

    events = _events(app, link_id)
    assert len(events) == 1
    assert events[0].country == "DE"
    assert events[0].ip_hash == hash_client_id("198.51.100.4")
    assert _scan_count(app, link_id) == 1


def test_background_task_errors_are_contained(app, recorder, owner_id, monkeypatch, caplog):
    link_id = make_link(app, owner_id)

    def explode(*args):
        raise RuntimeError("geo exploded")

    monkeypatch.setattr(scan_recorder_module, "lookup_country", explode)

    with caplog.at_level(logging.WARNING):
        recorder.detach(link_id, None, "198.51.100.4")
        assert recorder.wait(timeout=5)

    assert "Scan recording task failed" in caplog.text
    assert _events(app, link_id) == []


def test_detach_after_shutdown_drops_scan(app, recorder, owner_id):
    link_id = make_link(app, owner_id)
    recorder.shutdown()

    recorder.detach(link_id, "US", "198.51.100.4")

    assert _events(app, link_id) == []


def test_concurrent_scans_do_not_lose_increments(app, recorder, owner_id):
    link_id = make_link(app, owner_id)

    for i in range(20):
        recorder.detach(link_id, "US", f"10.0.0.{i}")
    assert recorder.wait(timeout=10)

    assert len(_events(app, link_id)) == 20
    assert _scan_count(app, link_id) == 20


def test_reconcile_repairs_drifted_counters(app, owner_id, utc_scans):
    drifted = make_link(app, owner_id, code="drift")
    in_sync = make_link(app, owner_id, code="sync")
    add_scans(app, drifted, utc_scans[:3])

    with app.app_context():
        assert reconcile_scan_counts() == 1

    assert _scan_count(app, drifted) == 3
    assert _scan_count(app, in_sync) == 0

    with app.app_context():
        assert reconcile_scan_counts() == 0
        assert reconcile_scan_counts(in_sync) == 0


def test_full_backlog_drops_scan_without_blocking(app, owner_id, monkeypatch, caplog):
    link_id = make_link(app, owner_id)
    recorder = ScanRecorder(app, max_workers=1, max_pending=2)
    release = threading.Event()
    original = scan_recorder_module.record_scan

    def stalled_record(*args):
        release.wait(5)
        original(*args)

    monkeypatch.setattr(scan_recorder_module, "record_scan", stalled_record)

    try:
        recorder.detach(link_id, "US", "10.0.0.1")
        recorder.detach(link_id, "US", "10.0.0.2")

        started = time.monotonic()
        with caplog.at_level(logging.WARNING):
            assert recorder.detach(link_id, "US", "10.0.0.3") is None
        assert time.monotonic() - started < 1
        assert "backlog full" in caplog.text
        assert "10.0.0.3" not in caplog.text

        release.set()
        assert recorder.wait(timeout=5)
        assert len(_events(app, link_id)) == 2

        # room again once the backlog drains
        recorder.detach(link_id, "US", "10.0.0.4")
        assert recorder.wait(timeout=5)
    finally:
        release.set()
        recorder.shutdown()

    assert len(_events(app, link_id)) == 3
    assert _scan_count(app, link_id) == 3
