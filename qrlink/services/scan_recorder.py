"""
Scan recording.

``record_scan`` appends one ScanEvent and bumps the link's denormalized
``scan_count``. ``ScanRecorder`` runs it on a small thread pool so that the
redirect handler never waits for either write; callers get nothing back.
"""

import threading
from concurrent.futures import ThreadPoolExecutor, wait as wait_futures

from flask import current_app
from sqlalchemy import func, select, update

from ..extensions import db
from ..models.scan_event import ScanEvent
from ..models.short_link import ShortLink
from ..utils.privacy import hash_client_id
from .geo_service import lookup_country


def record_scan(link_id: str, country: str | None, client_hash: str | None) -> None:
    """Persist one scan. Failures are logged and swallowed.

    The event insert and the counter increment are separate statements. If the
    increment fails the event log stays authoritative and
    ``reconcile_scan_counts`` repairs the counter.
    """
    try:
        db.session.add(ScanEvent(link_id=link_id, country=country or None, ip_hash=client_hash))
        db.session.commit()
    except Exception as exc:
        db.session.rollback()
        current_app.logger.warning(f"Failed to log scan event for link {link_id}: {exc}")
        return

    try:
        ShortLink.query.filter_by(id=link_id).update(
            {"scan_count": ShortLink.scan_count + 1},
            synchronize_session=False,
        )
        db.session.commit()
    except Exception as exc:
        db.session.rollback()
        current_app.logger.warning(f"Failed to increment scan count for link {link_id}: {exc}")


def reconcile_scan_counts(link_id: str | None = None) -> int:
    """Recompute scan_count from the event log. Returns the number of links fixed."""
    actual = (
        select(func.count(ScanEvent.id))
        .where(ScanEvent.link_id == ShortLink.id)
        .scalar_subquery()
    )
    stmt = update(ShortLink).where(ShortLink.scan_count != actual).values(scan_count=actual)
    if link_id:
        stmt = stmt.where(ShortLink.id == link_id)

    result = db.session.execute(stmt)
    db.session.commit()
    return result.rowcount


class ScanRecorder:
    def __init__(self, app, max_workers: int = 4, max_pending: int = 1000):
        self.app = app
        self.max_pending = max_pending
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="scan-recorder")
        # one slot per queued or running scan, freed when _run returns
        self._slots = threading.BoundedSemaphore(max_pending)
        self._pending = set()
        self._lock = threading.Lock()

    def detach(self, link_id: str, country: str | None, client_id: str) -> None:
        """Schedule a scan to be recorded and return immediately.

        When ``max_pending`` scans are already queued or running the scan is
        dropped, so a stalled database cannot grow the queue without bound.
        """
        if not self._slots.acquire(blocking=False):
            self.app.logger.warning(
                f"Scan recorder backlog full ({self.max_pending}), dropping scan for link {link_id}"
            )
            return

        try:
            future = self._executor.submit(self._run, link_id, country, client_id)
        except RuntimeError as exc:
            # executor already shut down
            self._slots.release()
            self.app.logger.warning(f"Scan recorder unavailable, dropping scan: {exc}")
            return

        with self._lock:
            self._pending.add(future)
        future.add_done_callback(self._forget)

    def _forget(self, future):
        with self._lock:
            self._pending.discard(future)

    def _run(self, link_id, country, client_id):
        try:
            with self.app.app_context():
                try:
                    if country is None:
                        country = lookup_country(client_id)
                    record_scan(link_id, country, hash_client_id(client_id))
                except Exception as exc:
                    self.app.logger.warning(f"Scan recording task failed: {exc}")
        finally:
            self._slots.release()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until every scheduled scan has finished. Returns False on timeout."""
        with self._lock:
            pending = list(self._pending)
        if not pending:
            return True
        _, not_done = wait_futures(pending, timeout=timeout)
        return not not_done

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)
