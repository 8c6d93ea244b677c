"""
Background Recovery Service

Periodically runs orphan recovery (and upload-state maintenance when an
upload controller is attached) on a daemon thread.

Constructed explicitly and owned by the service that starts it.
"""

import logging
import threading
from datetime import datetime
from typing import Optional

from config.settings import RECOVERY_INTERVAL_MINUTES, RECOVERY_THREAD_JOIN_TIMEOUT
from recovery.controllers.orphan_recovery import OrphanRecoveryService


class BackgroundRecoveryService:
    """
    Periodic recovery worker.

    Usage:
        background = BackgroundRecoveryService(recovery, upload_controller)
        background.start(interval_minutes=5)
        ...
        background.stop()
    """

    def __init__(
        self,
        orphan_recovery: OrphanRecoveryService,
        upload_controller=None,
        interval_minutes: Optional[float] = None,
    ):
        self.logger = logging.getLogger(__name__)
        self.orphan_recovery = orphan_recovery
        self.upload_controller = upload_controller
        self.default_interval = interval_minutes or RECOVERY_INTERVAL_MINUTES

        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._check_lock = threading.Lock()

        self._interval_minutes: Optional[float] = None
        self.last_check: Optional[datetime] = None
        self.checks_run = 0

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def start(self, interval_minutes: Optional[float] = None) -> bool:
        """
        Start the worker thread.

        Returns:
            True if started, False if it was already running
        """
        if self.is_running:
            self.logger.debug("Background recovery already running")
            return False

        self._interval_minutes = interval_minutes or self.default_interval
        # Fresh event per run; a lingering worker keeps its own, already set
        self._stop_event = threading.Event()
        self._thread = threading.Thread(
            target=self._worker,
            args=(self._stop_event, self._interval_minutes),
            daemon=True,
            name="BackgroundRecovery",
        )
        self._thread.start()

        self.logger.info(
            f"Background recovery started (every {self._interval_minutes} min)"
        )
        return True

    def stop(self) -> bool:
        """
        Signal the worker and wait briefly for it to exit.

        A worker still busy with a check stays referenced, and start()
        refuses until it has exited.

        Returns:
            True if no worker is left running
        """
        if not self.is_running:
            return True

        self._stop_event.set()
        self._thread.join(timeout=RECOVERY_THREAD_JOIN_TIMEOUT)
        if self._thread.is_alive():
            self.logger.warning("Background recovery thread did not stop in time")
            return False

        self._thread = None
        self._interval_minutes = None
        self.logger.info("Background recovery stopped")
        return True

    def _worker(self, stop_event: threading.Event, interval_minutes: float) -> None:
        self.logger.info("Background recovery thread started")

        while not stop_event.is_set():
            try:
                self.force_recovery_check()
            except Exception as e:
                self.logger.error(f"Background recovery check failed: {e}", exc_info=True)

            if stop_event.wait(interval_minutes * 60):
                break

        self.logger.info("Background recovery thread stopped")

    # =========================================================================
    # CHECKS
    # =========================================================================

    def force_recovery_check(self) -> dict:
        """
        Run one recovery pass immediately, on the calling thread.

        Returns:
            Dict with orphans_found, recovered and failed
        """
        with self._check_lock:
            orphans = self.orphan_recovery.scan_for_orphans()
            summary = self.orphan_recovery.recover_all_orphans()

            if self.upload_controller is not None:
                try:
                    self.upload_controller.run_maintenance(run_recovery=False)
                except Exception as e:
                    self.logger.error(f"Upload maintenance failed: {e}", exc_info=True)

            self.last_check = datetime.now()
            self.checks_run += 1

        result = {
            "orphans_found": len(orphans),
            "recovered": summary.recovered,
            "failed": summary.failed,
        }
        if orphans:
            self.logger.info(f"Recovery check: {result}")
        return result

    def get_status(self) -> dict:
        return {
            "is_running": self.is_running,
            "interval_minutes": self._interval_minutes if self.is_running else None,
            "last_check": self.last_check.isoformat() if self.last_check else None,
            "checks_run": self.checks_run,
        }
