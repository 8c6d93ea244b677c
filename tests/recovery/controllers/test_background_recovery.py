"""
Background Recovery Tests

To run these tests:
    pytest tests/recovery/controllers/test_background_recovery.py -v
"""

import threading
import time

import pytest


@pytest.mark.unit
def test_force_recovery_check_counts(background, write_video):
    """
    Test one forced pass.

    Should:
    - Report orphans found, recovered and failed
    - Stamp last_check
    """
    write_video("good", "clip.mp4")
    write_video("bad", "tiny.mp4", size=1)

    result = background.force_recovery_check()

    assert result == {"orphans_found": 2, "recovered": 1, "failed": 1}
    status = background.get_status()
    assert status["checks_run"] == 1
    assert status["last_check"] is not None


@pytest.mark.unit
def test_start_and_stop(background):
    """
    Test lifecycle.

    Should:
    - Start once (second start is refused)
    - Run the first check right away
    - Report interval only while running
    """
    assert background.start(interval_minutes=30) is True
    assert background.start() is False
    assert background.get_status()["interval_minutes"] == 30

    deadline = time.time() + 5
    while background.checks_run == 0 and time.time() < deadline:
        time.sleep(0.01)
    assert background.checks_run >= 1

    background.stop()

    status = background.get_status()
    assert status["is_running"] is False
    assert status["interval_minutes"] is None


@pytest.mark.unit
def test_maintenance_failure_does_not_break_check(background):
    class BrokenController:
        def run_maintenance(self, run_recovery=True):
            raise RuntimeError("state dir gone")

    background.upload_controller = BrokenController()

    result = background.force_recovery_check()

    assert result["orphans_found"] == 0
    assert background.checks_run == 1


@pytest.mark.unit
def test_slow_worker_blocks_restart(background, orphan_recovery, monkeypatch):
    """
    Test stopping while a check is still running.

    Should:
    - Report the worker still alive when the join times out
    - Refuse to start a second worker next to it
    - Allow a restart once the old worker has exited
    """
    entered = threading.Event()
    release = threading.Event()
    scan = orphan_recovery.scan_for_orphans

    def slow_scan():
        entered.set()
        release.wait(5)
        return scan()

    monkeypatch.setattr(orphan_recovery, "scan_for_orphans", slow_scan)
    monkeypatch.setattr(
        "recovery.controllers.background_recovery.RECOVERY_THREAD_JOIN_TIMEOUT", 0.05
    )

    background.start()
    assert entered.wait(5)

    assert background.stop() is False
    assert background.is_running is True
    assert background.start() is False

    release.set()
    deadline = time.time() + 5
    while background.is_running and time.time() < deadline:
        time.sleep(0.01)
    assert background.is_running is False

    assert background.start() is True
    workers = [t for t in threading.enumerate() if t.name == "BackgroundRecovery" and t.is_alive()]
    assert len(workers) == 1
