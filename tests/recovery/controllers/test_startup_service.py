"""
Startup Service Tests

To run these tests:
    pytest tests/recovery/controllers/test_startup_service.py -v
"""

import pytest

from recovery.controllers.startup_service import StartupService
from upload.factory import create_upload_controller


@pytest.fixture
def startup(recovery_storage, orphan_recovery, background):
    controller = create_upload_controller(storage=recovery_storage, orphan_recovery=orphan_recovery)
    return StartupService(recovery_storage, controller, orphan_recovery, background)


@pytest.mark.unit
def test_run_startup_tasks(startup, write_video):
    """
    Test the startup sequence.

    Should:
    - Recover orphans left by a previous run
    - Quarantine invalid ones
    - Run every step successfully
    """
    write_video("good", "acme-launch.mp4")
    write_video("bad", "clip.mp4", size=2)

    report = startup.run_startup_tasks(start_background=False)

    assert report.success is True
    assert report.steps["orphan_recovery"]["recovered"] == 1
    assert report.steps["invalid_orphans"]["quarantined"] == 1
    assert "background_recovery" not in report.steps


@pytest.mark.unit
def test_failing_step_does_not_stop_the_rest(startup, monkeypatch):
    def broken_cleanup(max_age_hours=None):
        raise OSError("state dir unreadable")

    monkeypatch.setattr(
        startup.upload_controller.state_manager, "cleanup_expired_uploads", broken_cleanup
    )

    report = startup.run_startup_tasks(start_background=False)

    assert report.success is False
    assert report.steps["expired_uploads"]["success"] is False
    assert "unreadable" in report.steps["expired_uploads"]["error"]
    assert report.steps["invalid_orphans"]["success"] is True


@pytest.mark.unit
def test_system_health(startup, recovery_storage):
    recovery_storage.save_video(b"v" * 512, "launch.mp4", "acme", "launch")
    startup.run_startup_tasks(start_background=False)

    health = startup.get_system_health()

    assert health["healthy"] is True
    assert health["videos"]["total"] == 1
    assert health["active_uploads"] == 0
    assert health["last_orphan_scan"] is not None
    assert health["background_recovery"]["is_running"] is False
