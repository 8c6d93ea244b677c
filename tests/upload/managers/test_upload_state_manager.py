"""
Upload State Manager Tests

Tests for upload state persistence:
- Lifecycle transitions
- No implicit state creation
- Expiry of terminal states

To run these tests:
    pytest tests/upload/managers/test_upload_state_manager.py -v
"""

from datetime import datetime, timedelta

import pytest

from upload.constants import UploadStateStatus
from upload.interfaces.uploader_interface import UploadStateNotFoundError


def age_state(state_manager, upload_id: str, hours: float) -> None:
    state = state_manager.load_state(upload_id)
    state.last_activity = datetime.now() - timedelta(hours=hours)
    state_manager.save_state(state)


# =============================================================================
# LIFECYCLE TESTS
# =============================================================================


@pytest.mark.unit
def test_create_state_is_active(state_manager, storage_config):
    """
    Test state creation.

    Should:
    - Persist <state>/<upload_id>.json
    - Start active with nothing uploaded
    """
    state = state_manager.create_state("up-1", "launch.mp4", "acme", "launch", total_size=1000)

    assert (storage_config.state_dir / "up-1.json").exists()
    assert state.status == UploadStateStatus.ACTIVE
    assert state_manager.load_state("up-1").uploaded_size == 0


@pytest.mark.unit
def test_progress_then_complete(state_manager):
    """
    Test the happy path.

    Should:
    - Record progress
    - Attach the video id on completion
    - Report 100% once completed
    """
    state_manager.create_state("up-1", "launch.mp4", "acme", "launch", total_size=1000)
    state_manager.update_progress("up-1", 400)

    assert state_manager.get_upload_progress("up-1")["percent"] == 40.0

    state = state_manager.mark_complete("up-1", "video-9")

    assert state.status == UploadStateStatus.COMPLETED
    assert state.video_id == "video-9"
    assert state_manager.get_upload_progress("up-1")["percent"] == 100.0


@pytest.mark.unit
def test_mark_failed_counts_retries(state_manager):
    state_manager.create_state("up-1", "launch.mp4", "acme", "launch", total_size=1000)

    state_manager.mark_failed("up-1", "connection reset")
    state = state_manager.mark_failed("up-1", "connection reset again")

    assert state.status == UploadStateStatus.FAILED
    assert state.retry_count == 2
    assert state.last_error == "connection reset again"


@pytest.mark.unit
@pytest.mark.parametrize(
    "transition",
    [
        lambda m: m.update_progress("ghost", 10),
        lambda m: m.mark_complete("ghost", "video-1"),
        lambda m: m.mark_failed("ghost", "boom"),
    ],
)
def test_transitions_never_create_state(state_manager, transition):
    with pytest.raises(UploadStateNotFoundError):
        transition(state_manager)

    assert state_manager.load_state("ghost") is None


@pytest.mark.unit
def test_unknown_progress_is_none(state_manager):
    assert state_manager.get_upload_progress("ghost") is None


@pytest.mark.unit
def test_unreadable_state_is_skipped(state_manager, storage_config):
    (storage_config.state_dir / "broken.json").write_text("{ nope")
    state_manager.create_state("up-1", "launch.mp4", "acme", "launch", total_size=10)

    assert [s.upload_id for s in state_manager.list_states()] == ["up-1"]


# =============================================================================
# EXPIRY TESTS
# =============================================================================


@pytest.mark.unit
def test_cleanup_expired_uploads(state_manager):
    """
    Test expiry.

    Should:
    - Remove terminal states idle longer than the limit
    - Keep recent terminal states
    - Keep active states however old
    """
    state_manager.create_state("old-done", "a.mp4", "acme", "launch", total_size=10)
    state_manager.mark_complete("old-done", "v1")
    age_state(state_manager, "old-done", 25)

    state_manager.create_state("new-failed", "b.mp4", "acme", "launch", total_size=10)
    state_manager.mark_failed("new-failed", "boom")
    age_state(state_manager, "new-failed", 1)

    state_manager.create_state("old-active", "c.mp4", "acme", "launch", total_size=10)
    age_state(state_manager, "old-active", 72)

    removed = state_manager.cleanup_expired_uploads(max_age_hours=24)

    assert removed == 1
    assert state_manager.load_state("old-done") is None
    assert state_manager.load_state("new-failed") is not None
    assert state_manager.load_state("old-active") is not None
    assert [s.upload_id for s in state_manager.get_active_uploads()] == ["old-active"]
