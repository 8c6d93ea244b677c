"""
Upload Controller Tests

Tests for the upload orchestrator showing:
- Idempotent retries
- Failure recovery from a truncated payload
- Resume and maintenance

To run these tests:
    pytest tests/upload/controllers/test_upload_controller.py -v
"""

import io

import pytest

from storage.constants import StorageStatus
from storage.interfaces.storage_interface import IncompleteUploadError
from upload.constants import UploadOutcome, UploadStateStatus
from upload.controllers.upload_controller import within_tolerance
from upload.interfaces.uploader_interface import UploaderError, UploadStateNotFoundError

PAYLOAD = bytes(i % 251 for i in range(1000))


# =============================================================================
# UPLOAD TESTS
# =============================================================================


@pytest.mark.unit
def test_upload_is_stored_and_mirrored(controller):
    """
    Test a clean upload.

    Should:
    - Return a stored outcome
    - Persist metadata and mirror it
    - Complete the upload state
    """
    result = controller.handle_upload(io.BytesIO(PAYLOAD), "acme", "launch", "launch.mp4", len(PAYLOAD))

    assert result.outcome == UploadOutcome.STORED
    assert result.record.size_bytes == len(PAYLOAD)
    assert result.record.storage_status == StorageStatus.MIRRORED

    progress = controller.get_upload_progress(result.upload_id)
    assert progress["status"] == "completed"
    assert progress["video_id"] == result.record.id
    assert progress["percent"] == 100.0


@pytest.mark.unit
def test_retry_of_same_upload_is_idempotent(controller):
    """
    Test idempotence.

    Should:
    - Return the first record for a matching retry
    - Not read the second stream
    - Keep a single record in metadata
    """
    first = controller.handle_upload_with_recovery(
        io.BytesIO(PAYLOAD), "acme", "launch", "launch.mp4", len(PAYLOAD)
    )

    retry_stream = io.BytesIO(PAYLOAD)
    result = controller.handle_upload(retry_stream, "acme", "launch", "launch.mp4", len(PAYLOAD) + 20)

    assert result.outcome == UploadOutcome.EXISTING
    assert result.record.id == first.id
    assert retry_stream.tell() == 0
    assert len(controller.metadata.list_all()) == 1


@pytest.mark.unit
def test_different_filename_is_not_a_duplicate(controller):
    controller.handle_upload_with_recovery(io.BytesIO(PAYLOAD), "acme", "launch", "launch.mp4", len(PAYLOAD))

    result = controller.handle_upload(io.BytesIO(PAYLOAD), "acme", "launch", "teaser.mp4", len(PAYLOAD))

    assert result.outcome == UploadOutcome.STORED
    assert len(controller.metadata.list_all()) == 2


@pytest.mark.unit
def test_truncated_upload_is_recovered(controller):
    """
    Test failure recovery.

    Should:
    - Credit the partial payload (95% of declared size)
    - Patch owner and filename onto the recovered record
    - Complete the state, keeping the original error
    """
    result = controller.handle_upload(
        io.BytesIO(PAYLOAD[:950]), "acme", "launch", "launch.mp4", len(PAYLOAD)
    )

    assert result.outcome == UploadOutcome.RECOVERED
    assert result.record.owner_client == "acme"
    assert result.record.owner_project == "launch"
    assert result.record.filename == "launch.mp4"
    assert result.record.size_bytes == 950

    state = controller.state_manager.load_state(result.upload_id)
    assert state.status == UploadStateStatus.COMPLETED
    assert state.video_id == result.record.id
    assert state.retry_count == 1
    assert state.last_error


@pytest.mark.unit
def test_badly_truncated_upload_raises(controller):
    """
    Test unrecoverable failure.

    Should:
    - Re-raise the original error
    - Leave the state failed
    """
    with pytest.raises(IncompleteUploadError):
        controller.handle_upload_with_recovery(
            io.BytesIO(PAYLOAD[:500]), "acme", "launch", "launch.mp4", len(PAYLOAD)
        )

    states = controller.state_manager.list_states()
    assert len(states) == 1
    assert states[0].status == UploadStateStatus.FAILED
    assert states[0].retry_count == 1


class DisconnectingStream:
    """Serves the first `limit` bytes, then fails like a dropped client"""

    def __init__(self, data: bytes, limit: int):
        self._buffer = io.BytesIO(data[:limit])

    def read(self, size: int = -1) -> bytes:
        chunk = self._buffer.read(size)
        if not chunk:
            raise ValueError("client disconnected")
        return chunk


@pytest.mark.unit
def test_client_disconnect_is_recorded_and_recovered(controller):
    """
    Test a stream that raises a non-storage error.

    Should:
    - Fail the upload state
    - Still credit the 95% partial payload
    """
    result = controller.handle_upload(
        DisconnectingStream(PAYLOAD, 950), "acme", "launch", "launch.mp4", len(PAYLOAD)
    )

    assert result.outcome == UploadOutcome.RECOVERED
    assert result.record.size_bytes == 950

    state = controller.state_manager.load_state(result.upload_id)
    assert state.status == UploadStateStatus.COMPLETED
    assert state.retry_count == 1
    assert "received 950 of 1000 bytes" in state.last_error


@pytest.mark.unit
def test_unexpected_error_marks_state_failed(controller, monkeypatch):
    """
    Test an error raised outside the storage layer.

    Should:
    - Re-raise the original exception
    - Leave the state failed with the error recorded
    """

    def explode(*args, **kwargs):
        raise RuntimeError("socket gone")

    monkeypatch.setattr(controller.uploader, "persist_stream", explode)

    with pytest.raises(RuntimeError):
        controller.handle_upload(io.BytesIO(PAYLOAD), "acme", "launch", "launch.mp4", len(PAYLOAD))

    states = controller.state_manager.list_states()
    assert len(states) == 1
    assert states[0].status == UploadStateStatus.FAILED
    assert states[0].retry_count == 1
    assert states[0].last_error == "socket gone"


# =============================================================================
# RESUME TESTS
# =============================================================================


@pytest.mark.unit
def test_resume_failed_upload(controller):
    """
    Test resume.

    Should:
    - Reuse owners, filename and size from the failed state
    - Complete the same upload id
    """
    with pytest.raises(IncompleteUploadError):
        controller.handle_upload(io.BytesIO(PAYLOAD[:300]), "acme", "launch", "launch.mp4", len(PAYLOAD))
    upload_id = controller.state_manager.list_states()[0].upload_id

    result = controller.resume_upload(upload_id, io.BytesIO(PAYLOAD))

    assert result.outcome == UploadOutcome.STORED
    assert result.upload_id == upload_id
    assert result.record.owner_client == "acme"
    assert result.record.size_bytes == len(PAYLOAD)
    assert controller.state_manager.load_state(upload_id).status == UploadStateStatus.COMPLETED


@pytest.mark.unit
def test_resume_rejections(controller):
    """
    Test resume guards.

    Should:
    - Reject unknown ids
    - Reject completed uploads
    - Reject uploads out of retries
    """
    with pytest.raises(UploadStateNotFoundError):
        controller.resume_upload("ghost", io.BytesIO(PAYLOAD))

    done = controller.handle_upload(io.BytesIO(PAYLOAD), "acme", "launch", "launch.mp4", len(PAYLOAD))
    with pytest.raises(UploaderError):
        controller.resume_upload(done.upload_id, io.BytesIO(PAYLOAD))

    state = controller.state_manager.create_state("tired", "x.mp4", "acme", "launch", total_size=10)
    state.status = UploadStateStatus.FAILED
    state.retry_count = state.max_retries
    controller.state_manager.save_state(state)
    with pytest.raises(UploaderError):
        controller.resume_upload("tired", io.BytesIO(b"x" * 10))


# =============================================================================
# MAINTENANCE TESTS
# =============================================================================


@pytest.mark.unit
def test_run_maintenance(controller, write_video, storage_config):
    """
    Test a maintenance pass.

    Should:
    - Recover a valid orphan
    - Quarantine a too-small orphan
    """
    write_video("good", "acme-launch.mp4", size=2048)
    write_video("junk", "clip.mp4", size=4)

    report = controller.run_maintenance()

    assert report.recovery.recovered == 1
    assert report.recovery.failed == 1
    assert report.quarantined == 1
    assert report.errors == []
    assert controller.metadata.load("good").owner_client == "acme"
    assert (storage_config.quarantine_dir / "junk_clip.mp4").exists()
    assert not (storage_config.videos_dir / "junk").exists()


@pytest.mark.unit
def test_within_tolerance():
    assert within_tolerance(1040, 1000, 0.05) is True
    assert within_tolerance(1060, 1000, 0.05) is False
    assert within_tolerance(905, 1000, 0.10) is True
    assert within_tolerance(0, 0, 0.10) is True
    assert within_tolerance(1, 0, 0.10) is False
