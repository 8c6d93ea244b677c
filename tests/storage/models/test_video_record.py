"""
Video Record Model Tests

To run these tests:
    pytest tests/storage/models/test_video_record.py -v
"""

import pytest

from storage.constants import CompressionStatus, StorageStatus
from storage.models.video_record import VideoRecord


@pytest.mark.unit
def test_compression_lifecycle_survives_storage(metadata_manager, make_record):
    """
    Test compression tracking.

    Should:
    - Start from the record size
    - Record the result size and ratio
    - Round-trip through the metadata store
    """
    record = make_record("abc", size_bytes=1000)
    record.start_compression()
    record.complete_compression(result_size=250)
    metadata_manager.save(record)

    loaded = metadata_manager.load("abc")

    assert loaded.compression.status == CompressionStatus.COMPLETED
    assert loaded.compression.original_size == 1000
    assert loaded.compression.ratio == 0.25
    assert loaded.compression.completed_at is not None


@pytest.mark.unit
def test_fail_compression_without_start(make_record):
    record = make_record()

    record.fail_compression("encoder crashed")

    assert record.compression.status == CompressionStatus.FAILED
    assert record.compression.error == "encoder crashed"
    assert record.compression.ratio is None


@pytest.mark.unit
def test_from_dict_defaults():
    """Optional fields fall back to defaults for older records"""
    record = VideoRecord.from_dict({
        "id": "abc",
        "filename": "clip.mp4",
        "owner_client": "acme",
        "owner_project": "launch",
        "size_bytes": 10,
        "upload_timestamp": "2024-05-01T10:00:00",
    })

    assert record.storage_status == StorageStatus.LOCAL_ONLY
    assert record.download_count == 0
    assert record.is_active is True
    assert record.compression is None
    assert record.has_remote_copy is False


@pytest.mark.unit
def test_mark_mirrored(make_record):
    record = make_record()

    record.mark_mirrored("videos/video-1/video.mp4")

    assert record.storage_status == StorageStatus.MIRRORED
    assert record.has_remote_copy is True
