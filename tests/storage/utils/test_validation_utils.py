"""
Validation and Path Utility Tests

To run these tests:
    pytest tests/storage/utils/test_validation_utils.py -v
"""

import hashlib

import pytest

from storage.constants import VideoQuality
from storage.utils.path_utils import candidate_remote_keys, content_type_for, safe_filename
from storage.utils.validation_utils import (
    compute_checksum,
    validate_record,
    validate_video_file,
)

# =============================================================================
# FILE VALIDATION
# =============================================================================


@pytest.mark.unit
def test_validate_video_file(temp_storage_dir):
    """
    Test file sanity checks.

    Should:
    - Accept a readable video above the minimum size
    - Flag tiny files
    - Flag non-video extensions before reading
    """
    good = temp_storage_dir / "clip.mp4"
    good.write_bytes(b"x" * 64)
    tiny = temp_storage_dir / "tiny.mov"
    tiny.write_bytes(b"x")
    notes = temp_storage_dir / "notes.txt"
    notes.write_bytes(b"x" * 64)

    assert validate_video_file(good, min_size=16) == (VideoQuality.VALID, None)
    assert validate_video_file(tiny, min_size=16)[0] == VideoQuality.TOO_SMALL
    assert validate_video_file(notes, min_size=16)[0] == VideoQuality.INVALID_FORMAT


@pytest.mark.unit
def test_validate_missing_file_is_unreadable(temp_storage_dir):
    quality, error = validate_video_file(temp_storage_dir / "gone.mp4")

    assert quality == VideoQuality.UNREADABLE
    assert error


@pytest.mark.unit
def test_compute_checksum_matches_md5(temp_storage_dir):
    payload = bytes(range(256)) * 10
    path = temp_storage_dir / "clip.mp4"
    path.write_bytes(payload)

    assert compute_checksum(path, chunk_size=100) == hashlib.md5(payload).hexdigest()


# =============================================================================
# RECORD VALIDATION
# =============================================================================


@pytest.mark.unit
def test_validate_record_rejects_bad_types():
    result = validate_record({
        "id": "abc",
        "filename": "clip.mp4",
        "owner_client": "acme",
        "owner_project": "launch",
        "upload_timestamp": "yesterday",
        "size_bytes": -1,
        "download_count": "many",
    })

    assert result.valid is False
    assert "size_bytes cannot be negative" in result.errors
    assert "download_count must be a number" in result.errors
    assert any("ISO-8601" in e for e in result.errors)


@pytest.mark.unit
def test_validate_record_rejects_non_objects():
    assert validate_record(["not", "a", "record"]).valid is False


# =============================================================================
# PATH HELPERS
# =============================================================================


@pytest.mark.unit
def test_candidate_remote_keys_order():
    """
    Test key probing order.

    Should:
    - Try the recorded key first
    - Then the original extension
    - Never repeat a key
    """
    keys = candidate_remote_keys("abc", known_key="videos/abc/video.mkv", preferred_extension=".MOV")

    assert keys[0] == "videos/abc/video.mkv"
    assert keys[1] == "videos/abc/video.mov"
    assert len(keys) == len(set(keys))
    assert "videos/abc/video.mp4" in keys


@pytest.mark.unit
def test_content_type_and_safe_filename():
    assert content_type_for("Launch.MP4") == "video/mp4"
    assert content_type_for("clip.bin") == "application/octet-stream"
    assert safe_filename("a:b*c?.mp4") == "a_b_c_.mp4"
