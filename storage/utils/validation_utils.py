"""
Validation Utilities

Cheap sanity checks for video files and metadata records.
No codec or container inspection: extension, size and readability only.
"""

import hashlib
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Optional, Tuple

from config.settings import MIN_ORPHAN_SIZE_BYTES, STREAM_CHUNK_SIZE
from storage.constants import StorageStatus, VideoQuality
from storage.models.video_record import ValidationResult, VideoRecord
from storage.utils.path_utils import is_video_file


logger = logging.getLogger(__name__)

REQUIRED_RECORD_FIELDS = [
    "id",
    "filename",
    "owner_client",
    "owner_project",
    "upload_timestamp",
    "size_bytes",
]


def validate_video_file(
    file_path: Path,
    min_size: int = MIN_ORPHAN_SIZE_BYTES,
) -> Tuple[VideoQuality, Optional[str]]:
    """
    Validate a video file on disk.

    Performs multiple checks:
    1. Extension is a recognised video format
    2. File can be stat'ed and opened
    3. File size >= minimum

    Args:
        file_path: Path to video file
        min_size: Minimum valid file size in bytes

    Returns:
        Tuple of (VideoQuality, error_message)

    Example:
        quality, error = validate_video_file(Path("/srv/videos/abc/video.mp4"))
        if quality != VideoQuality.VALID:
            print(f"Video problem: {error}")
    """
    if not is_video_file(file_path):
        return (
            VideoQuality.INVALID_FORMAT,
            f"Unsupported extension: {file_path.suffix or '(none)'}",
        )

    try:
        file_size = file_path.stat().st_size
        with open(file_path, "rb") as f:
            f.read(1)
    except OSError as e:
        return VideoQuality.UNREADABLE, f"Cannot read file: {e}"

    if file_size < min_size:
        return (
            VideoQuality.TOO_SMALL,
            f"File too small: {file_size} bytes (minimum: {min_size} bytes)",
        )

    return VideoQuality.VALID, None


def compute_checksum(file_path: Path, chunk_size: int = STREAM_CHUNK_SIZE) -> str:
    """
    Compute MD5 hex digest of a file, reading in chunks.

    Raises:
        OSError: If the file cannot be read
    """
    digest = hashlib.md5()
    with open(file_path, "rb") as f:
        for chunk in iter(lambda: f.read(chunk_size), b""):
            digest.update(chunk)
    return digest.hexdigest()


def validate_record(record: Any) -> ValidationResult:
    """
    Validate a metadata record (VideoRecord or raw dict).

    Checks required fields, numeric counters, status enum and timestamp.
    The metadata store does not call this on write; callers validate first.

    Returns:
        ValidationResult(valid, errors)
    """
    data = record.to_dict() if isinstance(record, VideoRecord) else record
    if not isinstance(data, dict):
        return ValidationResult(False, ["Record must be an object"])

    errors = []
    for field_name in REQUIRED_RECORD_FIELDS:
        value = data.get(field_name)
        if value is None or value == "":
            errors.append(f"Missing required field: {field_name}")

    size = data.get("size_bytes")
    if size is not None and (not isinstance(size, int) or isinstance(size, bool)):
        errors.append("size_bytes must be a number")
    elif isinstance(size, int) and size < 0:
        errors.append("size_bytes cannot be negative")

    count = data.get("download_count")
    if count is not None and (not isinstance(count, int) or isinstance(count, bool)):
        errors.append("download_count must be a number")

    status = data.get("storage_status")
    valid_statuses = [s.value for s in StorageStatus]
    if status is not None and status not in valid_statuses:
        errors.append(f"storage_status must be one of: {', '.join(valid_statuses)}")

    timestamp = data.get("upload_timestamp")
    if isinstance(timestamp, str):
        try:
            datetime.fromisoformat(timestamp)
        except ValueError:
            errors.append(f"upload_timestamp is not ISO-8601: {timestamp}")

    return ValidationResult(valid=not errors, errors=errors)
