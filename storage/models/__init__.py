"""
Models Package

Data structures for stored videos.
"""

from storage.models.video_record import (
    CompressionState,
    OperationResult,
    StorageStats,
    StoredObject,
    ValidationResult,
    VideoRecord,
    VideoStream,
)

__all__ = [
    "CompressionState",
    "OperationResult",
    "StorageStats",
    "StoredObject",
    "ValidationResult",
    "VideoRecord",
    "VideoStream",
]
