"""
Interfaces Package

Abstract interfaces for stream persistence.
"""

from upload.interfaces.uploader_interface import (
    StreamPersistenceInterface,
    UploaderError,
    UploadResult,
    UploadStateNotFoundError,
)

__all__ = [
    "StreamPersistenceInterface",
    "UploadResult",
    "UploaderError",
    "UploadStateNotFoundError",
]
