"""
Interfaces Package

Abstract interfaces for storage backends and the storage error taxonomy.
"""

from storage.interfaces.object_storage_interface import (
    ObjectStorageInterface,
    RemoteObject,
)
from storage.interfaces.storage_interface import (
    BackendUnavailableError,
    IncompleteUploadError,
    RecordValidationError,
    StorageError,
    StorageInterface,
    VideoNotFoundError,
    VideoUnavailableError,
)

__all__ = [
    "BackendUnavailableError",
    "IncompleteUploadError",
    "ObjectStorageInterface",
    "RecordValidationError",
    "RemoteObject",
    "StorageError",
    "StorageInterface",
    "VideoNotFoundError",
    "VideoUnavailableError",
]
