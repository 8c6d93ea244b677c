"""
Storage Module

Hybrid video storage: local disk as the durability anchor, an optional
S3-compatible bucket as a best-effort mirror, and a JSON metadata store.

Architecture:
- interfaces/: Abstract base classes (contracts) and the error taxonomy
- implementations/: Concrete backends (local disk, R2, in-memory mock)
- controllers/: High-level coordination (HybridStorage)
- managers/: Metadata persistence
- models/: Data structures
- utils/: Shared utilities
"""

from storage.config import StorageConfig
from storage.constants import (
    CompressionStatus,
    StorageSource,
    StorageStatus,
    VideoQuality,
)
from storage.controllers.hybrid_storage import HybridStorage
from storage.factory import StorageFactory, create_hybrid_storage
from storage.interfaces.storage_interface import (
    IncompleteUploadError,
    RecordValidationError,
    StorageError,
    StorageInterface,
    VideoNotFoundError,
    VideoUnavailableError,
)
from storage.managers.metadata_manager import MetadataManager
from storage.models.video_record import (
    CompressionState,
    OperationResult,
    StorageStats,
    VideoRecord,
    VideoStream,
)

# Public API - what users import
__all__ = [
    "CompressionState",
    "CompressionStatus",
    # Main controller (primary API)
    "HybridStorage",
    "IncompleteUploadError",
    "MetadataManager",
    "OperationResult",
    "RecordValidationError",
    "StorageConfig",
    "StorageError",
    # Factory for creating storage
    "StorageFactory",
    "StorageInterface",
    "StorageSource",
    "StorageStats",
    # Enums
    "StorageStatus",
    "VideoNotFoundError",
    "VideoQuality",
    # Models
    "VideoRecord",
    "VideoStream",
    "VideoUnavailableError",
    "create_hybrid_storage",
]
