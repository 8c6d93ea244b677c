"""
Storage Module Enums

Type definitions for the storage module.
Configuration values live in config/settings.py
following the "ALL config in config/settings.py" principle.

This module contains only Enum types that define the type system
for storage operations.
"""

from enum import Enum

# =============================================================================
# ENUMS
# =============================================================================


class StorageStatus(Enum):
    """Where the authoritative bytes of a video currently live"""

    LOCAL_ONLY = "local-only"  # Only the local copy is guaranteed
    MIRRORED = "mirrored"  # Local copy plus remote copy
    REMOTE_ONLY = "remote-only"  # Local copy gone, remote is authoritative

    @property
    def has_remote_copy(self) -> bool:
        return self in (StorageStatus.MIRRORED, StorageStatus.REMOTE_ONLY)


class StorageSource(Enum):
    """Backend that served a read"""

    LOCAL = "local"
    REMOTE = "remote"


class CompressionStatus(Enum):
    """Post-processing job states"""

    PROCESSING = "processing"  # Encoder running
    COMPLETED = "completed"  # Result written
    FAILED = "failed"  # Encoder gave up


class VideoQuality(Enum):
    """Video file sanity check results"""

    VALID = "valid"  # File looks usable
    UNREADABLE = "unreadable"  # File could not be stat'ed or opened
    TOO_SMALL = "too_small"  # File size below floor
    INVALID_FORMAT = "invalid_format"  # Not a recognised video extension
