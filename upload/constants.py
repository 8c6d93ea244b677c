"""
Upload Constants

Type definitions for the upload module.
Tunable values live in config/settings.py (and config/storage.yaml).
"""

from enum import Enum

# =============================================================================
# UPLOAD STATE
# =============================================================================


class UploadStateStatus(Enum):
    """Upload attempt lifecycle: active → completed | failed"""

    ACTIVE = "active"  # Bytes still arriving
    COMPLETED = "completed"  # Persisted, video_id assigned
    FAILED = "failed"  # Gave up, last_error recorded

    @property
    def is_terminal(self) -> bool:
        return self != UploadStateStatus.ACTIVE


class UploadOutcome(Enum):
    """How handle_upload_with_recovery produced its record"""

    STORED = "stored"  # Fresh upload persisted
    EXISTING = "existing"  # Idempotence hit, stream not consumed
    RECOVERED = "recovered"  # Failed upload credited from an orphan
