"""
Recovery Constants

Type definitions for the recovery module.
"""

from enum import Enum


class RecoveryStatus(Enum):
    """Orphan registry states: pending → recovered | invalid | failed"""

    PENDING = "pending"  # Discovered, not yet attempted
    RECOVERED = "recovered"  # Metadata reconstructed and saved
    FAILED = "failed"  # Reconstruction or persistence failed
    INVALID = "invalid"  # Failed the sanity gate
