"""
Recovery Module

Finds and reintegrates orphaned video payloads (files on disk with no
metadata), quarantines invalid ones, and runs recovery periodically.

Public API:
    - OrphanRecoveryService: Scan / recover / quarantine engine
    - BackgroundRecoveryService: Periodic recovery worker
    - RecoveryStatus: Registry states

Usage:
    from recovery import OrphanRecoveryService

    recovery = OrphanRecoveryService(config, metadata)
    summary = recovery.recover_all_orphans()
"""

from recovery.constants import RecoveryStatus
from recovery.controllers.background_recovery import BackgroundRecoveryService
from recovery.controllers.orphan_recovery import OrphanRecoveryService
from recovery.models.orphan import OrphanFile, OrphanRegistry, RecoverySummary

# Public API
__all__ = [
    "BackgroundRecoveryService",
    "OrphanFile",
    "OrphanRecoveryService",
    "OrphanRegistry",
    "RecoveryStatus",
    "RecoverySummary",
]
