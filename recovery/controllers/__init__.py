"""
Controllers Package

Orphan recovery engine and the services that drive it.
StartupService lives in recovery.controllers.startup_service.
"""

from recovery.controllers.background_recovery import BackgroundRecoveryService
from recovery.controllers.orphan_recovery import OrphanRecoveryService

__all__ = [
    "BackgroundRecoveryService",
    "OrphanRecoveryService",
]
