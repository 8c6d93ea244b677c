"""
Startup Service

Boot-time housekeeping and a health snapshot for the running service.
Every startup step is isolated: one failing step is reported and the
rest still run.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional

from recovery.controllers.background_recovery import BackgroundRecoveryService
from recovery.controllers.orphan_recovery import OrphanRecoveryService
from storage.controllers.hybrid_storage import HybridStorage
from upload.controllers.upload_controller import UploadController


@dataclass
class StartupReport:
    """Result of run_startup_tasks"""

    steps: Dict[str, dict] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return all(step["success"] for step in self.steps.values())

    def to_dict(self) -> dict:
        return {"success": self.success, "steps": dict(self.steps)}


class StartupService:
    """
    Runs startup tasks in order:

    1. Ensure the storage directories exist
    2. Recover orphans left by a previous run
    3. Remove expired upload states
    4. Quarantine invalid orphans
    5. Start the background recovery service
    """

    def __init__(
        self,
        storage: HybridStorage,
        upload_controller: UploadController,
        orphan_recovery: OrphanRecoveryService,
        background: BackgroundRecoveryService,
    ):
        self.logger = logging.getLogger(__name__)
        self.storage = storage
        self.upload_controller = upload_controller
        self.orphan_recovery = orphan_recovery
        self.background = background

    def run_startup_tasks(self, start_background: bool = True) -> StartupReport:
        report = StartupReport()

        self._step(report, "directories", self._ensure_directories)
        self._step(
            report,
            "orphan_recovery",
            lambda: self.orphan_recovery.recover_all_orphans().to_dict(),
        )
        self._step(
            report,
            "expired_uploads",
            lambda: {"removed": self.upload_controller.state_manager.cleanup_expired_uploads()},
        )
        self._step(
            report,
            "invalid_orphans",
            lambda: {"quarantined": self.orphan_recovery.cleanup_invalid_orphans()},
        )
        if start_background:
            self._step(
                report,
                "background_recovery",
                lambda: {"started": self.background.start()},
            )

        if report.success:
            self.logger.info("Startup tasks complete")
        else:
            failed = [name for name, step in report.steps.items() if not step["success"]]
            self.logger.warning(f"Startup tasks finished with failures: {', '.join(failed)}")
        return report

    def _ensure_directories(self) -> dict:
        self.storage.local.initialize()
        return {"base_path": str(self.storage.config.storage_base_path)}

    def _step(self, report: StartupReport, name: str, task: Callable[[], Optional[dict]]) -> None:
        try:
            details = task() or {}
            report.steps[name] = {"success": True, **details}
            self.logger.debug(f"Startup step {name}: {details}")
        except Exception as e:
            self.logger.error(f"Startup step {name} failed: {e}", exc_info=True)
            report.steps[name] = {"success": False, "error": str(e)}

    # =========================================================================
    # HEALTH
    # =========================================================================

    def get_system_health(self) -> dict:
        """
        Snapshot of the service for health checks.

        Returns:
            Dict with storage connections, orphan and upload counts,
            background status and last orphan scan
        """
        registry = self.orphan_recovery.get_registry()
        connections = self.storage.test_connections()

        remote = connections.get("r2")
        healthy = connections["local"]["success"] and (remote is None or remote["success"])

        return {
            "healthy": healthy,
            "storage": connections,
            "videos": self.storage.metadata.get_counts(),
            "orphans": registry.count_by_status(),
            "last_orphan_scan": registry.last_scan.isoformat() if registry.last_scan else None,
            "active_uploads": len(self.upload_controller.get_active_uploads()),
            "background_recovery": self.background.get_status(),
        }
