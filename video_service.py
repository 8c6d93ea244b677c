"""
Video Service

Main service coordinator for the video storage system.
Wires storage, upload orchestration and orphan recovery together and
keeps background recovery running until shutdown.

Lifecycle:
    start → startup tasks (directories, recovery, cleanup)
          → background recovery running
          → periodic health log
          → SIGTERM/SIGINT → stop background recovery → exit

Callers embed VideoService (or use its components directly) to accept
uploads through service.upload_controller and serve downloads through
service.storage.
"""

import logging
import logging.handlers
import signal
import sys
import time
from pathlib import Path
from typing import Optional

from config.settings import (
    HEALTH_LOG_INTERVAL_SECONDS,
    LOG_BACKUP_DAYS,
    LOG_DIR,
    LOG_SERVICE_FILE,
    SERVICE_LOOP_INTERVAL,
)
from recovery import BackgroundRecoveryService
from recovery.controllers.startup_service import StartupService
from storage import StorageConfig, create_hybrid_storage
from upload.factory import create_orphan_recovery, create_upload_controller


class VideoService:
    """
    Main service coordinator.

    Wires together:
    - Hybrid storage (local + optional R2 mirror)
    - Upload orchestrator
    - Orphan recovery (startup, on-demand and background)

    Usage:
        service = VideoService()
        service.run()  # Blocks until shutdown
    """

    def __init__(self, config: Optional[StorageConfig] = None, register_signals: bool = True):
        """Initialize all components and setup callbacks."""
        self.logger = logging.getLogger(__name__)
        self.logger.info("Initializing Video Service...")

        self.running = False
        self.config = config or StorageConfig()

        self.storage = create_hybrid_storage(self.config)
        self.orphan_recovery = create_orphan_recovery(self.storage)
        self.upload_controller = create_upload_controller(
            storage=self.storage,
            orphan_recovery=self.orphan_recovery,
        )
        self.background = BackgroundRecoveryService(
            self.orphan_recovery,
            upload_controller=self.upload_controller,
            interval_minutes=self.config.recovery_interval_minutes,
        )
        self.startup = StartupService(
            self.storage,
            self.upload_controller,
            self.orphan_recovery,
            self.background,
        )

        self._setup_callbacks()

        if register_signals:
            signal.signal(signal.SIGTERM, self._signal_handler)
            signal.signal(signal.SIGINT, self._signal_handler)

        self.logger.info("Video Service initialized successfully")

    def _setup_callbacks(self):
        self.storage.on_mirror_failed = self._handle_mirror_failed
        self.storage.on_storage_error = self._handle_storage_error

    def run(self):
        """
        Main service loop.

        Runs until shutdown signal received.
        """
        self.running = True
        self.logger.info("Starting Video Service...")

        report = self.startup.run_startup_tasks()
        self.logger.info(f"Startup: {report.to_dict()}")

        last_health_log = time.time()
        try:
            while self.running:
                if time.time() - last_health_log >= HEALTH_LOG_INTERVAL_SECONDS:
                    self._log_health()
                    last_health_log = time.time()
                time.sleep(SERVICE_LOOP_INTERVAL)
        except KeyboardInterrupt:
            self.logger.info("Keyboard interrupt received")
        finally:
            self._shutdown()

    def _log_health(self):
        try:
            health = self.startup.get_system_health()
        except Exception as e:
            self.logger.error(f"Health check failed: {e}", exc_info=True)
            return

        level = logging.INFO if health["healthy"] else logging.WARNING
        self.logger.log(level, f"Health: {health}")

    # =========================================================================
    # EVENT HANDLERS
    # =========================================================================

    def _handle_mirror_failed(self, video_id: str, error: str):
        self.logger.warning(f"Remote mirror failed for {video_id}: {error}")

    def _handle_storage_error(self, error_message: str):
        self.logger.error(f"Storage error: {error_message}")

    # =========================================================================
    # SHUTDOWN HANDLING
    # =========================================================================

    def _signal_handler(self, signum, _frame):
        """
        Handle shutdown signals.

        Args:
            signum: Signal number
            _frame: Current stack frame (unused, required by signal API)
        """
        signal_name = signal.Signals(signum).name
        self.logger.info(f"Received signal {signal_name}, shutting down...")
        self.running = False

    def _shutdown(self):
        self.logger.info("Shutting down Video Service...")
        self.background.stop()
        self.logger.info("Video Service shutdown complete")


def setup_logging():
    """
    Setup logging with rotation.

    Logs to both console and file:
    - Daily rotation
    - Keep LOG_BACKUP_DAYS days of logs
    """
    logger = logging.getLogger()
    logger.setLevel(logging.INFO)

    log_format = logging.Formatter(
        "%(asctime)s %(levelname)s %(message)s | %(name)s",
    )

    # Console handler (stdout)
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(log_format)
    logger.addHandler(console_handler)

    log_file = Path(LOG_DIR) / LOG_SERVICE_FILE
    try:
        file_handler = logging.handlers.TimedRotatingFileHandler(
            str(log_file),
            when="midnight",
            interval=1,
            backupCount=LOG_BACKUP_DAYS,
            encoding="utf-8",
        )
    except (PermissionError, FileNotFoundError):
        # Fallback to local logs directory if the system log dir is not writable
        logs_dir = Path("logs")
        logs_dir.mkdir(exist_ok=True)

        fallback_log = logs_dir / "video-service.log"
        logger.warning(
            f"Cannot write to {log_file}, using fallback: {fallback_log}",
        )
        logger.info(
            f"To fix: sudo mkdir -p {LOG_DIR} && sudo chown $(whoami) {LOG_DIR}",
        )

        file_handler = logging.handlers.TimedRotatingFileHandler(
            str(fallback_log),
            when="midnight",
            interval=1,
            backupCount=LOG_BACKUP_DAYS,
            encoding="utf-8",
        )

    file_handler.setLevel(logging.INFO)
    file_handler.setFormatter(log_format)
    logger.addHandler(file_handler)


def main():
    """
    Main entry point for the service.

    Sets up logging and runs the service.
    """
    setup_logging()

    logger = logging.getLogger(__name__)
    logger.info("=" * 60)
    logger.info("Video Vault Service Starting")
    logger.info("=" * 60)

    try:
        service = VideoService()
        service.run()
    except Exception as e:
        logger.critical(f"Fatal error in main: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
