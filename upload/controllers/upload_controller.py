"""
Upload Controller

High-level coordinator for incoming video uploads.
Wraps raw byte-stream persistence with idempotence and failure recovery.

Flow for handle_upload:
1. Create an active upload state
2. Recover stray orphans, then look for an existing matching record
   (same owners and filename, size within tolerance). If found, return it
   without reading the stream
3. Otherwise persist the stream and mark the state completed
4. On failure mark the state failed, then try to credit an orphan whose
   size is close to the declared size
5. If nothing recovers, re-raise the original error
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import BinaryIO, List, Optional

from recovery.controllers.orphan_recovery import OrphanRecoveryService
from recovery.models.orphan import RecoverySummary
from storage.config import StorageConfig
from storage.interfaces.storage_interface import StorageError
from storage.managers.metadata_manager import MetadataManager
from storage.models.video_record import VideoRecord
from upload.constants import UploadOutcome, UploadStateStatus
from upload.interfaces.uploader_interface import (
    StreamPersistenceInterface,
    UploaderError,
    UploadResult,
    UploadStateNotFoundError,
)
from upload.managers.upload_state_manager import UploadStateManager
from upload.models.upload_state import UploadState


def within_tolerance(actual: int, expected: int, tolerance: float) -> bool:
    """
    Relative size match.

    Example:
        within_tolerance(1040, 1000, 0.05)  # True
        within_tolerance(1060, 1000, 0.05)  # False
    """
    if expected <= 0:
        return actual == expected
    return abs(actual - expected) <= expected * tolerance


@dataclass
class MaintenanceReport:
    """Outcome of one maintenance pass"""

    expired_states: int = 0
    recovery: RecoverySummary = field(default_factory=RecoverySummary)
    quarantined: int = 0
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "expired_states": self.expired_states,
            "recovery": self.recovery.to_dict(),
            "quarantined": self.quarantined,
            "errors": list(self.errors),
        }


class UploadController:
    """
    Upload orchestrator.

    Usage:
        controller = UploadController(uploader, state_manager, recovery, metadata)

        with open("launch.mp4", "rb") as f:
            record = controller.handle_upload_with_recovery(
                f, "acme", "launch", "launch.mp4", expected_size=1048576
            )
    """

    def __init__(
        self,
        uploader: StreamPersistenceInterface,
        state_manager: UploadStateManager,
        orphan_recovery: OrphanRecoveryService,
        metadata: MetadataManager,
        config: Optional[StorageConfig] = None,
    ):
        self.logger = logging.getLogger(__name__)
        self.uploader = uploader
        self.state_manager = state_manager
        self.orphan_recovery = orphan_recovery
        self.metadata = metadata
        self.config = config or state_manager.config

        self.logger.info("Upload Controller initialized")

    # =========================================================================
    # UPLOAD
    # =========================================================================

    def handle_upload_with_recovery(
        self,
        stream: BinaryIO,
        owner_client: str,
        owner_project: str,
        filename: str,
        expected_size: int,
    ) -> VideoRecord:
        """
        Store an upload, deduplicating retries and recovering failures.

        Returns:
            VideoRecord (new, pre-existing, or recovered)

        Raises:
            StorageError: Persistence failed and no orphan could be credited
        """
        result = self.handle_upload(stream, owner_client, owner_project, filename, expected_size)
        return result.record

    def handle_upload(
        self,
        stream: BinaryIO,
        owner_client: str,
        owner_project: str,
        filename: str,
        expected_size: int,
    ) -> UploadResult:
        """Same as handle_upload_with_recovery, also reporting how the record was produced"""
        upload_id = str(uuid.uuid4())
        self.state_manager.create_state(
            upload_id,
            filename=filename,
            owner_client=owner_client,
            owner_project=owner_project,
            total_size=expected_size,
            chunk_size=self.config.stream_chunk_size,
        )
        self.logger.info(
            f"Upload {upload_id}: {filename} ({expected_size} bytes) "
            f"for {owner_client}/{owner_project}"
        )
        return self._run(upload_id, stream, owner_client, owner_project, filename, expected_size)

    def resume_upload(self, upload_id: str, stream: BinaryIO) -> UploadResult:
        """
        Retry a failed or stalled upload with a fresh stream.

        Owner, filename and size come from the recorded upload state.

        Raises:
            UploadStateNotFoundError: Unknown upload id
            UploaderError: Upload already completed or out of retries
        """
        state = self.state_manager.load_state(upload_id)
        if state is None:
            raise UploadStateNotFoundError(upload_id)

        if state.status == UploadStateStatus.COMPLETED:
            raise UploaderError(f"Upload {upload_id} already completed ({state.video_id})")
        if state.retry_count >= state.max_retries:
            raise UploaderError(
                f"Upload {upload_id} exhausted its retries ({state.retry_count}/{state.max_retries})"
            )

        state.status = UploadStateStatus.ACTIVE
        state.uploaded_size = 0
        state.touch()
        self.state_manager.save_state(state)

        self.logger.info(f"Resuming upload {upload_id} (attempt {state.retry_count + 1})")
        return self._run(
            upload_id,
            stream,
            state.owner_client,
            state.owner_project,
            state.filename,
            state.total_size,
        )

    def _run(
        self,
        upload_id: str,
        stream: BinaryIO,
        owner_client: str,
        owner_project: str,
        filename: str,
        expected_size: int,
    ) -> UploadResult:
        start_time = time.time()

        existing = self._find_existing(owner_client, owner_project, filename, expected_size)
        if existing is not None:
            self.logger.info(f"Upload {upload_id} matches existing video {existing.id}, skipping")
            self.state_manager.mark_complete(upload_id, existing.id)
            return UploadResult(
                record=existing,
                outcome=UploadOutcome.EXISTING,
                upload_id=upload_id,
                upload_duration=time.time() - start_time,
            )

        try:
            record = self.uploader.persist_stream(
                stream,
                owner_client=owner_client,
                owner_project=owner_project,
                filename=filename,
                total_size=expected_size,
                upload_id=upload_id,
            )
        except Exception as e:
            # Client disconnects surface as arbitrary exception types
            self.logger.error(
                f"Upload {upload_id} failed: {e}",
                exc_info=not isinstance(e, StorageError),
            )
            self.state_manager.mark_failed(upload_id, str(e))

            recovered = self._recover_failed_upload(owner_client, owner_project, filename, expected_size)
            if recovered is None:
                raise

            self.state_manager.mark_complete(upload_id, recovered.id)
            self.logger.warning(f"Upload {upload_id} credited from orphan {recovered.id}")
            return UploadResult(
                record=recovered,
                outcome=UploadOutcome.RECOVERED,
                upload_id=upload_id,
                upload_duration=time.time() - start_time,
            )

        self.state_manager.mark_complete(upload_id, record.id)
        duration = time.time() - start_time
        self.logger.info(f"✅ Upload {upload_id} stored as {record.id} ({duration:.1f}s)")
        return UploadResult(
            record=record,
            outcome=UploadOutcome.STORED,
            upload_id=upload_id,
            upload_duration=duration,
        )

    def _find_existing(
        self,
        owner_client: str,
        owner_project: str,
        filename: str,
        expected_size: int,
    ) -> Optional[VideoRecord]:
        """Idempotence check, run before the stream is touched"""
        self.orphan_recovery.recover_all_orphans()

        tolerance = self.config.idempotence_size_tolerance
        for record in self.metadata.list_by_client(owner_client):
            if (
                record.owner_client == owner_client
                and record.owner_project == owner_project
                and record.filename == filename
                and within_tolerance(record.size_bytes, expected_size, tolerance)
            ):
                return record
        return None

    def _recover_failed_upload(
        self,
        owner_client: str,
        owner_project: str,
        filename: str,
        expected_size: int,
    ) -> Optional[VideoRecord]:
        """Credit a close-enough orphan to a failed upload"""
        tolerance = self.config.recovery_size_tolerance

        for orphan in self.orphan_recovery.scan_for_orphans():
            if not within_tolerance(orphan.size_bytes, expected_size, tolerance):
                self.logger.debug(
                    f"Orphan {orphan.video_id} size {orphan.size_bytes} "
                    f"not within {tolerance:.0%} of {expected_size}"
                )
                continue

            record = self.orphan_recovery.recover_orphan(orphan)
            if record is None:
                continue

            try:
                return self.metadata.update(
                    record.id,
                    owner_client=owner_client,
                    owner_project=owner_project,
                    filename=filename,
                )
            except StorageError as e:
                self.logger.error(f"Could not patch recovered record {record.id}: {e}")
                return record

        self.logger.warning(f"No orphan matched failed upload of {filename}")
        return None

    # =========================================================================
    # MAINTENANCE / STATUS
    # =========================================================================

    def run_maintenance(self, run_recovery: bool = True) -> MaintenanceReport:
        """
        Periodic housekeeping.

        Cleans expired upload states, recovers orphans (unless the caller
        already did) and quarantines invalid ones. Each step runs even if
        an earlier one fails.
        """
        report = MaintenanceReport()

        try:
            report.expired_states = self.state_manager.cleanup_expired_uploads()
        except StorageError as e:
            report.errors.append(f"state cleanup: {e}")

        if run_recovery:
            try:
                report.recovery = self.orphan_recovery.recover_all_orphans()
            except StorageError as e:
                report.errors.append(f"orphan recovery: {e}")

        try:
            report.quarantined = self.orphan_recovery.cleanup_invalid_orphans()
        except StorageError as e:
            report.errors.append(f"orphan cleanup: {e}")

        for error in report.errors:
            self.logger.error(f"Maintenance step failed: {error}")
        self.logger.debug(f"Maintenance: {report.to_dict()}")
        return report

    def get_upload_progress(self, upload_id: str) -> Optional[dict]:
        return self.state_manager.get_upload_progress(upload_id)

    def get_active_uploads(self) -> List[UploadState]:
        return self.state_manager.get_active_uploads()
