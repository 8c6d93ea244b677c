"""
Hybrid Storage Controller

High-level storage coordination over two independent backends:
local disk (durability anchor) and remote object storage (best-effort mirror).
Provides a simple API with event callbacks, same pattern as the other controllers.
"""

import io
import logging
from pathlib import Path
from typing import BinaryIO, Callable, Optional, Union

from storage.config import StorageConfig
from storage.constants import StorageSource, StorageStatus
from storage.implementations.local_storage import LocalStorage
from storage.interfaces.object_storage_interface import ObjectStorageInterface
from storage.interfaces.storage_interface import (
    ProgressCallback,
    StorageError,
    StorageInterface,
    VideoNotFoundError,
    VideoUnavailableError,
)
from storage.managers.metadata_manager import MetadataManager
from storage.models.video_record import (
    OperationResult,
    StorageStats,
    VideoRecord,
    VideoStream,
)
from storage.utils.path_utils import (
    candidate_remote_keys,
    content_type_for,
    get_file_extension,
    remote_key_for,
)
from storage.utils.remote_errors import RemoteStorageError, first_success


class HybridStorage:
    """
    Hybrid local + remote storage controller.

    This class:
    - Writes locally first, then mirrors to remote when enabled
    - Reads local first, falling back to remote
    - Deletes from every location that might hold a copy
    - Fires events when mirroring or storage operations fail

    Usage:
        storage = HybridStorage(remote=R2Storage.from_settings())
        storage.on_mirror_failed = lambda video_id, error: alert(video_id, error)

        record = storage.save_video(data, "launch.mp4", "acme", "launch")
        video = storage.get_video_stream(record.id)
    """

    def __init__(
        self,
        config: Optional[StorageConfig] = None,
        local: Optional[StorageInterface] = None,
        remote: Optional[ObjectStorageInterface] = None,
        metadata: Optional[MetadataManager] = None,
    ):
        """
        Initialize hybrid storage.

        Args:
            config: Storage configuration (None = defaults)
            local: Local storage implementation (None = LocalStorage)
            remote: Remote storage implementation (None = remote disabled)
            metadata: Metadata manager (None = JSON files under storage root)
        """
        self.logger = logging.getLogger(__name__)
        self.config = config or StorageConfig()

        self.local = local or LocalStorage(self.config)
        self.local.initialize()
        self.remote = remote
        self.metadata = metadata or MetadataManager(self.config)

        # Event callbacks
        self.on_mirror_failed: Optional[Callable[[str, str], None]] = None  # video_id, error
        self.on_storage_error: Optional[Callable[[str], None]] = None  # error message

        self.logger.info(
            f"Hybrid storage initialized (remote: "
            f"{type(remote).__name__ if remote else 'disabled'}, "
            f"auto backup: {self.config.auto_backup})"
        )

    @property
    def remote_enabled(self) -> bool:
        return self.remote is not None and self.config.enable_remote_backup

    # =========================================================================
    # SAVE
    # =========================================================================

    def save_video(
        self,
        data: Union[bytes, BinaryIO],
        filename: str,
        owner_client: str,
        owner_project: str,
    ) -> VideoRecord:
        """
        Save a complete video.

        Args:
            data: Video bytes or readable binary stream
            filename: Original filename
            owner_client: Client name
            owner_project: Project name

        Returns:
            VideoRecord (local-only, or mirrored if the remote copy succeeded)

        Raises:
            StorageError: If the local write fails

        Example:
            record = storage.save_video(payload, "launch.mp4", "acme", "launch")
        """
        expected_size = None
        if isinstance(data, (bytes, bytearray)):
            expected_size = len(data)
            data = io.BytesIO(data)

        return self.save_stream(
            data,
            filename=filename,
            owner_client=owner_client,
            owner_project=owner_project,
            expected_size=expected_size,
        )

    def save_stream(
        self,
        stream: BinaryIO,
        filename: str,
        owner_client: str,
        owner_project: str,
        expected_size: Optional[int] = None,
        video_id: Optional[str] = None,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> VideoRecord:
        """
        Persist a byte stream: local write, metadata, then best-effort mirror.

        Process:
        1. Write payload locally (failure fails the whole save)
        2. Save metadata as local-only
        3. Mirror to remote if enabled; on success mark mirrored

        Raises:
            StorageError: If the local write or metadata save fails
        """
        try:
            stored = self.local.save_stream(
                stream,
                filename,
                expected_size=expected_size,
                video_id=video_id,
                progress_callback=progress_callback,
            )
        except StorageError as e:
            self.logger.error(f"Local save failed for {filename}: {e}")
            self._trigger_error(str(e))
            raise

        record = VideoRecord(
            id=stored.video_id,
            filename=filename,
            owner_client=owner_client,
            owner_project=owner_project,
            size_bytes=stored.size_bytes,
            checksum=stored.checksum,
            content_type=content_type_for(filename),
            storage_status=StorageStatus.LOCAL_ONLY,
            local_path=str(stored.path),
        )
        self.metadata.save(record)

        if self.remote_enabled and self.config.auto_backup:
            self._mirror(record, stored.path)

        return record

    def _mirror(self, record: VideoRecord, path: Path) -> OperationResult:
        """Copy a local payload to remote and mark the record mirrored"""
        key = remote_key_for(record.id, get_file_extension(path))
        tags = {
            "video-id": record.id,
            "filename": record.filename,
            "client": record.owner_client,
            "project": record.owner_project,
            "checksum": record.checksum or "",
        }

        try:
            with open(path, "rb") as f:
                self.remote.put(key, f, tags=tags, content_type=record.content_type)

            updated = self.metadata.update(
                record.id,
                storage_status=StorageStatus.MIRRORED,
                remote_key=key,
            )
            record.mark_mirrored(updated.remote_key)

        except (RemoteStorageError, StorageError, OSError) as e:
            self.logger.warning(f"Remote mirror failed for {record.id} (kept local-only): {e}")
            self._trigger_mirror_failed(record.id, str(e))
            return OperationResult(False, str(e))

        self.logger.info(f"Mirrored {record.id} to {key}")
        return OperationResult(True)

    # =========================================================================
    # READ
    # =========================================================================

    def get_video_stream(self, video_id: str) -> VideoStream:
        """
        Open a video for download, local first then remote.

        Increments download_count on success.

        Returns:
            VideoStream (caller must close it)

        Raises:
            VideoNotFoundError: If no record exists or neither backend has the bytes
            VideoUnavailableError: If downloads are disabled for the video
        """
        record = self.metadata.load(video_id)
        if record is None:
            raise VideoNotFoundError(video_id)
        if not record.is_active:
            raise VideoUnavailableError(f"Video is disabled: {video_id}")

        video = self._read_local(record) or self._read_remote(record)
        if video is None:
            raise VideoNotFoundError(video_id, f"Video not found in any storage: {video_id}")

        try:
            self.metadata.increment_download_count(video_id)
        except StorageError as e:
            self.logger.warning(f"Could not update download count for {video_id}: {e}")

        return video

    def _read_local(self, record: VideoRecord) -> Optional[VideoStream]:
        try:
            stream, size, _path = self.local.open_video(record.id)
        except StorageError as e:
            self.logger.info(f"Local read failed for {record.id}: {e}")
            return None

        return VideoStream(
            stream=stream,
            size=size,
            filename=record.filename,
            source=StorageSource.LOCAL,
            content_type=record.content_type,
        )

    def _read_remote(self, record: VideoRecord) -> Optional[VideoStream]:
        if self.remote is None or not self.config.fallback_to_remote:
            return None

        keys = self._candidate_keys(record.id, record)
        try:
            key, obj = first_success(keys, self.remote.get)
        except RemoteStorageError as e:
            self.logger.warning(f"Remote read failed for {record.id} ({e.kind.value}): {e}")
            return None

        self.logger.info(f"Serving {record.id} from remote ({key})")
        return VideoStream(
            stream=obj.body,
            size=obj.size or record.size_bytes,
            filename=record.filename,
            source=StorageSource.REMOTE,
            content_type=record.content_type or obj.content_type,
        )

    # =========================================================================
    # BACKUP / DELETE
    # =========================================================================

    def backup_video(self, video_id: str) -> OperationResult:
        """
        Manually mirror a video to remote storage.

        Returns:
            OperationResult; "already backed up" is a success with a note
        """
        if not self.remote_enabled:
            return OperationResult(False, "remote storage not configured")

        record = self.metadata.load(video_id)
        if record is None:
            return OperationResult(False, "metadata not found")

        if record.has_remote_copy:
            return OperationResult(True, "already backed up")

        path = self.local.find_video_file(video_id)
        if path is None:
            return OperationResult(False, "local file not found")

        return self._mirror(record, path)

    def delete_video(self, video_id: str) -> OperationResult:
        """
        Delete a video from local, remote and metadata independently.

        Success if at least one deletion succeeded; remaining failures
        are returned as an advisory error string.
        """
        record = self.metadata.load(video_id)
        errors = []
        deleted = []

        try:
            if self.local.delete_video(video_id):
                deleted.append("local")
        except StorageError as e:
            errors.append(f"local: {e}")

        if self.remote is not None:
            remote_error = self._delete_remote(video_id, record)
            if remote_error is None:
                deleted.append("remote")
            elif record is not None and not record.has_remote_copy:
                self.logger.debug(f"Ignoring remote delete failure for local-only {video_id}")
            else:
                errors.append(f"remote: {remote_error}")

        try:
            if self.metadata.delete(video_id):
                deleted.append("metadata")
        except StorageError as e:
            errors.append(f"metadata: {e}")

        error = "; ".join(errors) or None
        if not deleted:
            self.logger.error(f"Delete failed for {video_id}: {error}")
            self._trigger_error(f"Delete failed for {video_id}: {error}")
            return OperationResult(False, error or "nothing deleted")

        if error:
            self.logger.warning(f"Partial delete for {video_id} ({', '.join(deleted)} ok): {error}")
        else:
            self.logger.info(f"Deleted {video_id} from {', '.join(deleted)}")

        return OperationResult(True, error)

    def _delete_remote(self, video_id: str, record: Optional[VideoRecord]) -> Optional[str]:
        """
        Delete the recorded key, or every candidate key when none is recorded.

        Stops at the first retryable failure.

        Returns:
            Error text, or None on success
        """
        if record is not None and record.remote_key:
            keys = [record.remote_key]
        else:
            keys = self._candidate_keys(video_id, record)

        last_error = None
        any_deleted = False
        for key in keys:
            try:
                self.remote.delete(key)
                any_deleted = True
            except RemoteStorageError as e:
                last_error = e
                if e.retryable:
                    break

        if any_deleted:
            return None
        return str(last_error) if last_error else "no remote keys"

    # =========================================================================
    # DIAGNOSTICS
    # =========================================================================

    def check_video_availability(self, video_id: str) -> dict:
        """Independent existence probes across all three stores"""
        availability = {
            "local": self.local.video_exists(video_id),
            "r2": False,
            "metadata": False,
        }

        record = self.metadata.load(video_id)
        availability["metadata"] = record is not None

        if self.remote is not None:
            for key in self._candidate_keys(video_id, record):
                try:
                    if self.remote.exists(key):
                        availability["r2"] = True
                        break
                except RemoteStorageError as e:
                    self.logger.warning(f"Remote probe failed for {key}: {e}")
                    break

        return availability

    def get_storage_stats(self) -> StorageStats:
        counts = self.metadata.get_counts()
        local_stats = self.local.get_stats()

        stats = StorageStats(
            total_videos=counts["total"],
            local_only_count=counts[StorageStatus.LOCAL_ONLY.value],
            mirrored_count=counts[StorageStatus.MIRRORED.value],
            remote_only_count=counts[StorageStatus.REMOTE_ONLY.value],
            local_bytes=local_stats.get("total_bytes", 0),
            local_file_count=local_stats.get("file_count", 0),
            remote_enabled=self.remote_enabled,
            config={
                "enable_remote_backup": self.config.enable_remote_backup,
                "auto_backup": self.config.auto_backup,
                "fallback_to_remote": self.config.fallback_to_remote,
            },
        )

        if self.remote is not None:
            remote_stats = self.remote.get_stats()
            stats.remote_object_count = remote_stats.get("object_count")
            stats.remote_bytes = remote_stats.get("total_bytes")

        return stats

    def test_connections(self) -> dict:
        results = {"local": {"success": self.local.test_connection()}, "r2": None}

        if self.remote is not None:
            ok = self.remote.test_connection()
            results["r2"] = {"success": ok}
            if not ok:
                results["r2"]["error"] = "remote storage unreachable"

        return results

    # =========================================================================
    # INTERNAL
    # =========================================================================

    def _candidate_keys(self, video_id: str, record: Optional[VideoRecord]) -> list:
        if record is None:
            return candidate_remote_keys(video_id)
        return candidate_remote_keys(
            video_id,
            known_key=record.remote_key,
            preferred_extension=get_file_extension(Path(record.filename)) or None,
        )

    def _trigger_mirror_failed(self, video_id: str, error: str) -> None:
        """Trigger mirror failed event"""
        if self.on_mirror_failed:
            try:
                self.on_mirror_failed(video_id, error)
            except Exception as e:
                self.logger.error(f"Error in mirror_failed callback: {e}")

    def _trigger_error(self, error_msg: str) -> None:
        """Trigger storage error event"""
        if self.on_storage_error:
            try:
                self.on_storage_error(error_msg)
            except Exception as e:
                self.logger.error(f"Error in storage_error callback: {e}")
