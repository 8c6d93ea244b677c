"""
Metadata Manager

Durable video id → VideoRecord mapping plus a denormalized list index.
Single responsibility: metadata persistence and queries.
"""

import logging
import threading
from typing import Any, Callable, List, Optional, Union

from config.settings import INDEX_FILENAME
from storage.config import StorageConfig
from storage.constants import StorageStatus
from storage.interfaces.storage_interface import StorageError, VideoNotFoundError
from storage.managers.record_store import JsonFileRecordStore, RecordStore
from storage.models.video_record import ValidationResult, VideoRecord
from storage.utils.validation_utils import validate_record


class MetadataManager:
    """
    Manages video metadata records and the list index.

    Responsibilities:
    - Save/load/update/delete individual records
    - Keep the list index in sync (upsert by id, newest first)
    - Query videos through the index
    - Rebuild the index from individual records after corruption

    Thread Safety:
    - WRITE operations (save, update, delete, rebuild) use threading.Lock
      because the index update is read-modify-write
    - READ operations go straight to the record store
    - No cross-process locking: two processes writing the same id can
      still interleave
    """

    def __init__(
        self,
        config: Optional[StorageConfig] = None,
        record_store: Optional[RecordStore] = None,
    ):
        """
        Initialize metadata manager.

        Args:
            config: Storage configuration (None = defaults)
            record_store: Backend to use (None = JSON files under storage root)
        """
        self.logger = logging.getLogger(__name__)
        self.config = config or StorageConfig()
        self.store = record_store or JsonFileRecordStore(
            records_dir=self.config.videos_dir,
            index_path=self.config.metadata_dir / INDEX_FILENAME,
        )
        self._write_lock = threading.Lock()

        self.logger.info(f"Metadata manager initialized ({type(self.store).__name__})")

    # =========================================================================
    # CRUD
    # =========================================================================

    def save(self, record: VideoRecord) -> VideoRecord:
        """
        Write a record and upsert it into the index.

        If the index update fails after the record write, the record
        stands and the failure is logged; rebuild_index() heals it.

        Raises:
            StorageError: If the record itself cannot be written
        """
        with self._write_lock:
            self.store.write_record(record.id, record.to_dict())
            try:
                self._upsert_index(record)
            except StorageError as e:
                self.logger.error(
                    f"Index update failed for {record.id}, run rebuild_index(): {e}"
                )

        self.logger.debug(f"Saved metadata: {record}")
        return record

    def load(self, video_id: str) -> Optional[VideoRecord]:
        """
        Load a record by id.

        Returns:
            VideoRecord, or None if missing or unreadable
        """
        try:
            data = self.store.read_record(video_id)
        except StorageError as e:
            self.logger.error(f"Cannot load metadata for {video_id}: {e}")
            return None

        if data is None:
            return None

        try:
            return VideoRecord.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            self.logger.error(f"Invalid metadata for {video_id}: {e}")
            return None

    def exists(self, video_id: str) -> bool:
        return self.load(video_id) is not None

    def update(self, video_id: str, **fields: Any) -> VideoRecord:
        """
        Merge fields into an existing record and re-save it.

        Args:
            video_id: Record to update
            **fields: VideoRecord attributes to replace

        Returns:
            Updated VideoRecord

        Raises:
            VideoNotFoundError: If no record exists
            ValueError: If a field name is not a VideoRecord attribute

        Example:
            manager.update(video_id, storage_status=StorageStatus.MIRRORED)
        """
        return self._modify(video_id, lambda record: self._apply_fields(record, fields))

    def delete(self, video_id: str) -> bool:
        """
        Remove a record from the index and the record store.

        Returns:
            True if anything was removed
        """
        with self._write_lock:
            removed_from_index = False
            try:
                entries = self.store.read_index()
                remaining = [e for e in entries if e.get("id") != video_id]
                if len(remaining) != len(entries):
                    self.store.write_index(remaining)
                    removed_from_index = True
            except StorageError as e:
                self.logger.error(f"Index update failed while deleting {video_id}: {e}")

            removed_record = self.store.delete_record(video_id)

        if removed_record or removed_from_index:
            self.logger.info(f"Deleted metadata: {video_id}")
            return True
        return False

    def increment_download_count(self, video_id: str) -> VideoRecord:
        """Bump download counter (read path only)"""
        def bump(record: VideoRecord) -> None:
            record.download_count += 1

        return self._modify(video_id, bump)

    def set_active(self, video_id: str, active: bool) -> VideoRecord:
        """Enable or soft-disable downloads without deleting"""
        return self.update(video_id, is_active=active)

    # =========================================================================
    # QUERIES (index only)
    # =========================================================================

    def list_all(self) -> List[VideoRecord]:
        """All indexed records, newest first"""
        records = []
        for entry in self._read_index_safe():
            try:
                records.append(VideoRecord.from_dict(entry))
            except (KeyError, TypeError, ValueError) as e:
                self.logger.warning(f"Skipping malformed index entry {entry.get('id')}: {e}")
        return records

    def list_by_client(self, client: str) -> List[VideoRecord]:
        """Case-insensitive substring match on owner_client"""
        needle = client.lower()
        return [r for r in self.list_all() if needle in r.owner_client.lower()]

    def list_by_project(self, project: str) -> List[VideoRecord]:
        """Case-insensitive substring match on owner_project"""
        needle = project.lower()
        return [r for r in self.list_all() if needle in r.owner_project.lower()]

    def list_by_status(self, status: Union[StorageStatus, str]) -> List[VideoRecord]:
        status = StorageStatus(status)
        return [r for r in self.list_all() if r.storage_status == status]

    def list_active(self) -> List[VideoRecord]:
        return [r for r in self.list_all() if r.is_active]

    # =========================================================================
    # MAINTENANCE
    # =========================================================================

    def rebuild_index(self) -> int:
        """
        Regenerate the index from every individual record.

        Unreadable or invalid records are skipped and logged.

        Returns:
            Number of records in the rebuilt index
        """
        self.logger.info("Rebuilding metadata index...")
        records = []

        with self._write_lock:
            for video_id, data, error in self.store.iter_records():
                if error:
                    self.logger.warning(f"Skipping unreadable record {video_id}: {error}")
                    continue

                result = self.validate(data)
                if not result.valid:
                    self.logger.warning(
                        f"Skipping invalid record {video_id}: {', '.join(result.errors)}"
                    )
                    continue

                try:
                    records.append(VideoRecord.from_dict(data))
                except (KeyError, TypeError, ValueError) as e:
                    self.logger.warning(f"Skipping invalid record {video_id}: {e}")

            records.sort(key=lambda r: r.upload_timestamp, reverse=True)
            self.store.write_index([r.to_dict() for r in records])

        self.logger.info(f"Index rebuilt with {len(records)} videos")
        return len(records)

    def validate(self, record: Any) -> ValidationResult:
        """
        Check required fields and enum values.

        The store does not call this on save; callers validate first.
        """
        return validate_record(record)

    def get_counts(self) -> dict:
        """Count indexed videos per storage status"""
        counts = {status.value: 0 for status in StorageStatus}
        records = self.list_all()
        for record in records:
            counts[record.storage_status.value] += 1
        counts["total"] = len(records)
        return counts

    # =========================================================================
    # INTERNAL
    # =========================================================================

    def _modify(self, video_id: str, mutate: Callable[[VideoRecord], None]) -> VideoRecord:
        """Load, mutate and save a record under the write lock"""
        with self._write_lock:
            data = self.store.read_record(video_id)
            if data is None:
                raise VideoNotFoundError(video_id, f"Metadata not found: {video_id}")

            record = VideoRecord.from_dict(data)
            mutate(record)

            self.store.write_record(record.id, record.to_dict())
            try:
                self._upsert_index(record)
            except StorageError as e:
                self.logger.error(
                    f"Index update failed for {record.id}, run rebuild_index(): {e}"
                )
        return record

    @staticmethod
    def _apply_fields(record: VideoRecord, fields: dict) -> None:
        for name, value in fields.items():
            if name == "id":
                raise ValueError("Video id is immutable")
            if not hasattr(record, name):
                raise ValueError(f"Unknown VideoRecord field: {name}")
            if name == "storage_status":
                value = StorageStatus(value)
            setattr(record, name, value)

    def _upsert_index(self, record: VideoRecord) -> None:
        """Replace entry by id and keep list sorted newest first (caller holds lock)"""
        entries = [e for e in self.store.read_index() if e.get("id") != record.id]
        entries.append(record.to_dict())
        entries.sort(key=lambda e: e.get("upload_timestamp") or "", reverse=True)
        self.store.write_index(entries)

    def _read_index_safe(self) -> List[dict]:
        try:
            return self.store.read_index()
        except StorageError as e:
            self.logger.error(f"Cannot read metadata index: {e}")
            return []
