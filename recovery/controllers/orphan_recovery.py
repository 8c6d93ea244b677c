"""
Orphan Recovery Controller

Finds video payloads with no metadata next to them, decides whether they
are legitimate, and reintegrates them into the metadata store.

Per-orphan state machine (recorded in the orphan registry):
    pending → recovered | invalid | failed

Repeated scans of a still-broken orphan accumulate attempts rather than
resetting history. Invalid files are moved to quarantine, never deleted.
"""

import logging
import re
import shutil
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterator, List, Optional, Tuple

from config.settings import METADATA_FILENAME, RECOVERED_OWNER_SENTINEL
from recovery.constants import RecoveryStatus
from recovery.managers.orphan_registry import OrphanRegistryManager
from recovery.models.orphan import OrphanFile, OrphanRegistry, RecoverySummary
from storage.config import StorageConfig
from storage.constants import StorageStatus, VideoQuality
from storage.interfaces.storage_interface import StorageError
from storage.managers.metadata_manager import MetadataManager
from storage.models.video_record import VideoRecord
from storage.utils.path_utils import (
    content_type_for,
    ensure_directory,
    is_video_file,
    safe_filename,
)
from storage.utils.validation_utils import compute_checksum, validate_video_file

# Separators between owner tokens in a filename stem
OWNER_SEPARATORS = re.compile(r"[-_\s]+")


def parse_owner_names(filename: str) -> Tuple[str, str]:
    """
    Infer (client, project) from a filename.

    Example:
        parse_owner_names("acme-launch-video.mp4")  # ("acme", "launch")
        parse_owner_names("clip.mp4")               # ("recovered", "recovered")
    """
    tokens = [t for t in OWNER_SEPARATORS.split(Path(filename).stem) if t]
    if len(tokens) < 2:
        return RECOVERED_OWNER_SENTINEL, RECOVERED_OWNER_SENTINEL
    return tokens[0], tokens[1]


class OrphanRecoveryService:
    """
    Orphan scanner and recovery engine.

    Usage:
        recovery = OrphanRecoveryService(config, metadata)
        summary = recovery.recover_all_orphans()
        print(f"Recovered {summary.recovered}, failed {summary.failed}")
    """

    def __init__(
        self,
        config: Optional[StorageConfig] = None,
        metadata: Optional[MetadataManager] = None,
        registry: Optional[OrphanRegistryManager] = None,
        is_busy: Optional[Callable[[str], bool]] = None,
    ):
        """
        Args:
            config: Storage configuration (None = defaults)
            metadata: Metadata store the recovered records are written to
            registry: Orphan registry (None = file next to the recovery dir)
            is_busy: Returns True for video ids still being written;
                those directories are not orphans yet
        """
        self.logger = logging.getLogger(__name__)
        self.config = config or StorageConfig()
        self.metadata = metadata or MetadataManager(self.config)
        self.registry = registry or OrphanRegistryManager(self.config)
        self.is_busy = is_busy

        self.videos_dir = self.config.videos_dir
        self.quarantine_dir = self.config.quarantine_dir

    # =========================================================================
    # SCANNING
    # =========================================================================

    def _metadata_less_dirs(self) -> Iterator[Path]:
        """Video directories that have no metadata file"""
        if not self.videos_dir.exists():
            return

        for directory in sorted(self.videos_dir.iterdir()):
            if not directory.is_dir() or directory.name.startswith("."):
                continue
            if (directory / METADATA_FILENAME).exists():
                continue
            if self.is_busy and self.is_busy(directory.name):
                continue
            yield directory

    @staticmethod
    def _files_in(directory: Path) -> List[Path]:
        try:
            return sorted(
                p for p in directory.iterdir()
                if p.is_file() and not p.name.startswith(".")
            )
        except OSError:
            return []

    def scan_for_orphans(self) -> List[OrphanFile]:
        """
        Walk the video tree for payloads without metadata.

        Every recognised video file in a metadata-less directory is a
        separate candidate. Directories with metadata are skipped entirely.

        Returns:
            Orphans found in this scan (also registered as pending)
        """
        orphans: List[OrphanFile] = []

        for directory in self._metadata_less_dirs():
            for path in self._files_in(directory):
                if not is_video_file(path):
                    continue
                try:
                    stat = path.stat()
                except OSError as e:
                    self.logger.warning(f"Cannot stat {path}: {e}")
                    continue

                created = getattr(stat, "st_birthtime", stat.st_mtime)
                orphans.append(
                    OrphanFile(
                        video_id=directory.name,
                        file_path=path,
                        size_bytes=stat.st_size,
                        created_at=datetime.fromtimestamp(created),
                    )
                )

        if orphans:
            self.logger.info(f"Found {len(orphans)} orphaned video file(s)")

        try:
            self.registry.record_scan(orphans)
        except StorageError as e:
            self.logger.error(f"Could not update orphan registry after scan: {e}")

        return orphans

    # =========================================================================
    # RECOVERY
    # =========================================================================

    def validate_orphan_file(self, orphan: OrphanFile) -> bool:
        """
        Cheap sanity gate: readable, big enough, video extension.

        No codec or container inspection.
        """
        quality, error = validate_video_file(
            orphan.file_path,
            min_size=self.config.min_orphan_size_bytes,
        )
        if quality != VideoQuality.VALID:
            self.logger.info(f"Orphan {orphan.video_id}/{orphan.filename} rejected: {error}")
            return False
        return True

    def reconstruct_metadata(self, orphan: OrphanFile) -> Optional[VideoRecord]:
        """
        Best-effort metadata for an orphan.

        Owner names come from the filename; the checksum is computed over
        the whole file.

        Returns:
            VideoRecord, or None if the file cannot be read
        """
        try:
            size = orphan.file_path.stat().st_size
            checksum = compute_checksum(orphan.file_path, self.config.stream_chunk_size)
        except OSError as e:
            self.logger.warning(f"Cannot read orphan {orphan.file_path}: {e}")
            return None

        owner_client, owner_project = parse_owner_names(orphan.filename)

        return VideoRecord(
            id=orphan.video_id,
            filename=orphan.filename,
            owner_client=owner_client,
            owner_project=owner_project,
            size_bytes=size,
            checksum=checksum,
            content_type=content_type_for(orphan.filename),
            upload_timestamp=orphan.created_at,
            storage_status=StorageStatus.LOCAL_ONLY,
            local_path=str(orphan.file_path),
            download_count=0,
            is_active=True,
        )

    def recover_orphan(self, orphan: OrphanFile) -> Optional[VideoRecord]:
        """
        Validate, reconstruct and persist one orphan.

        Returns:
            Recovered VideoRecord, or None if recovery did not happen
            (the registry says why)
        """
        existing = self.metadata.load(orphan.video_id)
        if existing is not None:
            if existing.local_path == str(orphan.file_path):
                self.logger.debug(f"Orphan {orphan.video_id} already recovered")
                return existing
            self._record(
                orphan,
                RecoveryStatus.FAILED,
                error="directory already has metadata for another file",
            )
            return None

        if not self.validate_orphan_file(orphan):
            self._record(orphan, RecoveryStatus.INVALID, error="failed validation")
            return None

        record = self.reconstruct_metadata(orphan)
        if record is None:
            self._record(orphan, RecoveryStatus.FAILED, error="file unreadable")
            return None

        validation = self.metadata.validate(record)
        if not validation.valid:
            self._record(orphan, RecoveryStatus.FAILED, error="; ".join(validation.errors))
            return None

        try:
            self.metadata.save(record)
        except StorageError as e:
            self.logger.error(f"Could not save recovered metadata for {orphan.video_id}: {e}")
            self._record(orphan, RecoveryStatus.FAILED, error=str(e))
            return None

        self._record(orphan, RecoveryStatus.RECOVERED, recovered_record=record.to_dict())
        self.logger.info(
            f"Recovered orphan {orphan.video_id}: {orphan.filename} "
            f"({record.owner_client}/{record.owner_project})"
        )
        return record

    def recover_all_orphans(self) -> RecoverySummary:
        """
        Scan once and attempt every candidate independently.

        Non-video files left in metadata-less directories count as failed.
        """
        summary = RecoverySummary()

        for orphan in self.scan_for_orphans():
            try:
                record = self.recover_orphan(orphan)
            except Exception as e:
                self.logger.error(f"Unexpected error recovering {orphan}: {e}", exc_info=True)
                record = None

            if record is not None:
                summary.recovered += 1
            else:
                summary.failed += 1

        for directory in self._metadata_less_dirs():
            stray = [p for p in self._files_in(directory) if not is_video_file(p)]
            if stray:
                self.logger.info(
                    f"{directory.name}: {len(stray)} non-video file(s) without metadata"
                )
            summary.failed += len(stray)

        if summary.recovered or summary.failed:
            self.logger.info(
                f"Orphan recovery: {summary.recovered} recovered, {summary.failed} failed"
            )
        return summary

    # =========================================================================
    # QUARANTINE
    # =========================================================================

    def cleanup_invalid_orphans(self) -> int:
        """
        Move invalid orphans and stray non-video files into quarantine.

        Files are renamed <video_id>_<filename>. Directories left empty
        are removed.

        Returns:
            Number of files moved
        """
        moved = 0

        for orphan in self.scan_for_orphans():
            if not self.validate_orphan_file(orphan):
                if self._quarantine(orphan.video_id, orphan.file_path):
                    moved += 1

        for directory in list(self._metadata_less_dirs()):
            for path in self._files_in(directory):
                if not is_video_file(path) and self._quarantine(directory.name, path):
                    moved += 1
            self._remove_if_empty(directory)

        if moved:
            self.logger.info(f"Quarantined {moved} invalid file(s) in {self.quarantine_dir}")
        return moved

    def _quarantine(self, video_id: str, path: Path) -> bool:
        if not ensure_directory(self.quarantine_dir):
            return False

        target = self.quarantine_dir / safe_filename(f"{video_id}_{path.name}")
        if target.exists():
            stamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
            target = self.quarantine_dir / safe_filename(
                f"{video_id}_{path.stem}_{stamp}{path.suffix}"
            )

        try:
            shutil.move(str(path), str(target))
        except OSError as e:
            self.logger.error(f"Failed to quarantine {path}: {e}")
            return False

        self.logger.warning(f"Quarantined {path} -> {target.name}")
        return True

    def _remove_if_empty(self, directory: Path) -> None:
        try:
            if directory.exists() and not any(directory.iterdir()):
                directory.rmdir()
                self.logger.debug(f"Removed empty directory {directory}")
        except OSError as e:
            self.logger.warning(f"Could not remove {directory}: {e}")

    # =========================================================================
    # REPORTING
    # =========================================================================

    def get_registry(self) -> OrphanRegistry:
        return self.registry.load()

    def get_status(self) -> dict:
        registry = self.registry.load()
        return {
            "last_scan": registry.last_scan.isoformat() if registry.last_scan else None,
            "registry": registry.count_by_status(),
            "quarantined_files": (
                sum(1 for p in self.quarantine_dir.iterdir() if p.is_file())
                if self.quarantine_dir.exists() else 0
            ),
        }

    def _record(self, orphan: OrphanFile, status: RecoveryStatus, **kwargs) -> None:
        try:
            self.registry.record_attempt(orphan, status, **kwargs)
        except StorageError as e:
            self.logger.error(f"Could not update orphan registry for {orphan.video_id}: {e}")
