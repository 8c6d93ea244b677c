"""
Local Storage Implementation

Concrete implementation of StorageInterface using the local filesystem.
One directory per video identifier:

    videos/<video_id>/video.<ext>
    videos/<video_id>/metadata.json   (written by MetadataManager)
"""

import hashlib
import logging
import shutil
import threading
import uuid
from pathlib import Path
from typing import BinaryIO, Optional, Tuple

from config.settings import VIDEO_FILE_STEM
from storage.config import StorageConfig
from storage.interfaces.storage_interface import (
    IncompleteUploadError,
    ProgressCallback,
    RecordValidationError,
    StorageError,
    StorageInterface,
    VideoNotFoundError,
)
from storage.models.video_record import StoredObject
from storage.utils.path_utils import (
    calculate_directory_size,
    ensure_directory,
    format_size,
    get_file_extension,
    is_path_writable,
    is_video_file,
)


class LocalStorage(StorageInterface):
    """
    Local filesystem object storage.

    Local storage is the durability anchor: every upload lands here first,
    and a failed write fails the whole save.
    """

    def __init__(self, config: Optional[StorageConfig] = None):
        """
        Initialize local storage.

        Args:
            config: Storage configuration (None = defaults)
        """
        self.logger = logging.getLogger(__name__)
        self.config = config or StorageConfig()
        self.videos_dir = self.config.videos_dir

        # Ids with a write in progress (not orphans yet)
        self._writing = set()
        self._writing_lock = threading.Lock()

        self.logger.info(f"Local storage initialized (base: {self.videos_dir})")

    def initialize(self) -> None:
        """Create the directory tree and verify it is writable"""
        for directory in (
            self.config.videos_dir,
            self.config.metadata_dir,
            self.config.state_dir,
            self.config.recovery_dir,
            self.config.quarantine_dir,
        ):
            if not ensure_directory(directory):
                raise StorageError(f"Cannot create storage directory: {directory}")

        if not is_path_writable(self.videos_dir):
            raise StorageError(f"Storage directory is not writable: {self.videos_dir}")

        self.logger.info("Local storage ready")

    def video_dir(self, video_id: str) -> Path:
        return self.videos_dir / video_id

    def is_writing(self, video_id: str) -> bool:
        """True while save_stream is writing this id"""
        with self._writing_lock:
            return video_id in self._writing

    # =========================================================================
    # WRITE
    # =========================================================================

    def save_stream(
        self,
        stream: BinaryIO,
        filename: str,
        expected_size: Optional[int] = None,
        video_id: Optional[str] = None,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> StoredObject:
        """
        Write a byte stream to videos/<id>/video.<ext>.

        Process:
        1. Validate extension and declared size
        2. Stream chunks to disk, hashing as we go
        3. Compare bytes written against expected_size

        A short stream leaves the partial payload in place (no metadata),
        so orphan recovery can find it later.

        Raises:
            RecordValidationError: Bad extension or too large
            IncompleteUploadError: Stream ended or broke before expected_size
            StorageError: Disk write failed
        """
        extension = get_file_extension(Path(filename))
        if not is_video_file(Path(filename)):
            raise RecordValidationError(f"Unsupported video format: {extension or filename}")

        max_size = self.config.max_video_size_bytes
        if expected_size is not None and expected_size > max_size:
            raise RecordValidationError(
                f"File too large: {format_size(expected_size)} "
                f"(maximum: {format_size(max_size)})"
            )

        video_id = video_id or str(uuid.uuid4())

        with self._writing_lock:
            self._writing.add(video_id)
        try:
            return self._write_payload(
                stream, filename, extension, video_id, expected_size, progress_callback
            )
        finally:
            with self._writing_lock:
                self._writing.discard(video_id)

    def _write_payload(
        self,
        stream: BinaryIO,
        filename: str,
        extension: str,
        video_id: str,
        expected_size: Optional[int],
        progress_callback: Optional[ProgressCallback],
    ) -> StoredObject:
        max_size = self.config.max_video_size_bytes
        target_dir = self.video_dir(video_id)
        target_path = target_dir / f"{VIDEO_FILE_STEM}{extension}"

        try:
            target_dir.mkdir(parents=True, exist_ok=True)
            self._remove_stale_payloads(target_dir)
        except OSError as e:
            raise StorageError(f"Cannot prepare directory for {video_id}: {e}") from e

        digest = hashlib.md5()
        written = 0
        chunk_size = self.config.stream_chunk_size

        try:
            with open(target_path, "wb") as out:
                while True:
                    try:
                        chunk = stream.read(chunk_size)
                    except Exception as e:
                        # Any read failure means the client stream broke
                        if expected_size:
                            raise IncompleteUploadError(video_id, written, expected_size) from e
                        raise StorageError(f"Stream read failed for {video_id}: {e}") from e

                    if not chunk:
                        break

                    written += len(chunk)
                    if written > max_size:
                        out.close()
                        shutil.rmtree(target_dir, ignore_errors=True)
                        raise RecordValidationError(
                            f"File too large: exceeds {format_size(max_size)}"
                        )

                    out.write(chunk)
                    digest.update(chunk)

                    if progress_callback:
                        progress_callback(written)

        except OSError as e:
            raise StorageError(f"Failed to write {target_path}: {e}") from e

        if expected_size is not None and written < expected_size:
            self.logger.warning(
                f"Short upload for {video_id}: {written}/{expected_size} bytes "
                f"(partial payload kept for recovery)"
            )
            raise IncompleteUploadError(video_id, written, expected_size)

        self.logger.info(f"Stored {video_id}: {target_path.name} ({format_size(written)})")

        return StoredObject(
            video_id=video_id,
            path=target_path,
            size_bytes=written,
            checksum=digest.hexdigest(),
            filename=filename,
        )

    def _remove_stale_payloads(self, target_dir: Path) -> None:
        """Drop earlier payload files when an id is re-used (resumed upload)"""
        for path in target_dir.iterdir():
            if path.is_file() and path.stem == VIDEO_FILE_STEM and is_video_file(path):
                path.unlink()

    # =========================================================================
    # READ
    # =========================================================================

    def find_video_file(self, video_id: str) -> Optional[Path]:
        """
        Locate the payload for a video.

        Prefers video.<ext>; recovered orphans keep their original name,
        so any recognised video file is accepted after that.
        """
        directory = self.video_dir(video_id)
        if not directory.is_dir():
            return None

        candidates = sorted(p for p in directory.iterdir() if p.is_file() and is_video_file(p))
        for path in candidates:
            if path.stem == VIDEO_FILE_STEM:
                return path
        return candidates[0] if candidates else None

    def open_video(self, video_id: str) -> Tuple[BinaryIO, int, Path]:
        path = self.find_video_file(video_id)
        if path is None:
            raise VideoNotFoundError(video_id, f"No local file for video {video_id}")

        try:
            size = path.stat().st_size
            return open(path, "rb"), size, path
        except FileNotFoundError as e:
            raise VideoNotFoundError(video_id, f"Local file vanished: {path}") from e
        except OSError as e:
            raise StorageError(f"Cannot open {path}: {e}") from e

    def video_exists(self, video_id: str) -> bool:
        return self.find_video_file(video_id) is not None

    # =========================================================================
    # DELETE
    # =========================================================================

    def delete_video(self, video_id: str) -> bool:
        """
        Remove the whole video directory.

        Returns:
            True once the directory is gone (also when it never existed)

        Raises:
            StorageError: If removal fails
        """
        directory = self.video_dir(video_id)
        if not directory.exists():
            self.logger.debug(f"Nothing to delete locally for {video_id}")
            return True

        try:
            shutil.rmtree(directory)
        except OSError as e:
            raise StorageError(f"Failed to delete {directory}: {e}") from e

        self.logger.info(f"Deleted local video directory: {video_id}")
        return True

    # =========================================================================
    # DIAGNOSTICS
    # =========================================================================

    def get_stats(self) -> dict:
        file_count = 0
        if self.videos_dir.exists():
            file_count = sum(
                1 for p in self.videos_dir.rglob("*") if p.is_file() and is_video_file(p)
            )

        total = calculate_directory_size(self.videos_dir) if self.videos_dir.exists() else 0
        return {
            "path": str(self.videos_dir),
            "file_count": file_count,
            "total_bytes": total,
            "total_human": format_size(total),
        }

    def test_connection(self) -> bool:
        try:
            ensure_directory(self.videos_dir)
            return is_path_writable(self.videos_dir)
        except OSError as e:
            self.logger.error(f"Local storage check failed: {e}")
            return False
