"""
Storage Interface

Abstract interface for local object storage following Dependency Inversion Principle.
Controllers depend on this interface, not concrete implementations.

Also defines the storage error taxonomy shared by every storage component.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import BinaryIO, Callable, Optional, Tuple

from storage.models.video_record import StoredObject

ProgressCallback = Callable[[int], None]


class StorageInterface(ABC):
    """
    Abstract base class for local object storage.

    Stores video payloads in one directory per video identifier.
    Local storage is the durability anchor: writes must succeed here
    before anything else happens.
    """

    @abstractmethod
    def initialize(self) -> None:
        """
        Initialize storage system.

        Creates necessary directories.

        Raises:
            StorageError: If initialization fails
        """

    @abstractmethod
    def save_stream(
        self,
        stream: BinaryIO,
        filename: str,
        expected_size: Optional[int] = None,
        video_id: Optional[str] = None,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> StoredObject:
        """
        Write a byte stream to a new video directory.

        Args:
            stream: Readable binary stream
            filename: Client filename (extension decides stored extension)
            expected_size: Declared total size, if known
            video_id: Identifier to use (None = generate uuid4)
            progress_callback: Called with bytes written so far

        Returns:
            StoredObject with path, size and checksum

        Raises:
            RecordValidationError: If extension or size is not acceptable
            IncompleteUploadError: If stream ended before expected_size
            StorageError: If the write fails
        """

    @abstractmethod
    def open_video(self, video_id: str) -> Tuple[BinaryIO, int, Path]:
        """
        Open a stored payload for reading.

        Returns:
            (stream, size, path)

        Raises:
            VideoNotFoundError: If no payload exists for the id
        """

    @abstractmethod
    def find_video_file(self, video_id: str) -> Optional[Path]:
        """Locate the payload file for a video id"""

    @abstractmethod
    def video_exists(self, video_id: str) -> bool:
        """Check if a payload exists locally"""

    def is_writing(self, video_id: str) -> bool:
        """True while a payload for this id is still being written"""
        return False

    @abstractmethod
    def delete_video(self, video_id: str) -> bool:
        """
        Delete a video directory with everything in it.

        Returns:
            True if the directory is gone afterwards

        Raises:
            StorageError: If deletion fails
        """

    @abstractmethod
    def get_stats(self) -> dict:
        """Get local usage statistics"""

    @abstractmethod
    def test_connection(self) -> bool:
        """Check that the storage root is writable"""


# =============================================================================
# ERRORS
# =============================================================================


class StorageError(Exception):
    """
    Custom exception for storage-related errors.

    Makes it easy to catch storage-specific errors:
        except StorageError as e:
            logger.error(f"Storage failed: {e}")
    """


class VideoNotFoundError(StorageError):
    """Requested video, payload or record does not exist"""

    def __init__(self, video_id: str, message: Optional[str] = None):
        super().__init__(message or f"Video not found: {video_id}")
        self.video_id = video_id


class VideoUnavailableError(StorageError):
    """Video exists but downloads are disabled"""


class RecordValidationError(StorageError):
    """
    Structural problem with a record or file.

    Examples:
    - Missing required field
    - Unsupported extension
    - File too large or too small
    """

    def __init__(self, message: str, errors: Optional[list] = None):
        super().__init__(message)
        self.errors = errors or [message]


class BackendUnavailableError(StorageError):
    """Transient or environmental backend failure (disk, network)"""


class IncompleteUploadError(StorageError):
    """
    Stream ended before the declared size was written.

    The partial payload is left on disk so orphan recovery can find it.
    """

    def __init__(self, video_id: str, written: int, expected: int):
        super().__init__(
            f"Upload incomplete for {video_id}: "
            f"received {written} of {expected} bytes"
        )
        self.video_id = video_id
        self.written = written
        self.expected = expected
