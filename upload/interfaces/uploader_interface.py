"""
Uploader Interface

Abstract interface for byte-stream persistence.
The upload orchestrator depends on this abstraction, not on a concrete
streaming implementation.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import BinaryIO, Optional

from storage.models.video_record import VideoRecord
from upload.constants import UploadOutcome


@dataclass
class UploadResult:
    """
    Result of an orchestrated upload.

    Attributes:
        record: Stored (or matched, or recovered) video
        outcome: How the record was produced
        upload_id: Upload state identifier
        upload_duration: Seconds spent in the orchestrator
    """

    record: VideoRecord
    outcome: UploadOutcome
    upload_id: str
    upload_duration: float = 0.0


class StreamPersistenceInterface(ABC):
    """
    Abstract base class for byte-stream persistence.

    Given a readable stream and its declared size, persist every byte
    and return the populated VideoRecord.
    """

    @abstractmethod
    def persist_stream(
        self,
        stream: BinaryIO,
        owner_client: str,
        owner_project: str,
        filename: str,
        total_size: int,
        upload_id: Optional[str] = None,
        video_id: Optional[str] = None,
    ) -> VideoRecord:
        """
        Persist a byte stream.

        Must fail (not partially return) if the stream ends before
        total_size bytes; whatever was written stays on disk as an orphan.

        Args:
            stream: Readable binary stream
            owner_client: Client name
            owner_project: Project name
            filename: Original filename
            total_size: Declared size in bytes
            upload_id: Upload state to report progress to (optional)
            video_id: Re-use an existing video directory (optional)

        Returns:
            VideoRecord for the stored video

        Raises:
            IncompleteUploadError: Stream ended early
            StorageError: Persistence failed
        """


class UploaderError(Exception):
    """
    Exception raised for upload-related errors.

    Examples:
    - Upload state missing
    - Upload cannot be resumed
    """


class UploadStateNotFoundError(UploaderError):
    """No upload state exists for the given upload id"""

    def __init__(self, upload_id: str):
        super().__init__(f"Upload state not found: {upload_id}")
        self.upload_id = upload_id
