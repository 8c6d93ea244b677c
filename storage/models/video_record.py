"""
Video Record Models

Data classes representing stored videos and their metadata.
"""

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, BinaryIO, Dict, Optional

from storage.constants import CompressionStatus, StorageSource, StorageStatus


def _parse_datetime(value: Any) -> Optional[datetime]:
    """Accept datetime, ISO string or None"""
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


@dataclass
class CompressionState:
    """
    Tracks an asynchronous post-processing job for a video.

    Lifecycle: processing → completed | failed
    """

    status: CompressionStatus = CompressionStatus.PROCESSING
    original_size: Optional[int] = None
    result_size: Optional[int] = None
    started_at: datetime = field(default_factory=datetime.now)
    completed_at: Optional[datetime] = None
    error: Optional[str] = None

    @property
    def ratio(self) -> Optional[float]:
        """Result size as a fraction of the original"""
        if not self.original_size or self.result_size is None:
            return None
        return self.result_size / self.original_size

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "original_size": self.original_size,
            "result_size": self.result_size,
            "started_at": self.started_at.isoformat(),
            "completed_at": (
                self.completed_at.isoformat() if self.completed_at else None
            ),
            "error": self.error,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CompressionState":
        return cls(
            status=CompressionStatus(data.get("status", "processing")),
            original_size=data.get("original_size"),
            result_size=data.get("result_size"),
            started_at=_parse_datetime(data.get("started_at")) or datetime.now(),
            completed_at=_parse_datetime(data.get("completed_at")),
            error=data.get("error"),
        )


@dataclass
class VideoRecord:
    """
    Represents one uploaded video and where its bytes live.

    Created at first successful persistence (upload or orphan recovery),
    mutated by mirroring (storage_status), the read path (download_count)
    and compression completion. Deleted only by an explicit delete.
    """

    # Identification
    id: str  # uuid4, immutable once assigned
    filename: str  # Original client filename
    owner_client: str
    owner_project: str

    # Payload
    size_bytes: int
    checksum: Optional[str] = None  # MD5 hex digest computed at write time
    content_type: str = "application/octet-stream"

    # Timestamps
    upload_timestamp: datetime = field(default_factory=datetime.now)

    # Location
    storage_status: StorageStatus = StorageStatus.LOCAL_ONLY
    local_path: Optional[str] = None
    remote_key: Optional[str] = None

    # Access
    download_count: int = 0
    is_active: bool = True

    # Post-processing
    compression: Optional[CompressionState] = None

    @property
    def has_remote_copy(self) -> bool:
        """Check if a remote copy is presumed retrievable"""
        return self.storage_status.has_remote_copy

    @property
    def age_hours(self) -> float:
        """Get age of record in hours"""
        return (datetime.now() - self.upload_timestamp).total_seconds() / 3600

    def mark_mirrored(self, remote_key: str) -> None:
        """Record a successful remote mirror"""
        self.storage_status = StorageStatus.MIRRORED
        self.remote_key = remote_key

    def start_compression(self, original_size: Optional[int] = None) -> None:
        """Begin a compression job"""
        self.compression = CompressionState(
            original_size=original_size or self.size_bytes,
        )

    def complete_compression(self, result_size: int) -> None:
        """Mark compression job as completed"""
        if self.compression is None:
            self.start_compression()
        self.compression.status = CompressionStatus.COMPLETED
        self.compression.result_size = result_size
        self.compression.completed_at = datetime.now()

    def fail_compression(self, error: str) -> None:
        """Mark compression job as failed"""
        if self.compression is None:
            self.start_compression()
        self.compression.status = CompressionStatus.FAILED
        self.compression.error = error
        self.compression.completed_at = datetime.now()

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON storage"""
        return {
            "id": self.id,
            "filename": self.filename,
            "owner_client": self.owner_client,
            "owner_project": self.owner_project,
            "size_bytes": self.size_bytes,
            "checksum": self.checksum,
            "content_type": self.content_type,
            "upload_timestamp": self.upload_timestamp.isoformat(),
            "storage_status": self.storage_status.value,
            "local_path": self.local_path,
            "remote_key": self.remote_key,
            "download_count": self.download_count,
            "is_active": self.is_active,
            "compression": (
                self.compression.to_dict() if self.compression else None
            ),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "VideoRecord":
        """
        Create VideoRecord from dictionary (JSON record).

        Raises:
            KeyError: If a required field is missing
            ValueError: If a timestamp or enum value is malformed
        """
        compression = data.get("compression")
        return cls(
            id=data["id"],
            filename=data["filename"],
            owner_client=data["owner_client"],
            owner_project=data["owner_project"],
            size_bytes=data["size_bytes"],
            checksum=data.get("checksum"),
            content_type=data.get("content_type", "application/octet-stream"),
            upload_timestamp=_parse_datetime(data["upload_timestamp"]),
            storage_status=StorageStatus(
                data.get("storage_status", StorageStatus.LOCAL_ONLY.value)
            ),
            local_path=data.get("local_path"),
            remote_key=data.get("remote_key"),
            download_count=data.get("download_count", 0),
            is_active=data.get("is_active", True),
            compression=(
                CompressionState.from_dict(compression) if compression else None
            ),
        )

    def __repr__(self) -> str:
        return (
            f"VideoRecord(id={self.id}, filename={self.filename}, "
            f"status={self.storage_status.value})"
        )


@dataclass
class StoredObject:
    """Payload written to local storage, before any metadata exists"""

    video_id: str
    path: Path
    size_bytes: int
    checksum: str
    filename: str


@dataclass
class VideoStream:
    """Result of a read: an open byte stream plus where it came from"""

    stream: BinaryIO
    size: int
    filename: str
    source: StorageSource
    content_type: str = "application/octet-stream"

    @property
    def cacheable(self) -> bool:
        """Remote objects are immutable, local reads are not cached"""
        return self.source == StorageSource.REMOTE

    def close(self) -> None:
        self.stream.close()


@dataclass
class OperationResult:
    """Outcome of a multi-step operation that may partially fail"""

    success: bool
    error: Optional[str] = None

    def __bool__(self) -> bool:
        return self.success


@dataclass
class ValidationResult:
    """Record validation outcome"""

    valid: bool
    errors: list = field(default_factory=list)


@dataclass
class StorageStats:
    """
    Storage statistics snapshot.

    Used for monitoring and the health endpoint.
    """

    total_videos: int = 0
    local_only_count: int = 0
    mirrored_count: int = 0
    remote_only_count: int = 0
    local_bytes: int = 0
    local_file_count: int = 0
    remote_object_count: Optional[int] = None
    remote_bytes: Optional[int] = None
    remote_enabled: bool = False
    config: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "total_videos": self.total_videos,
            "local_only_count": self.local_only_count,
            "mirrored_count": self.mirrored_count,
            "remote_only_count": self.remote_only_count,
            "local_bytes": self.local_bytes,
            "local_file_count": self.local_file_count,
            "remote_object_count": self.remote_object_count,
            "remote_bytes": self.remote_bytes,
            "remote_enabled": self.remote_enabled,
            "config": self.config,
        }
