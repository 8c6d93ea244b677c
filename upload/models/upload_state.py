"""
Upload State Model

Durable record of one upload attempt, keyed by upload id
(the video id is only known once persistence commits).
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from config.settings import UPLOAD_MAX_RETRIES
from upload.constants import UploadStateStatus


@dataclass
class UploadState:
    """
    Progress and status of one upload attempt.

    Lifecycle: active → completed | failed
    A failed state returns to active only through a resume, until
    retry_count reaches max_retries.
    """

    upload_id: str
    filename: str
    owner_client: str
    owner_project: str
    total_size: int

    uploaded_size: int = 0
    chunk_size: int = 0
    video_id: Optional[str] = None

    status: UploadStateStatus = UploadStateStatus.ACTIVE
    retry_count: int = 0
    max_retries: int = UPLOAD_MAX_RETRIES
    last_error: Optional[str] = None

    start_time: datetime = field(default_factory=datetime.now)
    last_activity: datetime = field(default_factory=datetime.now)

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def progress_percent(self) -> float:
        if self.total_size <= 0:
            return 100.0 if self.status == UploadStateStatus.COMPLETED else 0.0
        return min(100.0, self.uploaded_size / self.total_size * 100)

    @property
    def age_hours(self) -> float:
        """Hours since last activity"""
        return (datetime.now() - self.last_activity).total_seconds() / 3600

    def touch(self) -> None:
        self.last_activity = datetime.now()

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON storage"""
        return {
            "upload_id": self.upload_id,
            "video_id": self.video_id,
            "filename": self.filename,
            "owner_client": self.owner_client,
            "owner_project": self.owner_project,
            "total_size": self.total_size,
            "uploaded_size": self.uploaded_size,
            "chunk_size": self.chunk_size,
            "status": self.status.value,
            "retry_count": self.retry_count,
            "max_retries": self.max_retries,
            "last_error": self.last_error,
            "start_time": self.start_time.isoformat(),
            "last_activity": self.last_activity.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "UploadState":
        return cls(
            upload_id=data["upload_id"],
            video_id=data.get("video_id"),
            filename=data["filename"],
            owner_client=data["owner_client"],
            owner_project=data["owner_project"],
            total_size=data["total_size"],
            uploaded_size=data.get("uploaded_size", 0),
            chunk_size=data.get("chunk_size", 0),
            status=UploadStateStatus(data.get("status", "active")),
            retry_count=data.get("retry_count", 0),
            max_retries=data.get("max_retries", UPLOAD_MAX_RETRIES),
            last_error=data.get("last_error"),
            start_time=datetime.fromisoformat(data["start_time"]),
            last_activity=datetime.fromisoformat(data["last_activity"]),
        )

    def __repr__(self) -> str:
        return (
            f"UploadState(id={self.upload_id}, status={self.status.value}, "
            f"{self.uploaded_size}/{self.total_size})"
        )
