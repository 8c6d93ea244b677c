"""
Orphan Models

OrphanFile is ephemeral (recomputed each scan).
OrphanRegistry is durable: every orphan ever discovered, keyed by video id.
"""

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional

from recovery.constants import RecoveryStatus


@dataclass
class OrphanFile:
    """A video payload on disk with no metadata record next to it"""

    video_id: str  # Name of the containing directory
    file_path: Path
    size_bytes: int
    created_at: datetime

    @property
    def filename(self) -> str:
        return self.file_path.name

    def __repr__(self) -> str:
        return f"OrphanFile({self.video_id}/{self.filename}, {self.size_bytes} bytes)"


@dataclass
class OrphanRegistryEntry:
    """Recovery history for one orphaned video id"""

    video_id: str
    file_path: str = ""
    size_bytes: int = 0
    discovered_at: datetime = field(default_factory=datetime.now)
    recovery_attempts: int = 0
    last_attempt: Optional[datetime] = None
    status: RecoveryStatus = RecoveryStatus.PENDING
    recovered_record: Optional[dict] = None
    last_error: Optional[str] = None

    def record_attempt(self, status: RecoveryStatus, error: Optional[str] = None) -> None:
        self.recovery_attempts += 1
        self.last_attempt = datetime.now()
        self.status = status
        self.last_error = error

    def to_dict(self) -> dict:
        return {
            "video_id": self.video_id,
            "file_path": self.file_path,
            "size_bytes": self.size_bytes,
            "discovered_at": self.discovered_at.isoformat(),
            "recovery_attempts": self.recovery_attempts,
            "last_attempt": self.last_attempt.isoformat() if self.last_attempt else None,
            "status": self.status.value,
            "recovered_record": self.recovered_record,
            "last_error": self.last_error,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "OrphanRegistryEntry":
        last_attempt = data.get("last_attempt")
        return cls(
            video_id=data["video_id"],
            file_path=data.get("file_path", ""),
            size_bytes=data.get("size_bytes", 0),
            discovered_at=datetime.fromisoformat(data["discovered_at"]),
            recovery_attempts=data.get("recovery_attempts", 0),
            last_attempt=datetime.fromisoformat(last_attempt) if last_attempt else None,
            status=RecoveryStatus(data.get("status", "pending")),
            recovered_record=data.get("recovered_record"),
            last_error=data.get("last_error"),
        )


@dataclass
class OrphanRegistry:
    """Durable registry contents"""

    last_scan: Optional[datetime] = None
    orphans: Dict[str, OrphanRegistryEntry] = field(default_factory=dict)

    def count_by_status(self) -> Dict[str, int]:
        counts = {status.value: 0 for status in RecoveryStatus}
        for entry in self.orphans.values():
            counts[entry.status.value] += 1
        return counts

    def to_dict(self) -> dict:
        return {
            "last_scan": self.last_scan.isoformat() if self.last_scan else None,
            "orphans": {vid: entry.to_dict() for vid, entry in self.orphans.items()},
        }

    @classmethod
    def from_dict(cls, data: dict) -> "OrphanRegistry":
        last_scan = data.get("last_scan")
        return cls(
            last_scan=datetime.fromisoformat(last_scan) if last_scan else None,
            orphans={
                vid: OrphanRegistryEntry.from_dict(entry)
                for vid, entry in (data.get("orphans") or {}).items()
            },
        )


@dataclass
class RecoverySummary:
    """Outcome of a bulk recovery pass"""

    recovered: int = 0
    failed: int = 0

    def to_dict(self) -> dict:
        return {"recovered": self.recovered, "failed": self.failed}
