"""
Upload State Manager

Persists upload progress in one JSON file per upload id, independent
of whether the upload ultimately succeeds.
"""

import json
import logging
import threading
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from storage.config import StorageConfig
from storage.interfaces.storage_interface import StorageError
from storage.managers.record_store import write_json_atomic
from upload.constants import UploadStateStatus
from upload.interfaces.uploader_interface import UploadStateNotFoundError
from upload.models.upload_state import UploadState


class UploadStateManager:
    """
    CRUD over upload state files in <storage>/state/<upload_id>.json.

    update_progress, mark_complete and mark_failed never create state
    implicitly: they raise UploadStateNotFoundError if no state exists.
    """

    def __init__(self, config: Optional[StorageConfig] = None):
        self.logger = logging.getLogger(__name__)
        self.config = config or StorageConfig()
        self.state_dir = self.config.state_dir
        self._lock = threading.Lock()

        self.state_dir.mkdir(parents=True, exist_ok=True)
        self.logger.info(f"Upload state manager initialized ({self.state_dir})")

    def _state_path(self, upload_id: str) -> Path:
        return self.state_dir / f"{upload_id}.json"

    # =========================================================================
    # CRUD
    # =========================================================================

    def save_state(self, state: UploadState) -> UploadState:
        """
        Write a state file (create or replace).

        Raises:
            StorageError: If the file cannot be written
        """
        try:
            write_json_atomic(self._state_path(state.upload_id), state.to_dict())
        except OSError as e:
            raise StorageError(f"Failed to save upload state {state.upload_id}: {e}") from e

        self.logger.debug(f"Saved upload state: {state}")
        return state

    def load_state(self, upload_id: str) -> Optional[UploadState]:
        """
        Load a state file.

        Returns:
            UploadState, or None if missing or unreadable
        """
        path = self._state_path(upload_id)
        if not path.exists():
            return None

        try:
            with open(path, "r", encoding="utf-8") as f:
                return UploadState.from_dict(json.load(f))
        except (OSError, json.JSONDecodeError, KeyError, ValueError) as e:
            self.logger.error(f"Cannot read upload state {upload_id}: {e}")
            return None

    def delete_state(self, upload_id: str) -> bool:
        try:
            self._state_path(upload_id).unlink()
            return True
        except FileNotFoundError:
            return False

    def list_states(self) -> List[UploadState]:
        """All readable upload states, oldest first"""
        states = []
        for path in sorted(self.state_dir.glob("*.json")):
            state = self.load_state(path.stem)
            if state is not None:
                states.append(state)
        states.sort(key=lambda s: s.start_time)
        return states

    # =========================================================================
    # TRANSITIONS
    # =========================================================================

    def create_state(
        self,
        upload_id: str,
        filename: str,
        owner_client: str,
        owner_project: str,
        total_size: int,
        chunk_size: int = 0,
    ) -> UploadState:
        """Initialize and persist an active upload state"""
        state = UploadState(
            upload_id=upload_id,
            filename=filename,
            owner_client=owner_client,
            owner_project=owner_project,
            total_size=total_size,
            chunk_size=chunk_size,
        )
        return self.save_state(state)

    def update_progress(self, upload_id: str, uploaded_size: int) -> UploadState:
        """
        Record bytes received so far.

        Raises:
            UploadStateNotFoundError: If no state exists
        """
        with self._lock:
            state = self._require(upload_id)
            state.uploaded_size = uploaded_size
            state.touch()
            return self.save_state(state)

    def mark_complete(self, upload_id: str, video_id: Optional[str] = None) -> UploadState:
        """
        Mark upload completed.

        Raises:
            UploadStateNotFoundError: If no state exists
        """
        with self._lock:
            state = self._require(upload_id)
            state.status = UploadStateStatus.COMPLETED
            if video_id:
                state.video_id = video_id
            if state.total_size > state.uploaded_size:
                state.uploaded_size = state.total_size
            state.touch()
            self.save_state(state)

        self.logger.info(f"Upload completed: {upload_id} -> {state.video_id}")
        return state

    def mark_failed(self, upload_id: str, error: str) -> UploadState:
        """
        Mark upload failed, increment retry count and keep the error.

        Raises:
            UploadStateNotFoundError: If no state exists
        """
        with self._lock:
            state = self._require(upload_id)
            state.status = UploadStateStatus.FAILED
            state.retry_count += 1
            state.last_error = error
            state.touch()
            self.save_state(state)

        self.logger.warning(f"Upload failed: {upload_id} ({error})")
        return state

    # =========================================================================
    # QUERIES / MAINTENANCE
    # =========================================================================

    def get_active_uploads(self) -> List[UploadState]:
        return [s for s in self.list_states() if s.status == UploadStateStatus.ACTIVE]

    def cleanup_expired_uploads(self, max_age_hours: Optional[float] = None) -> int:
        """
        Remove terminal states whose last activity is older than max_age_hours.

        Active uploads are never removed, whatever their age.

        Returns:
            Number of states removed
        """
        if max_age_hours is None:
            max_age_hours = self.config.upload_state_retention_hours

        removed = 0
        for state in self.list_states():
            if not state.is_terminal:
                continue
            if state.age_hours <= max_age_hours:
                continue
            if self.delete_state(state.upload_id):
                removed += 1
                self.logger.debug(f"Removed expired upload state {state.upload_id}")

        if removed:
            self.logger.info(f"Cleaned up {removed} expired upload states")
        return removed

    def get_upload_progress(self, upload_id: str) -> Optional[dict]:
        """
        Progress summary for a client poll.

        Returns:
            Dict with percent, speed and ETA, or None if unknown
        """
        state = self.load_state(upload_id)
        if state is None:
            return None

        elapsed = max((datetime.now() - state.start_time).total_seconds(), 0.001)
        speed = state.uploaded_size / elapsed
        remaining = max(state.total_size - state.uploaded_size, 0)
        eta = remaining / speed if speed > 0 and state.status == UploadStateStatus.ACTIVE else None

        return {
            "upload_id": state.upload_id,
            "video_id": state.video_id,
            "status": state.status.value,
            "uploaded_size": state.uploaded_size,
            "total_size": state.total_size,
            "percent": round(state.progress_percent, 1),
            "bytes_per_second": round(speed, 1),
            "eta_seconds": round(eta, 1) if eta is not None else None,
            "last_error": state.last_error,
        }

    def _require(self, upload_id: str) -> UploadState:
        state = self.load_state(upload_id)
        if state is None:
            raise UploadStateNotFoundError(upload_id)
        return state
