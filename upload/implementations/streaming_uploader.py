"""
Streaming Uploader

Byte-stream persistence through HybridStorage, reporting progress
to the upload state tracker as bytes arrive.
"""

import logging
from typing import BinaryIO, Optional

from storage.controllers.hybrid_storage import HybridStorage
from storage.interfaces.storage_interface import StorageError
from storage.models.video_record import VideoRecord
from upload.interfaces.uploader_interface import (
    StreamPersistenceInterface,
    UploaderError,
)
from upload.managers.upload_state_manager import UploadStateManager


class StreamingUploader(StreamPersistenceInterface):
    """
    Persists an incoming stream chunk by chunk.

    Progress is written to the upload state every
    progress_update_bytes, so a stalled upload shows how far it got.
    """

    def __init__(
        self,
        storage: HybridStorage,
        state_manager: Optional[UploadStateManager] = None,
    ):
        self.logger = logging.getLogger(__name__)
        self.storage = storage
        self.state_manager = state_manager
        self.progress_step = storage.config.progress_update_bytes

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
        self.logger.info(
            f"Streaming upload: {filename} ({total_size} bytes) "
            f"for {owner_client}/{owner_project}"
        )

        record = self.storage.save_stream(
            stream,
            filename=filename,
            owner_client=owner_client,
            owner_project=owner_project,
            expected_size=total_size,
            video_id=video_id,
            progress_callback=self._progress_reporter(upload_id),
        )

        if upload_id and self.state_manager:
            self._report(upload_id, record.size_bytes)

        return record

    def _progress_reporter(self, upload_id: Optional[str]):
        if not upload_id or not self.state_manager:
            return None

        last_reported = [0]

        def report(written: int) -> None:
            if written - last_reported[0] >= self.progress_step:
                last_reported[0] = written
                self._report(upload_id, written)

        return report

    def _report(self, upload_id: str, written: int) -> None:
        try:
            self.state_manager.update_progress(upload_id, written)
        except (UploaderError, StorageError) as e:
            self.logger.warning(f"Progress update failed for {upload_id}: {e}")
