"""
Upload Module

Upload orchestration: idempotent, resumable stream uploads with
automatic recovery of failed transfers.

Public API:
    - UploadController: Upload orchestrator
    - UploadResult: Orchestrated upload result
    - UploadOutcome: How the record was produced
    - create_upload_controller: Factory function

Usage:
    from upload import create_upload_controller

    controller = create_upload_controller()
    with open("launch.mp4", "rb") as f:
        record = controller.handle_upload_with_recovery(
            f, "acme", "launch", "launch.mp4", expected_size=1048576
        )
"""

from upload.constants import UploadOutcome, UploadStateStatus
from upload.controllers.upload_controller import UploadController
from upload.factory import create_upload_controller
from upload.interfaces.uploader_interface import (
    UploaderError,
    UploadResult,
    UploadStateNotFoundError,
)

# Public API
__all__ = [
    "UploadController",
    "UploadOutcome",
    "UploadResult",
    "UploadStateNotFoundError",
    "UploadStateStatus",
    "UploaderError",
    "create_upload_controller",
]
