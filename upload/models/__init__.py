"""
Models Package

Upload state data structures.
"""

from upload.models.upload_state import UploadState

__all__ = [
    "UploadState",
]
