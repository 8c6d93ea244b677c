"""
Controllers Package

High-level upload coordinators.
"""

from upload.controllers.upload_controller import MaintenanceReport, UploadController

__all__ = [
    "MaintenanceReport",
    "UploadController",
]
