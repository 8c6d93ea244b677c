"""
Upload Test Fixtures

The upload controller is wired exactly as in production, on a temp
storage root with the in-memory remote.
"""

import pytest

from storage.controllers.hybrid_storage import HybridStorage
from storage.implementations.mock_storage import MockObjectStorage
from upload.factory import create_upload_controller
from upload.managers.upload_state_manager import UploadStateManager


@pytest.fixture
def upload_storage(storage_config):
    """Provide HybridStorage with a mock remote"""
    storage = HybridStorage(config=storage_config, remote=MockObjectStorage())
    storage.local.initialize()
    return storage


@pytest.fixture
def state_manager(storage_config):
    """Provide an UploadStateManager on the temp storage root"""
    return UploadStateManager(storage_config)


@pytest.fixture
def controller(upload_storage):
    """
    Provide a fully wired UploadController.

    Usage:
        def test_upload(controller):
            record = controller.handle_upload_with_recovery(
                io.BytesIO(payload), "acme", "launch", "launch.mp4", len(payload)
            )
    """
    return create_upload_controller(storage=upload_storage)
