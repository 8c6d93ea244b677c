"""
Recovery Test Fixtures

Orphan recovery is built by the same factory the service uses,
on top of a HybridStorage with the in-memory remote.
"""

import pytest

from recovery.controllers.background_recovery import BackgroundRecoveryService
from storage.controllers.hybrid_storage import HybridStorage
from storage.implementations.mock_storage import MockObjectStorage
from upload.factory import create_orphan_recovery


@pytest.fixture
def recovery_storage(storage_config):
    """Provide initialized HybridStorage with a mock remote"""
    storage = HybridStorage(config=storage_config, remote=MockObjectStorage())
    storage.local.initialize()
    return storage


@pytest.fixture
def orphan_recovery(recovery_storage):
    """
    Provide an OrphanRecoveryService wired to the storage.

    Usage:
        def test_scan(orphan_recovery, write_video):
            write_video("abc", "clip.mp4")
            assert len(orphan_recovery.scan_for_orphans()) == 1
    """
    return create_orphan_recovery(recovery_storage)


@pytest.fixture
def background(orphan_recovery):
    """Provide a BackgroundRecoveryService, stopped after the test"""
    service = BackgroundRecoveryService(orphan_recovery, interval_minutes=60)
    yield service
    service.stop()
