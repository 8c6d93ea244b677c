"""
Storage Test Fixtures

Fixtures for metadata, local storage and the hybrid controller.
Remote storage is always the in-memory MockObjectStorage.
"""

import pytest

from storage.controllers.hybrid_storage import HybridStorage
from storage.implementations.local_storage import LocalStorage
from storage.implementations.mock_storage import MockObjectStorage
from storage.managers.metadata_manager import MetadataManager
from storage.models.video_record import VideoRecord


@pytest.fixture
def metadata_manager(storage_config):
    """Provide a MetadataManager on the temp storage root"""
    return MetadataManager(storage_config)


@pytest.fixture
def local_storage(storage_config):
    """
    Provide LocalStorage with temp directory.

    Usage:
        def test_real_storage(local_storage):
            stored = local_storage.save_stream(io.BytesIO(b"..."), "clip.mp4")
    """
    storage = LocalStorage(storage_config)
    storage.initialize()
    return storage


@pytest.fixture
def mock_remote():
    """Provide a fresh MockObjectStorage for each test"""
    remote = MockObjectStorage()
    yield remote
    remote.clear()


@pytest.fixture
def hybrid_storage(storage_config, mock_remote):
    """
    Provide HybridStorage with local disk and mock remote.

    Usage:
        def test_save(hybrid_storage):
            record = hybrid_storage.save_video(b"...", "clip.mp4", "acme", "launch")
    """
    return HybridStorage(config=storage_config, remote=mock_remote)


@pytest.fixture
def local_only_storage(storage_config):
    """Provide HybridStorage with no remote configured"""
    return HybridStorage(config=storage_config)


@pytest.fixture
def make_record():
    """
    Provide a VideoRecord builder with sensible defaults.

    Usage:
        record = make_record("abc", owner_client="acme")
    """
    def _make(video_id: str = "video-1", **overrides) -> VideoRecord:
        fields = {
            "id": video_id,
            "filename": "launch.mp4",
            "owner_client": "acme",
            "owner_project": "launch",
            "size_bytes": 1024,
            "checksum": "0" * 32,
            "content_type": "video/mp4",
        }
        fields.update(overrides)
        return VideoRecord(**fields)

    return _make
