"""
Shared Test Configuration and Fixtures

Fixtures used by storage, upload and recovery tests.
Every fixture works on a throwaway storage root.

To use pytest:
    pip install -e ".[test]"
    pytest tests/
"""

import tempfile
from pathlib import Path

import pytest

from storage import StorageConfig


# =============================================================================
# STORAGE ROOT FIXTURES
# =============================================================================

@pytest.fixture
def temp_storage_dir():
    """
    Provide a temporary directory for storage tests.

    Automatically cleaned up after test.
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def storage_config(temp_storage_dir):
    """
    Provide a StorageConfig pointed at the temp directory.

    Remote backup and fallback are on so tests with a mock remote
    exercise the mirror path.

    Usage:
        def test_with_config(storage_config):
            manager = MetadataManager(storage_config)
    """
    config = StorageConfig(config_path=temp_storage_dir / "storage.yaml")
    config.set('storage_base_path', str(temp_storage_dir / "data"), save=False)
    config.set('enable_remote_backup', True, save=False)
    config.set('auto_backup', True, save=False)
    config.set('fallback_to_remote', True, save=False)
    config.set('stream_chunk_size', 64, save=False)  # Small chunks exercise the loop
    config.set('progress_update_bytes', 128, save=False)
    return config


# =============================================================================
# HELPER FIXTURES
# =============================================================================

@pytest.fixture
def write_video(storage_config):
    """
    Provide a helper that writes a payload straight into the video tree.

    No metadata is written, so the result is an orphan.

    Usage:
        def test_scan(write_video):
            path = write_video("abc", "clip.mp4", size=2048)
    """
    def _write(video_id: str, filename: str, size: int = 1024, data: bytes = None) -> Path:
        directory = storage_config.videos_dir / video_id
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / filename
        path.write_bytes(data if data is not None else bytes(i % 251 for i in range(size)))
        return path

    return _write


@pytest.fixture
def event_tracker():
    """
    Provide a helper for tracking event callbacks.

    Usage:
        def test_events(hybrid_storage, event_tracker):
            hybrid_storage.on_mirror_failed = event_tracker.track
            # ... trigger event ...
            assert event_tracker.was_called()
    """
    class EventTracker:
        def __init__(self):
            self.calls = []

        def track(self, *args, **kwargs):
            """Record an event invocation"""
            self.calls.append({'args': args, 'kwargs': kwargs})

        def was_called(self) -> bool:
            return len(self.calls) > 0

        def get_call_count(self) -> int:
            return len(self.calls)

        def get_last_call(self):
            return self.calls[-1] if self.calls else None

    return EventTracker()


# =============================================================================
# PYTEST CONFIGURATION
# =============================================================================

def pytest_configure(config):
    """
    Configure pytest with custom markers.

    Markers let you categorize and selectively run tests:
        pytest -m unit          # Only unit tests
        pytest -m "not slow"    # Skip slow tests
    """
    config.addinivalue_line("markers", "unit: Unit tests (fast, isolated)")
    config.addinivalue_line("markers", "unit_integration: Unit integration tests")
    config.addinivalue_line("markers", "integration: Full integration tests")
    config.addinivalue_line("markers", "slow: Slow tests (use sparingly)")
