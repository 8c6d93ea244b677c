"""
Orphan Registry Tests

To run these tests:
    pytest tests/recovery/managers/test_orphan_registry.py -v
"""

from datetime import datetime
from pathlib import Path

import pytest

from recovery.constants import RecoveryStatus
from recovery.managers.orphan_registry import OrphanRegistryManager
from recovery.models.orphan import OrphanFile


def make_orphan(video_id: str = "abc", size: int = 10) -> OrphanFile:
    return OrphanFile(
        video_id=video_id,
        file_path=Path(f"/srv/videos/{video_id}/clip.mp4"),
        size_bytes=size,
        created_at=datetime.now(),
    )


@pytest.mark.unit
def test_attempts_accumulate(storage_config):
    """
    Test registry history.

    Should:
    - Keep one entry per video id
    - Count every attempt
    - Keep the latest status and error
    """
    registry = OrphanRegistryManager(storage_config)
    orphan = make_orphan()

    registry.record_scan([orphan])
    registry.record_attempt(orphan, RecoveryStatus.INVALID, error="too small")
    registry.record_scan([orphan])
    entry = registry.record_attempt(orphan, RecoveryStatus.INVALID, error="still too small")

    assert entry.recovery_attempts == 2
    assert entry.status == RecoveryStatus.INVALID
    assert entry.last_error == "still too small"
    assert list(registry.load().orphans) == ["abc"]


@pytest.mark.unit
def test_scan_does_not_reset_history(storage_config):
    registry = OrphanRegistryManager(storage_config)
    orphan = make_orphan()
    registry.record_attempt(orphan, RecoveryStatus.FAILED, error="disk error")

    registry.record_scan([orphan])

    entry = registry.get_entry("abc")
    assert entry.status == RecoveryStatus.FAILED
    assert entry.recovery_attempts == 1


@pytest.mark.unit
def test_registry_survives_restart(storage_config):
    OrphanRegistryManager(storage_config).record_attempt(
        make_orphan(), RecoveryStatus.RECOVERED, recovered_record={"id": "abc"}
    )

    reloaded = OrphanRegistryManager(storage_config).load()

    assert reloaded.orphans["abc"].recovered_record == {"id": "abc"}
    assert reloaded.count_by_status() == {"pending": 0, "recovered": 1, "failed": 0, "invalid": 0}


@pytest.mark.unit
def test_corrupt_registry_starts_empty(storage_config):
    registry = OrphanRegistryManager(storage_config)
    registry.registry_path.parent.mkdir(parents=True, exist_ok=True)
    registry.registry_path.write_text("[broken")

    assert registry.load().orphans == {}


@pytest.mark.unit
def test_corrupt_registry_is_kept_aside(storage_config):
    """
    Test corrupt registry handling.

    Should:
    - Move the unreadable file next to the registry
    - Leave the moved copy untouched by later saves
    """
    registry = OrphanRegistryManager(storage_config)
    orphan = make_orphan()
    registry.record_attempt(orphan, RecoveryStatus.INVALID, error="too small")
    registry.registry_path.write_text('{"orphans": {"abc": ')

    registry.record_attempt(orphan, RecoveryStatus.INVALID, error="too small")

    kept = list(registry.registry_path.parent.glob("orphans.json.corrupt-*"))
    assert len(kept) == 1
    assert kept[0].read_text() == '{"orphans": {"abc": '
    assert registry.get_entry("abc").recovery_attempts == 1
