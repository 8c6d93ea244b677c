"""
Orphan Recovery Tests

Tests for orphan scanning and recovery showing:
- Only metadata-less directories are scanned
- Owner names inferred from filenames
- Bulk recovery counts
- Quarantine of invalid files

To run these tests:
    pytest tests/recovery/controllers/test_orphan_recovery.py -v
"""

import hashlib

import pytest

from recovery.constants import RecoveryStatus
from recovery.controllers.orphan_recovery import OrphanRecoveryService, parse_owner_names
from storage.constants import StorageStatus

# =============================================================================
# SCAN TESTS
# =============================================================================


@pytest.mark.unit
def test_scan_finds_only_metadata_less_directories(orphan_recovery, recovery_storage, write_video):
    """
    Test orphan detection.

    Should:
    - Report the payload without metadata
    - Ignore directories that have metadata
    - Register the orphan as pending
    """
    stored = recovery_storage.save_video(b"v" * 512, "launch.mp4", "acme", "launch")
    write_video("abc", "clip.mp4")

    orphans = orphan_recovery.scan_for_orphans()

    assert [o.video_id for o in orphans] == ["abc"]
    assert orphans[0].size_bytes == 1024
    assert stored.id != "abc"

    entry = orphan_recovery.registry.get_entry("abc")
    assert entry.status == RecoveryStatus.PENDING
    assert orphan_recovery.get_registry().last_scan is not None


@pytest.mark.unit
def test_scan_skips_hidden_and_non_video_files(orphan_recovery, write_video, storage_config):
    write_video("abc", ".partial.mp4")
    write_video("abc", "notes.txt")
    (storage_config.videos_dir / ".trash").mkdir()

    assert orphan_recovery.scan_for_orphans() == []


@pytest.mark.unit
def test_scan_skips_directories_being_written(storage_config, write_video):
    """Directories with a write in flight are not orphans yet"""
    service = OrphanRecoveryService(config=storage_config, is_busy=lambda video_id: video_id == "busy")
    write_video("busy", "clip.mp4")
    write_video("idle", "clip.mp4")

    assert [o.video_id for o in service.scan_for_orphans()] == ["idle"]


# =============================================================================
# RECONSTRUCTION TESTS
# =============================================================================


@pytest.mark.unit
@pytest.mark.parametrize(
    "filename, owners",
    [
        ("acme-launch-video.mp4", ("acme", "launch")),
        ("globex_q3 review.mov", ("globex", "q3")),
        ("clip.mp4", ("recovered", "recovered")),
        ("--.mp4", ("recovered", "recovered")),
    ],
)
def test_parse_owner_names(filename, owners):
    assert parse_owner_names(filename) == owners


@pytest.mark.unit
def test_recover_orphan_reconstructs_metadata(orphan_recovery, write_video):
    """
    Test single-orphan recovery.

    Should:
    - Infer owners from the filename
    - Checksum the whole file
    - Save a local-only record pointing at the file
    """
    payload = bytes(range(256)) * 5
    path = write_video("abc", "acme-launch-video.mp4", data=payload)
    orphan = orphan_recovery.scan_for_orphans()[0]

    record = orphan_recovery.recover_orphan(orphan)

    assert record.id == "abc"
    assert record.owner_client == "acme"
    assert record.owner_project == "launch"
    assert record.checksum == hashlib.md5(payload).hexdigest()
    assert record.storage_status == StorageStatus.LOCAL_ONLY
    assert record.local_path == str(path)
    assert record.content_type == "video/mp4"

    loaded = orphan_recovery.metadata.load("abc")
    assert loaded.checksum == record.checksum

    entry = orphan_recovery.registry.get_entry("abc")
    assert entry.status == RecoveryStatus.RECOVERED
    assert entry.recovered_record["id"] == "abc"


@pytest.mark.unit
def test_recover_orphan_twice_is_a_no_op(orphan_recovery, write_video):
    write_video("abc", "clip.mp4")
    orphan = orphan_recovery.scan_for_orphans()[0]

    first = orphan_recovery.recover_orphan(orphan)
    second = orphan_recovery.recover_orphan(orphan)

    assert second.id == first.id
    assert len(orphan_recovery.metadata.list_all()) == 1
    assert orphan_recovery.registry.get_entry("abc").recovery_attempts == 1


@pytest.mark.unit
def test_recover_orphan_rejects_tiny_files(orphan_recovery, write_video):
    write_video("abc", "clip.mp4", size=3)
    orphan = orphan_recovery.scan_for_orphans()[0]

    assert orphan_recovery.recover_orphan(orphan) is None
    assert orphan_recovery.metadata.load("abc") is None
    assert orphan_recovery.registry.get_entry("abc").status == RecoveryStatus.INVALID


# =============================================================================
# BULK RECOVERY TESTS
# =============================================================================


@pytest.mark.unit
def test_recover_all_orphans_counts(orphan_recovery, write_video):
    """
    Test bulk recovery.

    Should:
    - Recover every valid payload
    - Count a directory holding only a non-video file as failed
    """
    write_video("one", "clip.mp4")
    write_video("two", "acme-demo.mov")
    write_video("three", "notes.txt")

    summary = orphan_recovery.recover_all_orphans()

    assert summary.to_dict() == {"recovered": 2, "failed": 1}
    assert orphan_recovery.metadata.load("two").owner_project == "demo"


@pytest.mark.unit
def test_recover_all_orphans_with_nothing_to_do(orphan_recovery):
    assert orphan_recovery.recover_all_orphans().to_dict() == {"recovered": 0, "failed": 0}


# =============================================================================
# QUARANTINE TESTS
# =============================================================================


@pytest.mark.unit
def test_cleanup_invalid_orphans_quarantines(orphan_recovery, write_video, storage_config):
    """
    Test quarantine.

    Should:
    - Move invalid files to <recovery>/invalid/<id>_<filename>
    - Move stray non-video files too
    - Remove the emptied directory
    - Leave valid orphans alone
    """
    tiny = write_video("bad", "clip.mp4", size=2)
    write_video("stray", "notes.txt")
    good = write_video("good", "clip.mp4")

    moved = orphan_recovery.cleanup_invalid_orphans()

    assert moved == 2
    assert (storage_config.quarantine_dir / "bad_clip.mp4").exists()
    assert (storage_config.quarantine_dir / "stray_notes.txt").exists()
    assert not tiny.exists()
    assert not (storage_config.videos_dir / "bad").exists()
    assert good.exists()
    assert orphan_recovery.get_status()["quarantined_files"] == 2


@pytest.mark.unit
def test_quarantine_never_overwrites(orphan_recovery, write_video, storage_config):
    storage_config.quarantine_dir.mkdir(parents=True, exist_ok=True)
    (storage_config.quarantine_dir / "bad_clip.mp4").write_bytes(b"earlier")
    write_video("bad", "clip.mp4", size=2)

    assert orphan_recovery.cleanup_invalid_orphans() == 1

    names = sorted(p.name for p in storage_config.quarantine_dir.iterdir())
    assert len(names) == 2
    assert (storage_config.quarantine_dir / "bad_clip.mp4").read_bytes() == b"earlier"
    assert any(n.startswith("bad_clip_") and n.endswith(".mp4") for n in names)


@pytest.mark.unit
def test_quarantine_names_are_portable(orphan_recovery, write_video, storage_config):
    write_video("bad", "take:1?.mp4", size=2)

    assert orphan_recovery.cleanup_invalid_orphans() == 1
    assert (storage_config.quarantine_dir / "bad_take_1_.mp4").exists()
