#!/usr/bin/env python3
"""
Recover Orphaned Videos

Scans the storage tree for video files that have no metadata (left behind
by interrupted uploads or crashes) and optionally reintegrates them.

Usage:
    python scripts/recover_orphans.py                      # Dry run
    python scripts/recover_orphans.py --apply              # Recover orphans
    python scripts/recover_orphans.py --cleanup-invalid    # Quarantine invalid files
    python scripts/recover_orphans.py --rebuild-index      # Regenerate videos-index.json
    python scripts/recover_orphans.py --storage-path /srv/videos --apply
"""

import argparse
import logging
import sys
from pathlib import Path

# Add parent directory to path so we can import modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from recovery import OrphanRecoveryService
from storage import MetadataManager, StorageConfig
from storage.utils.path_utils import format_size

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def recover_orphans(
    config: StorageConfig,
    apply: bool = False,
    cleanup_invalid: bool = False,
    rebuild_index: bool = False,
) -> dict:
    """
    Report, recover and optionally quarantine orphaned videos.

    Args:
        config: Storage configuration
        apply: Recover valid orphans (default: report only)
        cleanup_invalid: Move invalid orphans to quarantine
        rebuild_index: Regenerate the index from per-video metadata

    Returns:
        Statistics dict with counts
    """
    logger.info(f"Storage root: {config.storage_base_path}")
    logger.info(f"Mode: {'APPLY' if apply else 'DRY RUN (no changes)'}")

    metadata = MetadataManager(config)
    recovery = OrphanRecoveryService(config, metadata)

    orphans = recovery.scan_for_orphans()
    valid = [o for o in orphans if recovery.validate_orphan_file(o)]

    for orphan in orphans:
        marker = "valid" if orphan in valid else "invalid"
        logger.info(
            f"  {orphan.video_id}/{orphan.filename} "
            f"({format_size(orphan.size_bytes)}, {marker})"
        )

    stats = {
        "orphans_found": len(orphans),
        "valid": len(valid),
        "recovered": 0,
        "failed": 0,
        "quarantined": 0,
        "indexed": None,
        "dry_run": not apply,
    }

    if apply:
        summary = recovery.recover_all_orphans()
        stats["recovered"] = summary.recovered
        stats["failed"] = summary.failed

    if cleanup_invalid:
        stats["quarantined"] = recovery.cleanup_invalid_orphans()

    if rebuild_index:
        stats["indexed"] = metadata.rebuild_index()

    logger.info("=" * 60)
    logger.info("SUMMARY")
    logger.info("=" * 60)
    logger.info(f"Orphans found:        {stats['orphans_found']}")
    logger.info(f"Valid candidates:     {stats['valid']}")
    if apply:
        logger.info(f"Recovered:            {stats['recovered']}")
        logger.info(f"Failed:               {stats['failed']}")
    else:
        logger.info(f"Would recover:        {stats['valid']} (use --apply to recover)")
    if cleanup_invalid:
        logger.info(f"Quarantined:          {stats['quarantined']}")
    if rebuild_index:
        logger.info(f"Indexed records:      {stats['indexed']}")
    logger.info("=" * 60)

    return stats


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Find and recover video files that have no metadata",
    )
    parser.add_argument(
        "--apply",
        action="store_true",
        help="Recover valid orphans (default is dry run)",
    )
    parser.add_argument(
        "--cleanup-invalid",
        action="store_true",
        help="Move invalid orphans and stray files to quarantine",
    )
    parser.add_argument(
        "--rebuild-index",
        action="store_true",
        help="Regenerate the videos index from per-video metadata",
    )
    parser.add_argument(
        "--storage-path",
        type=Path,
        help="Storage root (default: STORAGE_PATH or config/storage.yaml)",
    )
    args = parser.parse_args()

    try:
        config = StorageConfig()
        if args.storage_path:
            config.set("storage_base_path", str(args.storage_path.resolve()), save=False)

        stats = recover_orphans(
            config,
            apply=args.apply,
            cleanup_invalid=args.cleanup_invalid,
            rebuild_index=args.rebuild_index,
        )

        if stats["orphans_found"] == 0:
            logger.info("✅ No orphaned videos found")
        elif not args.apply:
            logger.info("💡 Run with --apply to recover these videos")

    except Exception as e:
        logger.error(f"❌ Recovery failed: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
