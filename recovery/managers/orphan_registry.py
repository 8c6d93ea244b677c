"""
Orphan Registry Manager

Persists the orphan registry (recovery/orphans.json).
Entries are updated in place and never removed automatically.
"""

import json
import logging
import threading
from datetime import datetime
from typing import Iterable, Optional

from config.settings import ORPHAN_REGISTRY_FILENAME
from recovery.constants import RecoveryStatus
from recovery.models.orphan import OrphanFile, OrphanRegistry, OrphanRegistryEntry
from storage.config import StorageConfig
from storage.interfaces.storage_interface import StorageError
from storage.managers.record_store import write_json_atomic


class OrphanRegistryManager:
    """
    Read-modify-write access to the orphan registry.

    Thread Safety:
    - Every mutation holds a lock across load + save, so the background
      service and request-triggered recovery do not drop each other's updates
    """

    def __init__(self, config: Optional[StorageConfig] = None):
        self.logger = logging.getLogger(__name__)
        self.config = config or StorageConfig()
        self.registry_path = self.config.recovery_dir / ORPHAN_REGISTRY_FILENAME
        self._lock = threading.Lock()

    def load(self) -> OrphanRegistry:
        """
        Load registry (empty registry if missing or corrupt).

        An unreadable file is moved aside before starting empty, so the
        next save cannot overwrite its history.
        """
        if not self.registry_path.exists():
            return OrphanRegistry()

        try:
            with open(self.registry_path, "r", encoding="utf-8") as f:
                return OrphanRegistry.from_dict(json.load(f))
        except OSError as e:
            raise StorageError(f"Cannot read orphan registry: {e}") from e
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            self.logger.error(f"Orphan registry unreadable, starting empty: {e}")
            self._set_aside_corrupt()
            return OrphanRegistry()

    def _set_aside_corrupt(self) -> None:
        stamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        target = self.registry_path.with_name(f"{self.registry_path.name}.corrupt-{stamp}")
        try:
            self.registry_path.rename(target)
        except FileNotFoundError:
            return
        except OSError as e:
            raise StorageError(f"Cannot set aside corrupt orphan registry: {e}") from e
        self.logger.warning(f"Corrupt orphan registry kept as {target}")

    def _save(self, registry: OrphanRegistry) -> None:
        try:
            write_json_atomic(self.registry_path, registry.to_dict())
        except OSError as e:
            raise StorageError(f"Failed to save orphan registry: {e}") from e

    def record_scan(self, orphans: Iterable[OrphanFile]) -> None:
        """
        Stamp the scan time and register newly seen orphans as pending.

        Existing entries keep their history.
        """
        with self._lock:
            registry = self.load()
            registry.last_scan = datetime.now()
            for orphan in orphans:
                if orphan.video_id not in registry.orphans:
                    registry.orphans[orphan.video_id] = OrphanRegistryEntry(
                        video_id=orphan.video_id,
                        file_path=str(orphan.file_path),
                        size_bytes=orphan.size_bytes,
                    )
            self._save(registry)

    def record_attempt(
        self,
        orphan: OrphanFile,
        status: RecoveryStatus,
        recovered_record: Optional[dict] = None,
        error: Optional[str] = None,
    ) -> OrphanRegistryEntry:
        """Record one recovery attempt for an orphan (increments attempts)"""
        with self._lock:
            registry = self.load()
            entry = registry.orphans.get(orphan.video_id) or OrphanRegistryEntry(
                video_id=orphan.video_id
            )
            entry.file_path = str(orphan.file_path)
            entry.size_bytes = orphan.size_bytes
            entry.record_attempt(status, error)
            if recovered_record is not None:
                entry.recovered_record = recovered_record

            registry.orphans[orphan.video_id] = entry
            self._save(registry)

        self.logger.debug(
            f"Registry: {orphan.video_id} -> {status.value} "
            f"(attempt {entry.recovery_attempts})"
        )
        return entry

    def get_entry(self, video_id: str) -> Optional[OrphanRegistryEntry]:
        return self.load().orphans.get(video_id)
