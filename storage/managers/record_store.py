"""
Record Store

Small key-value abstraction under the metadata manager.
Two concerns only: individual record read/write and index read/write.
Swapping flat files for an embedded database means writing another
RecordStore, nothing above it changes.
"""

import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

from config.settings import METADATA_FILENAME
from storage.interfaces.storage_interface import StorageError


class RecordStore(ABC):
    """Abstract persistence for metadata records and the list index"""

    @abstractmethod
    def read_record(self, record_id: str) -> Optional[dict]:
        """
        Read one record.

        Returns:
            Parsed record, or None if it does not exist

        Raises:
            StorageError: If the record exists but cannot be read/parsed
        """

    @abstractmethod
    def write_record(self, record_id: str, data: dict) -> None:
        """Write one record (replacing any existing one)"""

    @abstractmethod
    def delete_record(self, record_id: str) -> bool:
        """Delete one record. Returns True if it existed"""

    @abstractmethod
    def iter_records(self) -> Iterator[Tuple[str, Optional[dict], Optional[str]]]:
        """
        Walk every stored record.

        Yields:
            (record_id, data, error) where data is None and error is set
            for records that could not be read
        """

    @abstractmethod
    def read_index(self) -> List[dict]:
        """Read the list index (empty list if missing)"""

    @abstractmethod
    def write_index(self, entries: List[dict]) -> None:
        """Replace the list index"""


def write_json_atomic(path: Path, data) -> None:
    """
    Write JSON through a temp file + rename so readers never see
    a half-written file.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise


class JsonFileRecordStore(RecordStore):
    """
    Flat-file record store.

    Layout:
        <records_dir>/<id>/metadata.json   one record per video directory
        <index_path>                       {"videos": [...]}
    """

    def __init__(self, records_dir: Path, index_path: Path):
        self.logger = logging.getLogger(__name__)
        self.records_dir = Path(records_dir)
        self.index_path = Path(index_path)

    def record_path(self, record_id: str) -> Path:
        return self.records_dir / record_id / METADATA_FILENAME

    def read_record(self, record_id: str) -> Optional[dict]:
        path = self.record_path(record_id)
        if not path.exists():
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"Failed to read record {record_id}: {e}") from e

    def write_record(self, record_id: str, data: dict) -> None:
        try:
            write_json_atomic(self.record_path(record_id), data)
        except OSError as e:
            raise StorageError(f"Failed to write record {record_id}: {e}") from e

    def delete_record(self, record_id: str) -> bool:
        path = self.record_path(record_id)
        try:
            path.unlink()
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageError(f"Failed to delete record {record_id}: {e}") from e

    def iter_records(self) -> Iterator[Tuple[str, Optional[dict], Optional[str]]]:
        if not self.records_dir.exists():
            return

        for directory in sorted(self.records_dir.iterdir()):
            if not directory.is_dir() or directory.name.startswith("."):
                continue
            if not (directory / METADATA_FILENAME).exists():
                continue
            try:
                yield directory.name, self.read_record(directory.name), None
            except StorageError as e:
                yield directory.name, None, str(e)

    def read_index(self) -> List[dict]:
        if not self.index_path.exists():
            return []
        try:
            with open(self.index_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"Failed to read index {self.index_path}: {e}") from e

        videos = data.get("videos") if isinstance(data, dict) else None
        if not isinstance(videos, list):
            raise StorageError(f"Malformed index {self.index_path}")
        return videos

    def write_index(self, entries: List[dict]) -> None:
        try:
            write_json_atomic(self.index_path, {"videos": entries})
        except OSError as e:
            raise StorageError(f"Failed to write index {self.index_path}: {e}") from e
