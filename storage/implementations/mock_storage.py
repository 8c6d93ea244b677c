"""
Mock Object Storage Implementation

In-memory remote storage for testing and offline development.
Simulates an S3 bucket without any network access, with switchable
failure injection per operation.
"""

import io
import logging
import threading
from typing import BinaryIO, Dict, List, Optional, Set, Union

from storage.interfaces.object_storage_interface import (
    ObjectStorageInterface,
    RemoteObject,
)
from storage.utils.remote_errors import RemoteErrorKind, RemoteStorageError


class MockObjectStorage(ObjectStorageInterface):
    """
    Mock remote storage for testing.

    Usage:
        remote = MockObjectStorage()
        remote.fail_operations.add("delete")   # next deletes raise
        remote.put("videos/abc/video.mp4", b"...")
    """

    def __init__(self, failure_kind: RemoteErrorKind = RemoteErrorKind.SERVER_ERROR):
        """
        Initialize mock storage.

        Args:
            failure_kind: Error kind raised for injected failures
        """
        self.logger = logging.getLogger(__name__)

        # key -> (payload, tags, content_type)
        self._objects: Dict[str, tuple] = {}
        self._lock = threading.Lock()

        # Operations listed here raise RemoteStorageError
        self.fail_operations: Set[str] = set()
        self.failure_kind = failure_kind

        # Track operations for test verification
        self.operation_log: List[str] = []

        self.logger.info("[MOCK] Object storage initialized (simulation mode)")

    def _log_operation(self, operation: str, key: str = "") -> None:
        self.operation_log.append(f"{operation} {key}".strip())
        self.logger.debug(f"[MOCK] {operation} {key}")
        if operation in self.fail_operations:
            raise RemoteStorageError(
                f"Simulated {operation} failure",
                kind=self.failure_kind,
                code="Simulated",
            )

    def put(
        self,
        key: str,
        body: Union[bytes, BinaryIO],
        tags: Optional[Dict[str, str]] = None,
        content_type: Optional[str] = None,
    ) -> None:
        self._log_operation("put", key)
        payload = bytes(body) if isinstance(body, (bytes, bytearray)) else body.read()
        with self._lock:
            self._objects[key] = (
                payload,
                dict(tags or {}),
                content_type or "application/octet-stream",
            )

    def get(self, key: str) -> RemoteObject:
        self._log_operation("get", key)
        with self._lock:
            stored = self._objects.get(key)
        if stored is None:
            raise RemoteStorageError(
                f"No such key: {key}",
                kind=RemoteErrorKind.NOT_FOUND,
                code="NoSuchKey",
                status_code=404,
            )
        payload, tags, content_type = stored
        return RemoteObject(
            key=key,
            body=io.BytesIO(payload),
            size=len(payload),
            content_type=content_type,
            metadata=dict(tags),
        )

    def delete(self, key: str) -> None:
        # S3 semantics: deleting a missing key succeeds
        self._log_operation("delete", key)
        with self._lock:
            self._objects.pop(key, None)

    def exists(self, key: str) -> bool:
        self._log_operation("exists", key)
        with self._lock:
            return key in self._objects

    def list_keys(self, prefix: str = "") -> List[str]:
        self._log_operation("list", prefix)
        with self._lock:
            return sorted(k for k in self._objects if k.startswith(prefix))

    def test_connection(self) -> bool:
        try:
            self._log_operation("test_connection")
        except RemoteStorageError:
            return False
        return True

    def get_stats(self) -> dict:
        with self._lock:
            return {
                "bucket": "mock",
                "object_count": len(self._objects),
                "total_bytes": sum(len(v[0]) for v in self._objects.values()),
            }

    # =========================================================================
    # TEST HELPERS
    # =========================================================================

    def get_payload(self, key: str) -> Optional[bytes]:
        """Read stored bytes directly (bypasses failure injection)"""
        with self._lock:
            stored = self._objects.get(key)
        return stored[0] if stored else None

    def get_tags(self, key: str) -> Dict[str, str]:
        with self._lock:
            stored = self._objects.get(key)
        return dict(stored[1]) if stored else {}

    def clear(self) -> None:
        with self._lock:
            self._objects.clear()
        self.operation_log.clear()
        self.fail_operations.clear()
