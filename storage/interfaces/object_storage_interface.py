"""
Object Storage Interface

Abstract interface for remote S3-compatible object storage.
Implementations raise RemoteStorageError with a classified kind;
callers never see vendor exceptions.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import BinaryIO, Dict, List, Optional, Union


@dataclass
class RemoteObject:
    """
    Object read from remote storage.

    Attributes:
        key: Object key
        body: Readable binary stream
        size: Content length in bytes
        content_type: Stored content type
        metadata: User metadata tags
    """

    key: str
    body: BinaryIO
    size: int
    content_type: str = "application/octet-stream"
    metadata: Dict[str, str] = field(default_factory=dict)


class ObjectStorageInterface(ABC):
    """
    Abstract base class for remote object storage.

    Any implementation (R2, S3, in-memory mock) must provide these methods.
    """

    @abstractmethod
    def put(
        self,
        key: str,
        body: Union[bytes, BinaryIO],
        tags: Optional[Dict[str, str]] = None,
        content_type: Optional[str] = None,
    ) -> None:
        """
        Store an object.

        Args:
            key: Object key
            body: Bytes or readable binary stream
            tags: Metadata tags stored with the object
            content_type: MIME type

        Raises:
            RemoteStorageError: If the upload fails
        """

    @abstractmethod
    def get(self, key: str) -> RemoteObject:
        """
        Fetch an object.

        Raises:
            RemoteStorageError: NOT_FOUND if missing, other kinds on failure
        """

    @abstractmethod
    def delete(self, key: str) -> None:
        """
        Delete an object.

        Raises:
            RemoteStorageError: If the delete request fails
        """

    @abstractmethod
    def exists(self, key: str) -> bool:
        """
        Check if an object exists.

        Returns:
            False if missing

        Raises:
            RemoteStorageError: For failures other than not-found
        """

    @abstractmethod
    def list_keys(self, prefix: str = "") -> List[str]:
        """List object keys under a prefix"""

    @abstractmethod
    def test_connection(self) -> bool:
        """Check that the bucket is reachable with current credentials"""

    @abstractmethod
    def get_stats(self) -> dict:
        """Get object count and total bytes"""
