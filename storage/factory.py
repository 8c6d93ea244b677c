"""
Storage Factory

Factory pattern for creating remote storage implementations and
the hybrid storage controller wired on top of them.
"""

import logging
from typing import Literal, Optional

from storage.config import StorageConfig
from storage.controllers.hybrid_storage import HybridStorage
from storage.implementations.mock_storage import MockObjectStorage
from storage.implementations.r2_storage import R2Storage
from storage.interfaces.object_storage_interface import ObjectStorageInterface

# Type alias for better type hints
RemoteMode = Literal["auto", "r2", "mock", "none"]


class StorageFactory:
    """
    Factory for creating remote storage implementations.

    Reads credentials from environment variables (.env):
    - R2_ACCOUNT_ID or R2_ENDPOINT_URL
    - R2_ACCESS_KEY_ID / R2_SECRET_ACCESS_KEY
    - R2_BUCKET_NAME

    Usage:
        # Auto-detect from environment (None when not configured)
        remote = StorageFactory.create_remote()

        # Force mock for testing
        remote = StorageFactory.create_remote(mode="mock")
    """

    _logger = logging.getLogger(__name__)

    @classmethod
    def create_remote(cls, mode: RemoteMode = "auto") -> Optional[ObjectStorageInterface]:
        """
        Create a remote storage instance.

        Args:
            mode: "auto" (R2 if configured, else disabled), "r2" (force real),
                  "mock" (in-memory), "none" (remote disabled)

        Returns:
            ObjectStorageInterface, or None when remote storage is disabled

        Raises:
            RuntimeError: If mode="r2" but credentials are not available
        """
        if mode == "none":
            cls._logger.info("Remote storage disabled")
            return None

        if mode == "mock":
            cls._logger.info("Creating Mock Object Storage (forced)")
            return MockObjectStorage()

        if mode == "r2":
            try:
                remote = R2Storage.from_settings()
                cls._logger.info("Creating R2 Storage (forced)")
                return remote
            except ValueError as e:
                raise RuntimeError(f"R2 storage requested but not available: {e}") from e

        # mode == "auto" - R2 when configured, otherwise local-only operation.
        # No mock fallback here: a silent in-memory bucket would lose backups.
        if not R2Storage.is_configured():
            cls._logger.warning("R2 credentials not configured, running local-only")
            return None

        try:
            remote = R2Storage.from_settings()
            cls._logger.info("Creating R2 Storage (auto-detected)")
            return remote
        except ValueError as e:
            cls._logger.warning(f"R2 storage not available ({e}), running local-only")
            return None


def create_hybrid_storage(
    config: Optional[StorageConfig] = None,
    remote_mode: RemoteMode = "auto",
) -> HybridStorage:
    """
    Quick hybrid storage creation.

    Args:
        config: StorageConfig object (None = defaults)
        remote_mode: See StorageFactory.create_remote

    Example:
        # Normal usage
        storage = create_hybrid_storage()

        # Testing
        storage = create_hybrid_storage(config, remote_mode="mock")
    """
    config = config or StorageConfig()
    remote = StorageFactory.create_remote(remote_mode)
    return HybridStorage(config=config, remote=remote)
