"""
Upload Factory

Wires the upload orchestrator with its collaborators.
Follows the same pattern as storage/factory.py.
"""

import logging
from typing import Optional

from recovery.controllers.orphan_recovery import OrphanRecoveryService
from recovery.managers.orphan_registry import OrphanRegistryManager
from storage.config import StorageConfig
from storage.controllers.hybrid_storage import HybridStorage
from storage.factory import RemoteMode, create_hybrid_storage
from upload.controllers.upload_controller import UploadController
from upload.implementations.streaming_uploader import StreamingUploader
from upload.managers.upload_state_manager import UploadStateManager

logger = logging.getLogger(__name__)


def create_orphan_recovery(storage: HybridStorage) -> OrphanRecoveryService:
    """Orphan recovery sharing the storage's config and metadata store"""
    return OrphanRecoveryService(
        config=storage.config,
        metadata=storage.metadata,
        registry=OrphanRegistryManager(storage.config),
        is_busy=storage.local.is_writing,
    )


def create_upload_controller(
    storage: Optional[HybridStorage] = None,
    config: Optional[StorageConfig] = None,
    remote_mode: RemoteMode = "auto",
    orphan_recovery: Optional[OrphanRecoveryService] = None,
) -> UploadController:
    """
    Quick upload controller creation.

    Args:
        storage: Existing HybridStorage (None = create one)
        config: StorageConfig used when creating storage (None = defaults)
        remote_mode: See StorageFactory.create_remote
        orphan_recovery: Shared recovery engine (None = create one)

    Example:
        # Normal usage
        controller = create_upload_controller()

        # Testing
        controller = create_upload_controller(config=config, remote_mode="mock")
    """
    storage = storage or create_hybrid_storage(config, remote_mode=remote_mode)
    state_manager = UploadStateManager(storage.config)

    controller = UploadController(
        uploader=StreamingUploader(storage, state_manager),
        state_manager=state_manager,
        orphan_recovery=orphan_recovery or create_orphan_recovery(storage),
        metadata=storage.metadata,
        config=storage.config,
    )
    logger.debug("Upload controller created")
    return controller
