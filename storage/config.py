"""
Storage Configuration Handler

Manages YAML configuration file for storage settings.
Provides defaults (from config/settings.py) and validation.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from config.settings import (
    AUTO_BACKUP,
    DIR_METADATA,
    DIR_QUARANTINE,
    DIR_RECOVERY,
    DIR_STATE,
    DIR_VIDEOS,
    ENABLE_REMOTE_BACKUP,
    FALLBACK_TO_REMOTE,
    IDEMPOTENCE_SIZE_TOLERANCE,
    MAX_VIDEO_SIZE_BYTES,
    MIN_ORPHAN_SIZE_BYTES,
    PROGRESS_UPDATE_BYTES,
    RECOVERY_INTERVAL_MINUTES,
    RECOVERY_SIZE_TOLERANCE,
    STORAGE_BASE_PATH,
    STREAM_CHUNK_SIZE,
    UPLOAD_STATE_RETENTION_HOURS,
)


class StorageConfig:
    """
    Storage configuration with YAML file support.

    Reads from config/storage.yaml if it exists,
    otherwise uses defaults from config/settings.py.

    Usage:
        config = StorageConfig()
        videos_dir = config.videos_dir
        tolerance = config.idempotence_size_tolerance
    """

    # Default config file location
    DEFAULT_CONFIG_PATH = Path("config/storage.yaml")

    def __init__(self, config_path: Optional[Path] = None, create_if_missing: bool = False):
        """
        Initialize configuration.

        Args:
            config_path: Path to YAML config file (None = use default)
            create_if_missing: Write a default config file if none exists
        """
        self.logger = logging.getLogger(__name__)
        self.config_path = Path(config_path) if config_path else self.DEFAULT_CONFIG_PATH
        self.create_if_missing = create_if_missing

        # Load configuration (defaults + file overrides)
        self._config = self._load_config()

        self.logger.debug(f"Storage config ready ({self.config_path})")

    def _get_defaults(self) -> Dict[str, Any]:
        """Get default configuration values from settings"""
        return {
            # Paths
            'storage_base_path': str(STORAGE_BASE_PATH),

            # Hybrid storage behaviour
            'enable_remote_backup': ENABLE_REMOTE_BACKUP,
            'auto_backup': AUTO_BACKUP,
            'fallback_to_remote': FALLBACK_TO_REMOTE,

            # Validation
            'max_video_size_bytes': MAX_VIDEO_SIZE_BYTES,
            'min_orphan_size_bytes': MIN_ORPHAN_SIZE_BYTES,

            # Streaming
            'stream_chunk_size': STREAM_CHUNK_SIZE,
            'progress_update_bytes': PROGRESS_UPDATE_BYTES,

            # Recovery policy
            'idempotence_size_tolerance': IDEMPOTENCE_SIZE_TOLERANCE,
            'recovery_size_tolerance': RECOVERY_SIZE_TOLERANCE,
            'upload_state_retention_hours': UPLOAD_STATE_RETENTION_HOURS,
            'recovery_interval_minutes': RECOVERY_INTERVAL_MINUTES,
        }

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from YAML file or use defaults"""
        config = self._get_defaults()

        if self.config_path.exists():
            try:
                with open(self.config_path, 'r') as f:
                    file_config = yaml.safe_load(f) or {}

                # File overrides defaults
                config.update(file_config)

                self.logger.info(f"Loaded config from {self.config_path}")

            except (OSError, yaml.YAMLError) as e:
                self.logger.warning(
                    f"Failed to load config from {self.config_path}: {e}. "
                    f"Using defaults."
                )
        elif self.create_if_missing:
            self.logger.info(
                f"Config file not found at {self.config_path}. "
                f"Creating default config file..."
            )
            self._save_config(config)

        self._validate_config(config)

        return config

    def _validate_config(self, config: Dict[str, Any]) -> None:
        """Validate configuration values"""
        if not str(config['storage_base_path']).strip():
            raise ValueError("storage_base_path cannot be empty")

        for key in ('idempotence_size_tolerance', 'recovery_size_tolerance'):
            if not 0 <= config[key] < 1:
                raise ValueError(f"{key} must be between 0 and 1: {config[key]}")

        if config['max_video_size_bytes'] <= 0:
            raise ValueError("max_video_size_bytes must be positive")

        if config['min_orphan_size_bytes'] < 0:
            raise ValueError("min_orphan_size_bytes cannot be negative")

        if config['stream_chunk_size'] <= 0:
            raise ValueError("stream_chunk_size must be positive")

        if config['recovery_interval_minutes'] <= 0:
            raise ValueError("recovery_interval_minutes must be positive")

        if config['recovery_size_tolerance'] < config['idempotence_size_tolerance']:
            self.logger.warning(
                "recovery_size_tolerance is tighter than idempotence_size_tolerance. "
                "Truncated uploads will rarely be recovered."
            )

    def _save_config(self, config: Dict[str, Any] = None) -> None:
        """Save configuration to YAML file"""
        if config is None:
            config = self._config

        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)

            with open(self.config_path, 'w') as f:
                yaml.dump(
                    config,
                    f,
                    default_flow_style=False,
                    sort_keys=False,
                    indent=2
                )

            self.logger.info(f"Config saved to {self.config_path}")

        except OSError as e:
            self.logger.error(f"Failed to save config: {e}")

    # =========================================================================
    # PROPERTY ACCESSORS
    # =========================================================================

    @property
    def storage_base_path(self) -> Path:
        """Get storage base directory as Path object"""
        return Path(self._config['storage_base_path'])

    @property
    def videos_dir(self) -> Path:
        return self.storage_base_path / DIR_VIDEOS

    @property
    def metadata_dir(self) -> Path:
        return self.storage_base_path / DIR_METADATA

    @property
    def state_dir(self) -> Path:
        return self.storage_base_path / DIR_STATE

    @property
    def recovery_dir(self) -> Path:
        return self.storage_base_path / DIR_RECOVERY

    @property
    def quarantine_dir(self) -> Path:
        return self.recovery_dir / DIR_QUARANTINE

    @property
    def enable_remote_backup(self) -> bool:
        """Whether videos are mirrored to remote storage at all"""
        return self._config['enable_remote_backup']

    @property
    def auto_backup(self) -> bool:
        """Whether mirroring happens automatically on save"""
        return self._config['auto_backup']

    @property
    def fallback_to_remote(self) -> bool:
        """Whether reads fall back to remote when local fails"""
        return self._config['fallback_to_remote']

    @property
    def max_video_size_bytes(self) -> int:
        return self._config['max_video_size_bytes']

    @property
    def min_orphan_size_bytes(self) -> int:
        """Smallest file orphan recovery will accept"""
        return self._config['min_orphan_size_bytes']

    @property
    def stream_chunk_size(self) -> int:
        return self._config['stream_chunk_size']

    @property
    def progress_update_bytes(self) -> int:
        """How often (in bytes) upload progress is persisted"""
        return self._config['progress_update_bytes']

    @property
    def idempotence_size_tolerance(self) -> float:
        """Size slack when matching an upload against existing videos"""
        return self._config['idempotence_size_tolerance']

    @property
    def recovery_size_tolerance(self) -> float:
        """Size slack when crediting an orphan to a failed upload"""
        return self._config['recovery_size_tolerance']

    @property
    def upload_state_retention_hours(self) -> int:
        return self._config['upload_state_retention_hours']

    @property
    def recovery_interval_minutes(self) -> int:
        return self._config['recovery_interval_minutes']

    # =========================================================================
    # UTILITY METHODS
    # =========================================================================

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value by key.

        Args:
            key: Configuration key
            default: Default value if key not found

        Returns:
            Configuration value
        """
        return self._config.get(key, default)

    def set(self, key: str, value: Any, save: bool = True) -> None:
        """
        Set configuration value.

        Args:
            key: Configuration key
            value: New value
            save: If True, save to file immediately
        """
        self._config[key] = value

        if save:
            self._save_config()

    def reload(self) -> None:
        """Reload configuration from file"""
        self._config = self._load_config()
        self.logger.info("Configuration reloaded")

    def to_dict(self) -> Dict[str, Any]:
        """Get configuration as dictionary"""
        return self._config.copy()

    def __repr__(self) -> str:
        return f"StorageConfig(path={self.config_path}, base={self.storage_base_path})"
