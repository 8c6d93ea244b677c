"""
Central Configuration File

ALL configuration values live here. This is the single source of truth.

Guidelines:
- Secrets (R2 credentials) should be in .env, NOT here
- Import these settings in modules: from config.settings import STORAGE_BASE_PATH
- Runtime overrides for storage live in config/storage.yaml (see storage/config.py)
"""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# =============================================================================
# STORAGE CONFIGURATION
# =============================================================================

# Storage Paths
STORAGE_BASE_PATH = Path(os.getenv("STORAGE_PATH", "./storage_data")).resolve()

# Directory Names (subdirectories under STORAGE_BASE_PATH)
DIR_VIDEOS = "videos"
DIR_METADATA = "metadata"
DIR_STATE = "state"
DIR_RECOVERY = "recovery"
DIR_QUARANTINE = "invalid"  # Under DIR_RECOVERY

# File Naming
VIDEO_FILE_STEM = "video"  # videos/<id>/video.<ext>
METADATA_FILENAME = "metadata.json"  # videos/<id>/metadata.json
INDEX_FILENAME = "videos-index.json"  # metadata/videos-index.json
ORPHAN_REGISTRY_FILENAME = "orphans.json"  # recovery/orphans.json

# Remote object keys: videos/<id>/video<ext>
REMOTE_KEY_PREFIX = "videos"

# Supported video formats (order is the remote key probing order)
SUPPORTED_VIDEO_EXTENSIONS = [".mp4", ".mov", ".avi", ".mkv", ".webm", ".m4v"]

# File Validation
MAX_VIDEO_SIZE_BYTES = 2 * 1024 * 1024 * 1024  # 2 GB
MIN_ORPHAN_SIZE_BYTES = 16  # Anything smaller cannot be a video payload

# Streaming
STREAM_CHUNK_SIZE = 1024 * 1024  # 1 MB read/write chunks
PROGRESS_UPDATE_BYTES = 10 * 1024 * 1024  # Persist upload progress every 10 MB

# =============================================================================
# HYBRID STORAGE CONFIGURATION
# =============================================================================

ENABLE_REMOTE_BACKUP = os.getenv("ENABLE_REMOTE_BACKUP", "true").lower() == "true"
AUTO_BACKUP = os.getenv("AUTO_BACKUP", "true").lower() == "true"
FALLBACK_TO_REMOTE = os.getenv("FALLBACK_TO_REMOTE", "true").lower() == "true"

# Remote client retry policy (exponential backoff with jitter)
REMOTE_MAX_RETRIES = 3
REMOTE_RETRY_BASE_DELAY = 1.0  # seconds
REMOTE_RETRY_MAX_DELAY = 10.0  # seconds
REMOTE_CONNECT_TIMEOUT = 10  # seconds
REMOTE_READ_TIMEOUT = 60  # seconds

# Presigned download links
PRESIGNED_URL_EXPIRY_SECONDS = 3600  # 1 hour

# =============================================================================
# UPLOAD & RECOVERY CONFIGURATION
# =============================================================================

# Size tolerance bands (fraction of expected size)
IDEMPOTENCE_SIZE_TOLERANCE = 0.05  # Match against completed uploads
RECOVERY_SIZE_TOLERANCE = 0.10  # Match against possibly truncated writes

# Upload state retention
UPLOAD_STATE_RETENTION_HOURS = 24
UPLOAD_MAX_RETRIES = 3

# Background recovery
RECOVERY_INTERVAL_MINUTES = int(os.getenv("RECOVERY_INTERVAL_MINUTES", "5"))
RECOVERY_THREAD_JOIN_TIMEOUT = 5.0  # seconds

# Sentinel owner name for recovered files with unparseable names
RECOVERED_OWNER_SENTINEL = "recovered"

# =============================================================================
# LOGGING CONFIGURATION
# =============================================================================

LOG_DIR = os.getenv("LOG_DIR", "/var/log/video-vault")
LOG_SERVICE_FILE = "service.log"
LOG_BACKUP_DAYS = 7

# Service loop
SERVICE_LOOP_INTERVAL = 1.0  # seconds
HEALTH_LOG_INTERVAL_SECONDS = 3600  # Log a health snapshot every hour

# =============================================================================
# SECRETS (loaded from .env)
# =============================================================================
# IMPORTANT: These should NEVER be committed to version control!
# Create a .env file in the project root with these values

# Cloudflare R2 (S3-compatible) credentials
R2_ACCOUNT_ID = os.getenv("R2_ACCOUNT_ID", "")
R2_ACCESS_KEY_ID = os.getenv("R2_ACCESS_KEY_ID", "")
R2_SECRET_ACCESS_KEY = os.getenv("R2_SECRET_ACCESS_KEY", "")
R2_BUCKET_NAME = os.getenv("R2_BUCKET_NAME", "")
R2_ENDPOINT_URL = os.getenv(
    "R2_ENDPOINT_URL",
    f"https://{R2_ACCOUNT_ID}.r2.cloudflarestorage.com" if R2_ACCOUNT_ID else "",
)
