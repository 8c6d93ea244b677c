"""
Path Utilities

Helper functions for path handling, file types and object keys.
"""

import logging
from pathlib import Path
from typing import List, Optional

from config.settings import REMOTE_KEY_PREFIX, SUPPORTED_VIDEO_EXTENSIONS, VIDEO_FILE_STEM


logger = logging.getLogger(__name__)

# Extension -> MIME type for served videos
VIDEO_CONTENT_TYPES = {
    ".mp4": "video/mp4",
    ".m4v": "video/x-m4v",
    ".mov": "video/quicktime",
    ".avi": "video/x-msvideo",
    ".mkv": "video/x-matroska",
    ".webm": "video/webm",
}


def ensure_directory(path: Path, create: bool = True) -> bool:
    """
    Ensure directory exists.

    Args:
        path: Directory path
        create: If True, create if doesn't exist

    Returns:
        True if directory exists or was created

    Example:
        ensure_directory(Path("/srv/videos"))
    """
    try:
        if path.exists():
            if not path.is_dir():
                logger.error(f"Path exists but is not a directory: {path}")
                return False
            return True

        if create:
            path.mkdir(parents=True, exist_ok=True)
            logger.debug(f"Created directory: {path}")
            return True

        return False

    except OSError as e:
        logger.error(f"Failed to create directory {path}: {e}")
        return False


def safe_filename(filename: str) -> str:
    """
    Make filename safe by removing invalid characters.

    Example:
        safe = safe_filename("video:with*bad?chars.mp4")
        # Returns: "video_with_bad_chars.mp4"
    """
    invalid_chars = ['<', '>', ':', '"', '/', '\\', '|', '?', '*']
    safe = filename

    for char in invalid_chars:
        safe = safe.replace(char, '_')

    return safe


def get_file_extension(path: Path) -> str:
    """
    Get file extension (lowercase, with dot).

    Example:
        ext = get_file_extension(Path("video.MP4"))
        # Returns: ".mp4"
    """
    return Path(path).suffix.lower()


def is_video_file(path: Path) -> bool:
    """Check if file is a video based on extension"""
    return get_file_extension(path) in SUPPORTED_VIDEO_EXTENSIONS


def content_type_for(filename: str) -> str:
    """
    Get MIME type for a video filename.

    Unknown extensions are served as application/octet-stream.
    """
    return VIDEO_CONTENT_TYPES.get(
        get_file_extension(Path(filename)),
        "application/octet-stream",
    )


def remote_key_for(video_id: str, extension: str) -> str:
    """
    Build the remote object key for a video.

    Example:
        remote_key_for("abc", ".mp4")  # "videos/abc/video.mp4"
    """
    return f"{REMOTE_KEY_PREFIX}/{video_id}/{VIDEO_FILE_STEM}{extension}"


def candidate_remote_keys(
    video_id: str,
    known_key: Optional[str] = None,
    preferred_extension: Optional[str] = None,
) -> List[str]:
    """
    Ordered list of remote keys that may hold a video.

    Order: the key recorded in metadata, the key for the original
    filename's extension, then every supported extension.

    Args:
        video_id: Video identifier
        known_key: Key stored on the record (tried first)
        preferred_extension: Extension of the original filename

    Returns:
        Unique keys in probing order
    """
    keys: List[str] = []
    if known_key:
        keys.append(known_key)

    extensions = list(SUPPORTED_VIDEO_EXTENSIONS)
    if preferred_extension:
        extensions.insert(0, preferred_extension.lower())

    for ext in extensions:
        key = remote_key_for(video_id, ext)
        if key not in keys:
            keys.append(key)

    return keys


def format_size(bytes: int) -> str:
    """
    Format byte size as human-readable string.

    Example:
        print(format_size(1_500_000_000))  # "1.40 GB"
    """
    for unit in ['B', 'KB', 'MB', 'GB', 'TB']:
        if bytes < 1024.0:
            return f"{bytes:.2f} {unit}"
        bytes /= 1024.0
    return f"{bytes:.2f} PB"


def calculate_directory_size(directory: Path) -> int:
    """
    Calculate total size of all files in directory.

    Args:
        directory: Directory path

    Returns:
        Total size in bytes
    """
    total = 0
    try:
        for file_path in directory.rglob("*"):
            if file_path.is_file():
                total += file_path.stat().st_size
    except OSError as e:
        logger.warning(f"Error calculating directory size: {e}")

    return total


def is_path_writable(path: Path) -> bool:
    """Test if path is writable by creating and removing a probe file"""
    try:
        if path.is_dir():
            test_file = path / ".write_test"
            test_file.touch()
            test_file.unlink()
            return True

        return is_path_writable(path.parent)

    except OSError:
        return False
