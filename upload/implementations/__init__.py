"""
Implementations Package

Concrete stream persistence implementations.
"""

from upload.implementations.streaming_uploader import StreamingUploader

__all__ = [
    "StreamingUploader",
]
