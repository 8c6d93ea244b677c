"""
Controllers Package

High-level storage coordinators.
"""

from storage.controllers.hybrid_storage import HybridStorage

__all__ = [
    "HybridStorage",
]
