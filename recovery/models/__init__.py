"""
Models Package

Orphan and registry data structures.
"""

from recovery.models.orphan import (
    OrphanFile,
    OrphanRegistry,
    OrphanRegistryEntry,
    RecoverySummary,
)

__all__ = [
    "OrphanFile",
    "OrphanRegistry",
    "OrphanRegistryEntry",
    "RecoverySummary",
]
