"""
Managers Package

Metadata persistence behind a swappable record store.
"""
