"""
Managers Package

Upload state persistence.
"""
