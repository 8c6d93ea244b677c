"""
Managers Package

Orphan registry persistence.
"""
