"""
Utilities Package

Path helpers, validation and the remote error adapter.
"""
