"""
Implementations Package

Concrete storage backends: local disk, Cloudflare R2 and an in-memory mock.
"""
