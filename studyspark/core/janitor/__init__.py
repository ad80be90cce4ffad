"""
Blob retention sweep.

Exports: BlobJanitor
"""

from .janitor import BlobJanitor

__all__ = ["BlobJanitor"]
