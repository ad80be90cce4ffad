"""
AWS boundary modules.

Exports: S3BlobStore, BlobInfo
"""

from .s3_client import BlobInfo, S3BlobStore

__all__ = ["BlobInfo", "S3BlobStore"]
