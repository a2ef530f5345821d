"""
Object storage integration for source images and derivatives.

Supports S3-compatible stores (AWS S3, R2, MinIO) via boto3.
Includes mock mode for local development without credentials.
"""

from .client import (
    MockStorageClient,
    S3StorageClient,
    StorageConfig,
    build_storage_client,
    create_storage_client,
)

__all__ = [
    "MockStorageClient",
    "S3StorageClient",
    "StorageConfig",
    "build_storage_client",
    "create_storage_client",
]
