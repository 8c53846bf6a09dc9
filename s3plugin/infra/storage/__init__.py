"""Object storage access layer.

This module provides a protocol-based abstraction over S3-compatible object
storage plus the STS identity check used to validate credentials.
"""

from .client import (
    ConnectionConfig,
    IdentityClient,
    StorageClient,
    StorageError,
    UploadedObject,
)
from .factory import StorageClientFactory, build_connection_config

__all__ = [
    "ConnectionConfig",
    "IdentityClient",
    "StorageClient",
    "StorageClientFactory",
    "StorageError",
    "UploadedObject",
    "build_connection_config",
]
