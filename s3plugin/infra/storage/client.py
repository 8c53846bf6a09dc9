"""Storage client protocols and data types.

This module defines the interface the plugin uses to talk to object storage
and to the identity service that validates credentials.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, BinaryIO, Protocol, Union

ObjectBody = Union[str, bytes, BinaryIO]


class StorageError(RuntimeError):
    """Raised when object storage or identity operations fail."""


@dataclass(frozen=True, slots=True)
class ConnectionConfig:
    """Connection parameters shared by the storage and identity clients.

    Credential fields may be ``None``; boto3 then falls back to its ambient
    credential chain (environment, shared config, instance profile).
    """

    region: str | None = None
    access_key_id: str | None = None
    secret_access_key: str | None = None
    endpoint_url: str | None = None
    addressing_style: str = "auto"


@dataclass(frozen=True, slots=True)
class UploadedObject:
    """Metadata returned after an object has been written."""

    location: str
    etag: str | None
    bucket: str
    key: str

    def to_output(self, presigned_url: str | None = None) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "Location": self.location,
            "ETag": self.etag,
            "Bucket": self.bucket,
            "Key": self.key,
        }
        if presigned_url is not None:
            payload["presignedURL"] = presigned_url
        return payload


class StorageClient(Protocol):
    """Protocol defining the object storage operations used by the plugin."""

    def list_objects(self, *, bucket: str) -> list[dict[str, Any]]:
        """List the objects of a bucket.

        Returns:
            The raw ``Contents`` entries, or an empty list for an empty bucket.

        Raises:
            StorageError: If the operation fails.
        """
        ...

    def list_buckets(self) -> list[dict[str, Any]]:
        """List the buckets visible to the credentials.

        Raises:
            StorageError: If the operation fails.
        """
        ...

    def get_object(self, *, bucket: str, object_key: str) -> str:
        """Download an object and decode its body as text.

        Raises:
            StorageError: If the object doesn't exist or the operation fails.
        """
        ...

    def delete_object(self, *, bucket: str, object_key: str) -> None:
        """Delete an object from storage.

        Raises:
            StorageError: If the operation fails.
        """
        ...

    def put_object(
        self,
        *,
        bucket: str,
        object_key: str,
        body: ObjectBody,
        content_type: str | None = None,
    ) -> UploadedObject:
        """Write an object.

        Args:
            bucket: Target bucket name.
            object_key: Object key (path) in the bucket.
            body: Text, bytes or a readable binary stream.
            content_type: MIME type of the object.

        Raises:
            StorageError: If the operation fails.
        """
        ...

    def presign_get(self, *, bucket: str, object_key: str, expires_in: int) -> str:
        """Generate a presigned URL for downloading an object.

        Raises:
            StorageError: If URL generation fails.
        """
        ...


class IdentityClient(Protocol):
    """Protocol for the credential validity check."""

    def get_caller_identity(self) -> dict[str, Any]:
        """Return the identity the credentials resolve to.

        Raises:
            StorageError: If the credentials are rejected.
        """
        ...
