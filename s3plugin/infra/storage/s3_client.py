"""S3-compatible storage and STS identity clients.

This module provides the boto3-backed implementations of the storage and
identity protocols. They work with AWS S3, MinIO, and other S3-compatible
object storage services.

Dependencies:
    - boto3
    - botocore
"""

from __future__ import annotations

from typing import Any
from urllib.parse import quote, urlsplit

from s3plugin.infra.storage.client import (
    ConnectionConfig,
    ObjectBody,
    StorageError,
    UploadedObject,
)


def _build_boto3_client(service: str, conn: ConnectionConfig) -> Any:
    """Create a boto3 client for ``service`` from connection parameters."""
    try:
        import boto3
        from botocore.config import Config
    except ImportError as exc:
        raise StorageError(
            "boto3 and botocore are required for the S3 plugin. "
            "Install with: pip install boto3"
        ) from exc

    kwargs: dict[str, Any] = {
        "region_name": conn.region,
        "aws_access_key_id": conn.access_key_id,
        "aws_secret_access_key": conn.secret_access_key,
    }
    if service == "s3":
        kwargs["config"] = Config(
            signature_version="s3v4",
            s3={"addressing_style": conn.addressing_style},
        )
        if conn.endpoint_url:
            kwargs["endpoint_url"] = conn.endpoint_url
    return boto3.client(service, **kwargs)


class S3StorageClient:
    """S3-compatible object storage client.

    Every method is a single boto3 call; failures are re-raised as
    ``StorageError`` with the underlying message.
    """

    def __init__(self, *, connection: ConnectionConfig) -> None:
        self._connection = connection
        self._client = self._build_client(connection)

    @staticmethod
    def _build_client(connection: ConnectionConfig) -> Any:
        return _build_boto3_client("s3", connection)

    def list_objects(self, *, bucket: str) -> list[dict[str, Any]]:
        try:
            response = self._client.list_objects(Bucket=bucket)
        except Exception as exc:
            raise StorageError(f"Failed to list objects: {exc}") from exc
        return list(response.get("Contents") or [])

    def list_buckets(self) -> list[dict[str, Any]]:
        try:
            response = self._client.list_buckets()
        except Exception as exc:
            raise StorageError(f"Failed to list buckets: {exc}") from exc
        return list(response.get("Buckets") or [])

    def get_object(self, *, bucket: str, object_key: str) -> str:
        try:
            response = self._client.get_object(Bucket=bucket, Key=object_key)
            raw = response["Body"].read()
        except Exception as exc:
            raise StorageError(f"Failed to get object: {exc}") from exc
        if isinstance(raw, str):
            return raw
        return raw.decode("utf-8", errors="replace")

    def delete_object(self, *, bucket: str, object_key: str) -> None:
        try:
            self._client.delete_object(Bucket=bucket, Key=object_key)
        except Exception as exc:
            raise StorageError(f"Failed to delete object: {exc}") from exc

    def put_object(
        self,
        *,
        bucket: str,
        object_key: str,
        body: ObjectBody,
        content_type: str | None = None,
    ) -> UploadedObject:
        params: dict[str, Any] = {"Bucket": bucket, "Key": object_key, "Body": body}
        if content_type:
            params["ContentType"] = content_type

        try:
            response = self._client.put_object(**params)
        except Exception as exc:
            raise StorageError(f"Failed to upload object: {exc}") from exc

        return UploadedObject(
            location=self._object_location(bucket, object_key),
            etag=response.get("ETag"),
            bucket=bucket,
            key=object_key,
        )

    def presign_get(self, *, bucket: str, object_key: str, expires_in: int) -> str:
        try:
            url = self._client.generate_presigned_url(
                "get_object",
                Params={"Bucket": bucket, "Key": object_key},
                ExpiresIn=int(expires_in),
            )
        except Exception as exc:
            raise StorageError(f"Failed to generate presigned URL: {exc}") from exc

        if not url:
            raise StorageError("Generated presigned URL is empty")

        return str(url)

    def _object_location(self, bucket: str, object_key: str) -> str:
        endpoint = str(self._client.meta.endpoint_url).rstrip("/")
        encoded_key = quote(object_key, safe="/")
        if self._connection.endpoint_url or self._connection.addressing_style == "path":
            return f"{endpoint}/{bucket}/{encoded_key}"
        parts = urlsplit(endpoint)
        return f"{parts.scheme}://{bucket}.{parts.netloc}/{encoded_key}"


class StsIdentityClient:
    """STS client used to check that credentials are well-formed and active."""

    def __init__(self, *, connection: ConnectionConfig) -> None:
        self._client = self._build_client(connection)

    @staticmethod
    def _build_client(connection: ConnectionConfig) -> Any:
        return _build_boto3_client("sts", connection)

    def get_caller_identity(self) -> dict[str, Any]:
        # Works with any valid credentials regardless of attached permissions.
        try:
            response = self._client.get_caller_identity()
        except Exception as exc:
            raise StorageError(str(exc)) from exc
        return {
            key: response.get(key)
            for key in ("UserId", "Account", "Arn")
            if key in response
        }
