"""In-memory fakes for the storage and identity clients."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from typing import Any

from s3plugin.infra.storage.client import ConnectionConfig, StorageError, UploadedObject


@dataclass
class FakeStorageClient:
    """Records every call; objects live in a dict keyed by (bucket, key)."""

    objects: dict[tuple[str, str], dict[str, Any]] = field(default_factory=dict)
    buckets: list[str] = field(default_factory=lambda: ["fancy-bucket"])
    calls: list[tuple[str, dict[str, Any]]] = field(default_factory=list)
    fail_keys: set[str] = field(default_factory=set)
    fail_list_buckets: Exception | None = None
    delays: dict[str, float] = field(default_factory=dict)
    in_flight: int = 0
    peak_in_flight: int = 0
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def _record(self, name: str, **kwargs: Any) -> None:
        with self._lock:
            self.calls.append((name, kwargs))

    def calls_to(self, name: str) -> list[dict[str, Any]]:
        return [kwargs for call, kwargs in self.calls if call == name]

    def list_objects(self, *, bucket: str) -> list[dict[str, Any]]:
        self._record("list_objects", bucket=bucket)
        return [
            {"Key": key, "Size": len(obj["body"])}
            for (b, key), obj in sorted(self.objects.items())
            if b == bucket
        ]

    def list_buckets(self) -> list[dict[str, Any]]:
        self._record("list_buckets")
        if self.fail_list_buckets is not None:
            raise self.fail_list_buckets
        return [{"Name": name} for name in self.buckets]

    def get_object(self, *, bucket: str, object_key: str) -> str:
        self._record("get_object", bucket=bucket, object_key=object_key)
        try:
            body = self.objects[(bucket, object_key)]["body"]
        except KeyError as exc:
            raise StorageError("Failed to get object: NoSuchKey") from exc
        return body.decode("utf-8", errors="replace")

    def delete_object(self, *, bucket: str, object_key: str) -> None:
        self._record("delete_object", bucket=bucket, object_key=object_key)
        self.objects.pop((bucket, object_key), None)

    def put_object(
        self,
        *,
        bucket: str,
        object_key: str,
        body: Any,
        content_type: str | None = None,
    ) -> UploadedObject:
        with self._lock:
            self.in_flight += 1
            self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        try:
            time.sleep(self.delays.get(object_key, 0))
            data = body.read() if hasattr(body, "read") else body
            if isinstance(data, str):
                data = data.encode("utf-8")
            self._record(
                "put_object",
                bucket=bucket,
                object_key=object_key,
                body=data,
                content_type=content_type,
            )
            if object_key in self.fail_keys:
                raise StorageError(f"Failed to upload object: AccessDenied for {object_key}")
            with self._lock:
                self.objects[(bucket, object_key)] = {
                    "body": data,
                    "content_type": content_type,
                }
        finally:
            with self._lock:
                self.in_flight -= 1
        return UploadedObject(
            location=f"https://{bucket}.s3.amazonaws.com/{object_key}",
            etag='"etag-' + object_key + '"',
            bucket=bucket,
            key=object_key,
        )

    def presign_get(self, *, bucket: str, object_key: str, expires_in: int) -> str:
        self._record(
            "presign_get", bucket=bucket, object_key=object_key, expires_in=expires_in
        )
        return f"https://{bucket}.s3.amazonaws.com/{object_key}?X-Amz-Expires={expires_in}"


@dataclass
class FakeIdentityClient:
    error: Exception | None = None

    def get_caller_identity(self) -> dict[str, Any]:
        if self.error is not None:
            raise self.error
        return {"Account": "123456789012", "Arn": "arn:aws:iam::123456789012:user/ci"}


@dataclass
class FakeClientFactory:
    storage_client: FakeStorageClient = field(default_factory=FakeStorageClient)
    identity_client: FakeIdentityClient = field(default_factory=FakeIdentityClient)
    connections: list[ConnectionConfig] = field(default_factory=list)

    def storage(self, connection: ConnectionConfig) -> FakeStorageClient:
        self.connections.append(connection)
        return self.storage_client

    def identity(self, connection: ConnectionConfig) -> FakeIdentityClient:
        self.connections.append(connection)
        return self.identity_client
