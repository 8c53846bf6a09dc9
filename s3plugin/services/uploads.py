"""Concurrent upload of a resolved batch of files.

Uploads run on a bounded thread pool. Results keep the input order. The
first failure cancels uploads that have not started yet, optionally deletes
the objects the batch already committed, and is then re-raised.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Sequence
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from typing import Any

from s3plugin.infra.storage.client import StorageClient, StorageError, UploadedObject
from s3plugin.services.files import ByteSource, guess_content_type

logger = logging.getLogger("s3plugin.uploads")


class BatchUploader:
    """Uploads a batch of byte sources into a single bucket."""

    def __init__(
        self,
        storage: StorageClient,
        *,
        max_concurrency: int,
        presign_expires_in: int,
        cleanup_on_failure: bool = True,
    ) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self._storage = storage
        self._max_concurrency = max_concurrency
        self._expires_in = presign_expires_in
        self._cleanup_on_failure = cleanup_on_failure
        self._committed: list[UploadedObject] = []
        self._lock = threading.Lock()

    def upload(self, bucket: str, sources: Sequence[ByteSource]) -> list[dict[str, Any]]:
        if not sources:
            return []

        self._committed = []
        pool = ThreadPoolExecutor(
            max_workers=min(self._max_concurrency, len(sources)),
            thread_name_prefix="s3-upload",
        )
        futures: list[Future] = []
        try:
            futures = [pool.submit(self._upload_one, bucket, s) for s in sources]
            wait(futures, return_when=FIRST_EXCEPTION)
        finally:
            pool.shutdown(wait=True, cancel_futures=True)

        error = self._first_error(futures)
        if error is None:
            return [future.result() for future in futures]

        if self._cleanup_on_failure:
            self._delete_committed(bucket)
        raise error

    def _upload_one(self, bucket: str, source: ByteSource) -> dict[str, Any]:
        with source.open() as body:
            uploaded = self._storage.put_object(
                bucket=bucket,
                object_key=source.name,
                body=body,
                content_type=guess_content_type(source.name),
            )
        with self._lock:
            self._committed.append(uploaded)
        url = self._storage.presign_get(
            bucket=bucket, object_key=uploaded.key, expires_in=self._expires_in
        )
        return uploaded.to_output(url)

    @staticmethod
    def _first_error(futures: Sequence[Future]) -> BaseException | None:
        for future in futures:
            if future.cancelled():
                continue
            exc = future.exception()
            if exc is not None:
                return exc
        return None

    def _delete_committed(self, bucket: str) -> None:
        for uploaded in self._committed:
            try:
                self._storage.delete_object(bucket=bucket, object_key=uploaded.key)
            except StorageError as exc:
                logger.warning(
                    "batch_cleanup_failed bucket=%s key=%s error=%s",
                    bucket,
                    uploaded.key,
                    exc,
                    extra={
                        "extra": {
                            "bucket": bucket,
                            "key": uploaded.key,
                            "error": str(exc),
                        }
                    },
                )
            else:
                logger.info(
                    "batch_cleanup_deleted bucket=%s key=%s", bucket, uploaded.key
                )
