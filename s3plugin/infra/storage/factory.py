"""Connection config builder and client factory."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from s3plugin.common.config import Settings
from s3plugin.common.mappings import nested_value
from s3plugin.infra.storage.client import (
    ConnectionConfig,
    IdentityClient,
    StorageClient,
)
from s3plugin.infra.storage.s3_client import S3StorageClient, StsIdentityClient


def _auth_value(datasource: Mapping[str, Any] | None, name: str) -> str | None:
    value = nested_value(datasource, "authentication", "custom", name, "value")
    if value is None:
        return None
    return str(value)


def build_connection_config(
    datasource: Mapping[str, Any] | None, settings: Settings
) -> ConnectionConfig:
    """Derive connection parameters from a datasource configuration.

    Missing credential fields stay ``None`` and are handed to the client
    as-is.
    """
    return ConnectionConfig(
        region=_auth_value(datasource, "region"),
        access_key_id=_auth_value(datasource, "accessKeyID"),
        secret_access_key=_auth_value(datasource, "secretKey"),
        endpoint_url=settings.S3_ENDPOINT_URL,
        addressing_style=settings.S3_ADDRESSING_STYLE,
    )


class StorageClientFactory:
    """Builds a fresh client per call; nothing is cached or pooled."""

    def storage(self, connection: ConnectionConfig) -> StorageClient:
        return S3StorageClient(connection=connection)

    def identity(self, connection: ConnectionConfig) -> IdentityClient:
        return StsIdentityClient(connection=connection)
