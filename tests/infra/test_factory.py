"""Tests for connection config building and the client factory."""

from unittest.mock import MagicMock, patch

from s3plugin.common.config import Settings
from s3plugin.infra.storage.client import ConnectionConfig
from s3plugin.infra.storage.factory import StorageClientFactory, build_connection_config
from s3plugin.infra.storage.s3_client import S3StorageClient, StsIdentityClient


def test_reads_authentication_fields():
    datasource = {
        "authentication": {
            "custom": {
                "region": {"value": "us-west-2"},
                "accessKeyID": {"value": "AKIAEXAMPLE"},
                "secretKey": {"value": "wJalr"},
            }
        }
    }

    conn = build_connection_config(datasource, Settings())

    assert conn == ConnectionConfig(
        region="us-west-2",
        access_key_id="AKIAEXAMPLE",
        secret_access_key="wJalr",
        endpoint_url=None,
        addressing_style="auto",
    )


def test_missing_fields_stay_none():
    conn = build_connection_config({}, Settings())

    assert conn.region is None
    assert conn.access_key_id is None
    assert conn.secret_access_key is None


def test_tolerates_malformed_authentication():
    conn = build_connection_config({"authentication": "oops"}, Settings())

    assert conn.access_key_id is None


def test_settings_supply_endpoint():
    settings = Settings(S3_ENDPOINT_URL="http://minio:9000", S3_ADDRESSING_STYLE="path")

    conn = build_connection_config(None, settings)

    assert conn.endpoint_url == "http://minio:9000"
    assert conn.addressing_style == "path"


def test_factory_builds_new_clients_each_call():
    factory = StorageClientFactory()
    with patch.object(
        S3StorageClient, "_build_client", side_effect=lambda conn: MagicMock()
    ), patch.object(StsIdentityClient, "_build_client", return_value=MagicMock()):
        first = factory.storage(ConnectionConfig())
        second = factory.storage(ConnectionConfig())
        identity = factory.identity(ConnectionConfig())

    assert isinstance(first, S3StorageClient)
    assert first is not second
    assert isinstance(identity, StsIdentityClient)
