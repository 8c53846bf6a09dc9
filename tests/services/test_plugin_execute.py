"""Tests for S3Plugin.execute."""

from __future__ import annotations

import json

import pytest

from s3plugin.common.config import DEFAULT_PRESIGNED_URL_EXPIRATION_SECONDS
from s3plugin.services.errors import IntegrationError
from s3plugin.services.files import StagedFile

STAGED_ID = "uppy-superblocks_master_zip-1d-1e-application_zip-11343326-1669048984124"


def _staged_zip(tmp_path, content: bytes = b"PK zip bytes") -> StagedFile:
    filename = f"{STAGED_ID}_dev-agent-key"
    path = tmp_path / filename
    path.write_bytes(content)
    return StagedFile(
        filename=filename,
        path=str(path),
        originalname=STAGED_ID,
        mimetype="application/zip",
    )


def _zip_descriptor() -> dict:
    return {
        "name": "superblocks-master.zip",
        "extension": "zip",
        "type": "application/zip",
        "size": 1005,
        "encoding": "text",
        "$superblocksId": STAGED_ID,
    }


class TestValidation:
    @pytest.mark.parametrize(
        ("config", "message"),
        [
            ({"action": "LIST_OBJECTS"}, "Resource required for list objects"),
            ({"action": "GET_OBJECT", "path": "a.txt"}, "Resource required for get objects"),
            ({"action": "GET_OBJECT", "resource": "b"}, "Path required for get objects"),
            ({"action": "DELETE_OBJECT", "path": "a.txt"}, "Resource required for delete objects"),
            ({"action": "DELETE_OBJECT", "resource": "b"}, "Path required for delete objects"),
            ({"action": "UPLOAD_OBJECT", "path": "a.txt"}, "Resource required for upload objects"),
            ({"action": "UPLOAD_OBJECT", "resource": "b", "path": ""}, "Path required for upload objects"),
            (
                {"action": "UPLOAD_MULTIPLE_OBJECTS", "fileObjects": "[]"},
                "Resource required for uploading multiple objects",
            ),
            (
                {"action": "UPLOAD_MULTIPLE_OBJECTS", "resource": "b"},
                "File objects required for uploading multiple objects",
            ),
            (
                {"action": "UPLOAD_MULTIPLE_OBJECTS", "resource": "b", "fileObjects": "{not json"},
                "Can't parse the file objects",
            ),
            (
                {"action": "UPLOAD_MULTIPLE_OBJECTS", "resource": "b", "fileObjects": '{"name": "x"}'},
                "File objects must be an array of JSON objects.",
            ),
        ],
    )
    def test_missing_fields_fail_before_network(self, plugin, clients, config, message):
        with pytest.raises(IntegrationError, match=message) as exc_info:
            plugin.execute(datasource_configuration={}, action_configuration=config)

        assert str(exc_info.value).startswith("S3 request failed, ")
        assert clients.connections == []
        assert clients.storage_client.calls == []

    def test_unknown_action_returns_empty_output(self, plugin, clients):
        result = plugin.execute(
            datasource_configuration={},
            action_configuration={"action": "COPY_OBJECT", "resource": "b"},
        )

        assert result.to_dict() == {"log": [], "output": None}
        assert clients.storage_client.calls == []

    @pytest.mark.parametrize("action", ["delete_object", " DELETE_OBJECT", "Delete_Object"])
    def test_action_names_are_case_sensitive(self, plugin, clients, action):
        result = plugin.execute(
            datasource_configuration={},
            action_configuration={"action": action, "resource": "b", "path": "k"},
        )

        assert result.to_dict() == {"log": [], "output": None}
        assert clients.storage_client.calls == []

    def test_list_buckets_needs_no_fields(self, plugin, storage):
        result = plugin.execute(
            datasource_configuration={},
            action_configuration={"action": "LIST_BUCKETS"},
        )

        assert result.output == [{"Name": "fancy-bucket"}]
        assert result.log == []


class TestObjectActions:
    def test_list_objects_returns_contents(self, plugin, storage):
        storage.objects[("b", "one.txt")] = {"body": b"1", "content_type": None}

        result = plugin.execute(
            datasource_configuration={},
            action_configuration={"action": "LIST_OBJECTS", "resource": "b"},
        )

        assert result.output == [{"Key": "one.txt", "Size": 1}]

    def test_get_object_returns_text(self, plugin, storage):
        storage.objects[("b", "notes.txt")] = {"body": b"hello", "content_type": None}

        result = plugin.execute(
            datasource_configuration={},
            action_configuration={"action": "GET_OBJECT", "resource": "b", "path": "notes.txt"},
        )

        assert result.output == "hello"

    def test_delete_object_returns_nothing(self, plugin, storage):
        storage.objects[("b", "gone.txt")] = {"body": b"x", "content_type": None}

        result = plugin.execute(
            datasource_configuration={},
            action_configuration={"action": "DELETE_OBJECT", "resource": "b", "path": "gone.txt"},
        )

        assert result.output is None
        assert ("b", "gone.txt") not in storage.objects

    def test_storage_failure_is_wrapped(self, plugin):
        with pytest.raises(IntegrationError) as exc_info:
            plugin.execute(
                datasource_configuration={},
                action_configuration={"action": "GET_OBJECT", "resource": "b", "path": "missing"},
            )

        assert str(exc_info.value) == "S3 request failed, Failed to get object: NoSuchKey"

    def test_credentials_flow_into_connection(self, plugin, clients):
        datasource = {
            "authentication": {
                "custom": {
                    "region": {"value": "eu-west-1"},
                    "accessKeyID": {"value": "AKIA123"},
                    "secretKey": {"value": "shh"},
                }
            }
        }

        plugin.execute(
            datasource_configuration=datasource,
            action_configuration={"action": "LIST_BUCKETS"},
        )

        connection = clients.connections[0]
        assert connection.region == "eu-west-1"
        assert connection.access_key_id == "AKIA123"
        assert connection.secret_access_key == "shh"


class TestUploadObject:
    def test_uploads_with_content_type_and_presigned_url(self, plugin, storage, tmp_path):
        result = plugin.execute(
            datasource_configuration={},
            action_configuration={
                "action": "UPLOAD_OBJECT",
                "resource": "fancy-bucket",
                "path": "superblocks-master.zip",
                "body": "some content",
            },
            files=[_staged_zip(tmp_path)],
        )

        puts = storage.calls_to("put_object")
        assert puts == [
            {
                "bucket": "fancy-bucket",
                "object_key": "superblocks-master.zip",
                "body": b"some content",
                "content_type": "application/zip",
            }
        ]
        assert result.log == []
        assert result.output == {
            "Location": "https://fancy-bucket.s3.amazonaws.com/superblocks-master.zip",
            "ETag": '"etag-superblocks-master.zip"',
            "Bucket": "fancy-bucket",
            "Key": "superblocks-master.zip",
            "presignedURL": (
                "https://fancy-bucket.s3.amazonaws.com/superblocks-master.zip"
                f"?X-Amz-Expires={DEFAULT_PRESIGNED_URL_EXPIRATION_SECONDS}"
            ),
        }

    def test_presign_happens_after_upload(self, plugin, storage):
        plugin.execute(
            datasource_configuration={},
            action_configuration={
                "action": "UPLOAD_OBJECT",
                "resource": "b",
                "path": "data.json",
                "body": {"a": 1},
            },
        )

        assert [name for name, _ in storage.calls] == ["put_object", "presign_get"]
        assert storage.objects[("b", "data.json")] == {
            "body": b'{"a": 1}',
            "content_type": "application/json",
        }


class TestUploadMultipleObjects:
    def test_mixed_inline_and_staged_files(self, plugin, storage, tmp_path):
        descriptors = [
            _zip_descriptor(),
            {"name": "readme.txt", "contents": "inline text"},
        ]

        result = plugin.execute(
            datasource_configuration={},
            action_configuration={
                "action": "UPLOAD_MULTIPLE_OBJECTS",
                "resource": "fancy-bucket",
                "fileObjects": json.dumps(descriptors),
            },
            files=[_staged_zip(tmp_path, b"zip-bytes")],
        )

        assert [entry["Key"] for entry in result.output] == [
            "superblocks-master.zip",
            "readme.txt",
        ]
        assert all("presignedURL" in entry for entry in result.output)
        puts = {call["object_key"]: call for call in storage.calls_to("put_object")}
        assert len(puts) == 2
        assert puts["superblocks-master.zip"]["body"] == b"zip-bytes"
        assert puts["superblocks-master.zip"]["content_type"] == "application/zip"
        assert puts["readme.txt"]["body"] == b"inline text"
        assert puts["readme.txt"]["content_type"] == "text/plain"

    def test_accepts_structured_list(self, plugin, storage):
        result = plugin.execute(
            datasource_configuration={},
            action_configuration={
                "action": "UPLOAD_MULTIPLE_OBJECTS",
                "resource": "b",
                "fileObjects": [{"name": "a.csv", "contents": "x,y"}],
            },
        )

        assert len(result.output) == 1
        assert result.output[0]["Bucket"] == "b"

    def test_unresolvable_reference_uploads_nothing(self, plugin, storage, tmp_path):
        descriptors = [
            {"name": "ok.txt", "contents": "fine"},
            {"name": "lost.zip", "$superblocksId": "not-staged"},
        ]

        with pytest.raises(
            IntegrationError, match="Could not locate file contents for file lost.zip"
        ):
            plugin.execute(
                datasource_configuration={},
                action_configuration={
                    "action": "UPLOAD_MULTIPLE_OBJECTS",
                    "resource": "b",
                    "fileObjects": json.dumps(descriptors),
                },
                files=[_staged_zip(tmp_path)],
            )

        assert storage.calls_to("put_object") == []

    def test_unreadable_descriptor_uploads_nothing(self, plugin, storage):
        with pytest.raises(IntegrationError, match="Cannot read files"):
            plugin.execute(
                datasource_configuration={},
                action_configuration={
                    "action": "UPLOAD_MULTIPLE_OBJECTS",
                    "resource": "b",
                    "fileObjects": [{"name": "a.txt", "contents": "x"}, {"size": 3}],
                },
            )

        assert storage.calls_to("put_object") == []

    def test_failed_upload_fails_batch_and_cleans_up(self, plugin, storage):
        storage.fail_keys = {"bad.txt"}

        with pytest.raises(IntegrationError, match="AccessDenied for bad.txt"):
            plugin.execute(
                datasource_configuration={},
                action_configuration={
                    "action": "UPLOAD_MULTIPLE_OBJECTS",
                    "resource": "b",
                    "fileObjects": [
                        {"name": "good.txt", "contents": "1"},
                        {"name": "bad.txt", "contents": "2"},
                    ],
                },
            )

        assert storage.objects == {}


class TestGeneratePresignedUrl:
    def _presign(self, plugin, **config):
        return plugin.execute(
            datasource_configuration={},
            action_configuration={"action": "GENERATE_PRESIGNED_URL", **config},
        )

    def test_uses_default_expiration_when_missing(self, plugin, storage):
        self._presign(plugin, resource="b", path="k.txt")

        assert storage.calls_to("presign_get") == [
            {
                "bucket": "b",
                "object_key": "k.txt",
                "expires_in": DEFAULT_PRESIGNED_URL_EXPIRATION_SECONDS,
            }
        ]

    def test_uses_numeric_expiration(self, plugin, storage):
        result = self._presign(
            plugin,
            resource="b",
            path="k.txt",
            custom={"presignedExpiration": {"value": "3600"}},
        )

        assert result.output == "https://b.s3.amazonaws.com/k.txt?X-Amz-Expires=3600"

    @pytest.mark.parametrize("value", ["soon", "", None, "NaN", "-5", True])
    def test_non_numeric_expiration_falls_back_to_default(self, plugin, storage, value):
        self._presign(
            plugin,
            resource="b",
            path="k.txt",
            custom={"presignedExpiration": {"value": value}},
        )

        assert (
            storage.calls_to("presign_get")[0]["expires_in"]
            == DEFAULT_PRESIGNED_URL_EXPIRATION_SECONDS
        )

    def test_empty_key_signs_bucket_root(self, plugin, storage):
        result = self._presign(plugin, resource="b")

        assert storage.calls_to("presign_get")[0]["object_key"] == ""
        assert result.output == (
            f"https://b.s3.amazonaws.com/?X-Amz-Expires={DEFAULT_PRESIGNED_URL_EXPIRATION_SECONDS}"
        )
