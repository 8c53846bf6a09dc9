"""Action types and their configuration variants.

Each action variant owns its parsing, validation, execution and request
description, so dispatch and the audit description come from the same class.
"""

from __future__ import annotations

import json
import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar

from s3plugin.common.mappings import nested_value
from s3plugin.infra.storage.client import StorageClient
from s3plugin.services.errors import ActionValidationError
from s3plugin.services.files import (
    StagedFile,
    coerce_body,
    descriptor_name,
    guess_content_type,
    parse_file_objects,
    resolve_byte_sources,
)
from s3plugin.services.uploads import BatchUploader


class ActionType(str, Enum):
    LIST_OBJECTS = "LIST_OBJECTS"
    LIST_BUCKETS = "LIST_BUCKETS"
    GET_OBJECT = "GET_OBJECT"
    DELETE_OBJECT = "DELETE_OBJECT"
    UPLOAD_OBJECT = "UPLOAD_OBJECT"
    UPLOAD_MULTIPLE_OBJECTS = "UPLOAD_MULTIPLE_OBJECTS"
    GENERATE_PRESIGNED_URL = "GENERATE_PRESIGNED_URL"

    @classmethod
    def parse(cls, raw: Any) -> "ActionType | None":
        # Names are matched exactly; they are part of the host's wire format.
        if isinstance(raw, cls):
            return raw
        if not isinstance(raw, str):
            return None
        try:
            return cls(raw)
        except ValueError:
            return None


ACTION_DISPLAY_NAMES: dict[ActionType, str] = {
    ActionType.LIST_OBJECTS: "List objects",
    ActionType.LIST_BUCKETS: "List buckets",
    ActionType.GET_OBJECT: "Get object",
    ActionType.DELETE_OBJECT: "Delete object",
    ActionType.UPLOAD_OBJECT: "Upload object",
    ActionType.UPLOAD_MULTIPLE_OBJECTS: "Upload multiple objects",
    ActionType.GENERATE_PRESIGNED_URL: "Generate presigned URL",
}

DYNAMIC_PROPERTIES: tuple[str, ...] = ("action", "resource", "path", "body", "fileObjects")


@dataclass(frozen=True)
class ActionContext:
    """Everything an action needs for one execution."""

    storage: StorageClient
    staged_files: Sequence[StagedFile] = ()
    presign_expires_in: int = 0
    max_concurrency: int = 1
    cleanup_on_failure: bool = True


def _text(value: Any) -> str | None:
    if value is None:
        return None
    return value if isinstance(value, str) else str(value)


def _display(value: Any) -> str:
    return "" if value is None else str(value)


def _json(value: Any) -> str:
    return json.dumps("" if value is None else value)


def parse_expiration(raw: Any) -> int | None:
    """Return a positive whole number of seconds, or ``None`` for the default."""
    if raw is None or isinstance(raw, bool):
        return None
    try:
        seconds = float(raw)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(seconds) or seconds <= 0:
        return None
    return int(seconds)


@dataclass(frozen=True)
class Action:
    action_type: ClassVar[ActionType]
    verb: ClassVar[str] = ""

    resource: str | None = None

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "Action":
        return cls(resource=_text(config.get("resource")))

    def validate(self) -> None:
        if not self.resource:
            raise ActionValidationError(f"Resource required for {self.verb}")

    def run(self, ctx: ActionContext) -> Any:
        raise NotImplementedError

    def describe(self) -> list[str]:
        return [f"Bucket: {_display(self.resource)}"]


@dataclass(frozen=True)
class ObjectAction(Action):
    path: str | None = None

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "ObjectAction":
        return cls(
            resource=_text(config.get("resource")),
            path=_text(config.get("path")),
        )

    def validate(self) -> None:
        super().validate()
        if not self.path:
            raise ActionValidationError(f"Path required for {self.verb}")

    def describe(self) -> list[str]:
        return [f"Bucket: {_display(self.resource)}", f"Key: {_json(self.path)}"]


@dataclass(frozen=True)
class ListObjects(Action):
    action_type = ActionType.LIST_OBJECTS
    verb = "list objects"

    def run(self, ctx: ActionContext) -> Any:
        return ctx.storage.list_objects(bucket=self.resource)


@dataclass(frozen=True)
class ListBuckets(Action):
    action_type = ActionType.LIST_BUCKETS

    def validate(self) -> None:
        return None

    def run(self, ctx: ActionContext) -> Any:
        return ctx.storage.list_buckets()

    def describe(self) -> list[str]:
        return []


@dataclass(frozen=True)
class GetObject(ObjectAction):
    action_type = ActionType.GET_OBJECT
    verb = "get objects"

    def run(self, ctx: ActionContext) -> Any:
        return ctx.storage.get_object(bucket=self.resource, object_key=self.path)


@dataclass(frozen=True)
class DeleteObject(ObjectAction):
    action_type = ActionType.DELETE_OBJECT
    verb = "delete objects"

    def run(self, ctx: ActionContext) -> Any:
        ctx.storage.delete_object(bucket=self.resource, object_key=self.path)
        return None


@dataclass(frozen=True)
class UploadObject(ObjectAction):
    action_type = ActionType.UPLOAD_OBJECT
    verb = "upload objects"

    body: Any = None

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "UploadObject":
        return cls(
            resource=_text(config.get("resource")),
            path=_text(config.get("path")),
            body=config.get("body"),
        )

    def run(self, ctx: ActionContext) -> Any:
        uploaded = ctx.storage.put_object(
            bucket=self.resource,
            object_key=self.path,
            body=coerce_body(self.body),
            content_type=guess_content_type(self.path),
        )
        url = ctx.storage.presign_get(
            bucket=self.resource,
            object_key=self.path,
            expires_in=ctx.presign_expires_in,
        )
        return uploaded.to_output(url)

    def describe(self) -> list[str]:
        return super().describe() + [f"Body: {_display(self.body)}"]


@dataclass(frozen=True)
class UploadMultipleObjects(Action):
    action_type = ActionType.UPLOAD_MULTIPLE_OBJECTS
    verb = "uploading multiple objects"

    file_objects: Any = None

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "UploadMultipleObjects":
        return cls(
            resource=_text(config.get("resource")),
            file_objects=config.get("fileObjects"),
        )

    def validate(self) -> None:
        super().validate()
        if self.file_objects is None or self.file_objects == "":
            raise ActionValidationError(
                "File objects required for uploading multiple objects"
            )
        parse_file_objects(self.file_objects)

    def run(self, ctx: ActionContext) -> Any:
        descriptors = parse_file_objects(self.file_objects)
        sources = resolve_byte_sources(descriptors, ctx.staged_files)
        uploader = BatchUploader(
            ctx.storage,
            max_concurrency=ctx.max_concurrency,
            presign_expires_in=ctx.presign_expires_in,
            cleanup_on_failure=ctx.cleanup_on_failure,
        )
        return uploader.upload(self.resource, sources)

    def describe(self) -> list[str]:
        names = [descriptor_name(d) for d in parse_file_objects(self.file_objects)]
        return [
            f"Bucket: {_display(self.resource)}",
            f"File Objects: {json.dumps(names)}",
        ]


@dataclass(frozen=True)
class GeneratePresignedUrl(ObjectAction):
    action_type = ActionType.GENERATE_PRESIGNED_URL

    expiration: Any = None

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "GeneratePresignedUrl":
        return cls(
            resource=_text(config.get("resource")),
            path=_text(config.get("path")),
            expiration=nested_value(config, "custom", "presignedExpiration", "value"),
        )

    def validate(self) -> None:
        # Neither bucket nor key is checked; an empty key signs the bucket root.
        return None

    def run(self, ctx: ActionContext) -> Any:
        return ctx.storage.presign_get(
            bucket=self.resource or "",
            object_key=self.path or "",
            expires_in=parse_expiration(self.expiration) or ctx.presign_expires_in,
        )

    def describe(self) -> list[str]:
        return super().describe() + [f"Expiration: {_display(self.expiration)}"]


ACTIONS: dict[ActionType, type[Action]] = {
    cls.action_type: cls
    for cls in (
        ListObjects,
        ListBuckets,
        GetObject,
        DeleteObject,
        UploadObject,
        UploadMultipleObjects,
        GeneratePresignedUrl,
    )
}

_unhandled = set(ActionType) - set(ACTIONS)
if _unhandled:
    raise RuntimeError(
        f"Action types without a handler: {sorted(a.value for a in _unhandled)}"
    )


def parse_action(config: Mapping[str, Any]) -> Action | None:
    """Build the variant for ``config['action']``; ``None`` when unrecognised."""
    action_type = ActionType.parse(config.get("action"))
    if action_type is None:
        return None
    return ACTIONS[action_type].from_config(config)
