"""Pydantic schemas for the plugin host endpoints.

Field names follow the host platform's camelCase wire format.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from s3plugin.services.files import StagedFile


class StagedFileIn(BaseModel):
    """A file the host staged on local disk for this execution."""

    model_config = ConfigDict(extra="allow")

    filename: str = Field(min_length=1)
    path: str = Field(min_length=1)
    originalname: str | None = None
    mimetype: str | None = None

    def to_staged_file(self) -> StagedFile:
        return StagedFile(
            filename=self.filename,
            path=self.path,
            originalname=self.originalname,
            mimetype=self.mimetype,
        )


class ExecuteRequest(BaseModel):
    datasourceConfiguration: dict[str, Any] = Field(default_factory=dict)
    actionConfiguration: dict[str, Any]
    files: list[StagedFileIn] = Field(default_factory=list)
    context: dict[str, Any] | None = None


class DatasourceRequest(BaseModel):
    datasourceConfiguration: dict[str, Any] = Field(default_factory=dict)


class ActionRequest(BaseModel):
    actionConfiguration: dict[str, Any]


class ExecutionOutputOut(BaseModel):
    log: list[str] = Field(default_factory=list)
    output: Any = None


class BucketOut(BaseModel):
    name: str | None = None


class MetadataOut(BaseModel):
    buckets: list[BucketOut] | None = None


class ConnectionTestOut(BaseModel):
    status: str = "ok"


class RequestDescriptionOut(BaseModel):
    request: str


class DynamicPropertiesOut(BaseModel):
    properties: list[str]
