"""Plugin host API router.

These endpoints let the integration host drive the S3 plugin over HTTP:
execute an action, describe a request, probe metadata and test credentials.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from s3plugin.api.v1.deps import get_plugin
from s3plugin.api.v1.schemas.plugin import (
    ActionRequest,
    ConnectionTestOut,
    DatasourceRequest,
    DynamicPropertiesOut,
    ExecuteRequest,
    ExecutionOutputOut,
    MetadataOut,
    RequestDescriptionOut,
)
from s3plugin.services.errors import IntegrationError
from s3plugin.services.plugin import S3Plugin

router = APIRouter()


def _integration_error(exc: IntegrationError) -> HTTPException:
    return HTTPException(
        status_code=400,
        detail={"message": str(exc), "error_code": "integration_error"},
    )


@router.post(
    "/execute",
    response_model=ExecutionOutputOut,
    summary="Execute an S3 action",
    description="Run one action against the configured datasource.",
)
def execute(
    payload: ExecuteRequest,
    plugin: S3Plugin = Depends(get_plugin),
) -> ExecutionOutputOut:
    try:
        result = plugin.execute(
            datasource_configuration=payload.datasourceConfiguration,
            action_configuration=payload.actionConfiguration,
            files=[f.to_staged_file() for f in payload.files],
            context=payload.context,
        )
    except IntegrationError as exc:
        raise _integration_error(exc) from exc
    return ExecutionOutputOut(**result.to_dict())


@router.post(
    "/request",
    response_model=RequestDescriptionOut,
    summary="Describe an S3 action",
    description="Build the human-readable request summary used for audit trails.",
)
def describe_request(
    payload: ActionRequest,
    plugin: S3Plugin = Depends(get_plugin),
) -> RequestDescriptionOut:
    try:
        text = plugin.get_request(payload.actionConfiguration)
    except IntegrationError as exc:
        raise _integration_error(exc) from exc
    return RequestDescriptionOut(request=text)


@router.post(
    "/metadata",
    response_model=MetadataOut,
    response_model_exclude_none=True,
    summary="List buckets for autocomplete",
)
def metadata(
    payload: DatasourceRequest,
    plugin: S3Plugin = Depends(get_plugin),
) -> MetadataOut:
    return MetadataOut(**plugin.metadata(payload.datasourceConfiguration))


@router.post(
    "/test",
    response_model=ConnectionTestOut,
    summary="Test datasource credentials",
)
def test_connection(
    payload: DatasourceRequest,
    plugin: S3Plugin = Depends(get_plugin),
) -> ConnectionTestOut:
    try:
        plugin.test(payload.datasourceConfiguration)
    except IntegrationError as exc:
        raise _integration_error(exc) from exc
    return ConnectionTestOut()


@router.get(
    "/dynamic-properties",
    response_model=DynamicPropertiesOut,
    summary="List runtime-templatable fields",
)
def dynamic_properties(
    plugin: S3Plugin = Depends(get_plugin),
) -> DynamicPropertiesOut:
    return DynamicPropertiesOut(properties=plugin.dynamic_properties())
