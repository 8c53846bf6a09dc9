"""S3 integration plugin.

Entry points the host calls: ``execute``, ``get_request``, ``metadata``,
``test`` and ``dynamic_properties``. Every client is built per call from the
datasource configuration; nothing is shared between executions.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from s3plugin.common.config import Settings, get_settings
from s3plugin.infra.observability.metrics import PLUGIN_ACTIONS
from s3plugin.infra.storage.client import StorageClient
from s3plugin.infra.storage.factory import StorageClientFactory, build_connection_config
from s3plugin.services.actions import (
    ACTION_DISPLAY_NAMES,
    DYNAMIC_PROPERTIES,
    ActionContext,
    ActionType,
    parse_action,
)
from s3plugin.services.errors import IntegrationError
from s3plugin.services.files import StagedFile


@dataclass
class ExecutionOutput:
    """Normalized result of one execute call."""

    log: list[str] = field(default_factory=list)
    output: Any = None

    def to_dict(self) -> dict[str, Any]:
        return {"log": list(self.log), "output": self.output}


class S3Plugin:
    """Maps declarative S3 actions onto storage client calls."""

    def __init__(
        self,
        *,
        client_factory: StorageClientFactory | None = None,
        settings: Settings | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._clients = client_factory or StorageClientFactory()
        self._settings = settings or get_settings()
        self._logger = logger or logging.getLogger("s3plugin")

    def _storage(self, datasource: Mapping[str, Any] | None) -> StorageClient:
        connection = build_connection_config(datasource, self._settings)
        return self._clients.storage(connection)

    def execute(
        self,
        *,
        datasource_configuration: Mapping[str, Any] | None,
        action_configuration: Mapping[str, Any],
        files: Sequence[StagedFile] = (),
        context: Any = None,
    ) -> ExecutionOutput:
        """Run one action and normalize its result.

        Raises:
            IntegrationError: For every failure, with the cause in the message.
        """
        raw_action = action_configuration.get("action")
        parsed_type = ActionType.parse(raw_action)
        metric_label = parsed_type.value if parsed_type else "unknown"
        ret = ExecutionOutput()
        try:
            action = parse_action(action_configuration)
            if action is None:
                self._logger.debug("unhandled_action action=%s", raw_action)
                return ret
            action.validate()
            ctx = ActionContext(
                storage=self._storage(datasource_configuration),
                staged_files=tuple(files),
                presign_expires_in=self._settings.S3_PRESIGNED_URL_EXPIRATION_SECONDS,
                max_concurrency=self._settings.MULTI_UPLOAD_MAX_CONCURRENCY,
                cleanup_on_failure=self._settings.MULTI_UPLOAD_CLEANUP_ON_FAILURE,
            )
            ret.output = action.run(ctx)
        except Exception as exc:
            PLUGIN_ACTIONS.labels(metric_label, "error").inc()
            raise IntegrationError(f"S3 request failed, {exc}") from exc
        PLUGIN_ACTIONS.labels(metric_label, "success").inc()
        return ret

    def get_request(self, action_configuration: Mapping[str, Any]) -> str:
        """Human-readable description of the request, for audit trails."""
        action = parse_action(action_configuration)
        if action is None:
            return f"Action: {action_configuration.get('action')}"
        lines = [f"Action: {ACTION_DISPLAY_NAMES[action.action_type]}"]
        lines.extend(action.describe())
        return "\n".join(lines)

    def dynamic_properties(self) -> list[str]:
        return list(DYNAMIC_PROPERTIES)

    def metadata(self, datasource_configuration: Mapping[str, Any] | None) -> dict[str, Any]:
        """List buckets for UI autocomplete; any failure yields ``{}``."""
        try:
            buckets = self._storage(datasource_configuration).list_buckets()
        except Exception as exc:
            self._logger.debug(
                "Failed to fetch buckets; expected that the credentials may be limited: %s",
                exc,
            )
            return {}
        return {"buckets": [{"name": bucket.get("Name")} for bucket in buckets]}

    def test(self, datasource_configuration: Mapping[str, Any] | None) -> None:
        """Check the credentials with the identity service.

        Raises:
            IntegrationError: If the identity service rejects the credentials.
        """
        try:
            connection = build_connection_config(datasource_configuration, self._settings)
            self._clients.identity(connection).get_caller_identity()
        except Exception as exc:
            raise IntegrationError(f"S3 client configuration failed. {exc}") from exc
