import json
import logging
import re
import time
import uuid
from typing import Any

from fastapi import Request
from starlette.concurrency import iterate_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware

from s3plugin.common.config import get_settings
from s3plugin.infra.observability.metrics import LATENCY, REQUESTS

MAX_TRACED_BODY = 2048

# Datasource credentials travel in execute/metadata/test bodies.
SENSITIVE_KEYS = {
    "password",
    "secret",
    "secretkey",
    "secret_access_key",
    "accesskeyid",
    "access_key_id",
    "token",
    "api_key",
    "x-api-key",
    "authorization",
}

_TEXT_PATTERNS = [
    re.compile(
        r"(?i)(secretkey|accesskeyid|token|secret|api_key|x-api-key|password|authorization)\s*[:=]\s*[^\s]+"
    ),
]


def mask_payload(obj: Any) -> Any:
    if isinstance(obj, dict):
        masked: dict[str, Any] = {}
        for key, value in obj.items():
            if isinstance(key, str) and key.lower() in SENSITIVE_KEYS:
                masked[key] = "***"
            else:
                masked[key] = mask_payload(value)
        return masked
    if isinstance(obj, list):
        return [mask_payload(item) for item in obj]
    return obj


def mask_text(text: str) -> str:
    masked = text
    for pattern in _TEXT_PATTERNS:
        masked = pattern.sub(lambda m: re.split(r"[:=]", m.group(0))[0] + ": ***", masked)
    return masked


def render_traced_body(raw: bytes) -> str | None:
    if not raw:
        return None
    decoded = raw.decode("utf-8", errors="replace")
    try:
        parsed = json.loads(decoded)
    except ValueError:
        rendered = mask_text(decoded)
    else:
        rendered = json.dumps(mask_payload(parsed), ensure_ascii=False)
    if len(rendered) > MAX_TRACED_BODY:
        rendered = rendered[:MAX_TRACED_BODY] + "...<truncated>"
    return rendered


def _route_label(request: Request) -> str:
    route = request.scope.get("route")
    if route is not None and hasattr(route, "path"):
        return route.path
    return request.url.path


class MetricsMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        request_id = request.headers.get("X-Request-Id") or str(uuid.uuid4())
        logger = logging.getLogger("http")
        trace_http = get_settings().TRACE_HTTP

        request_body: str | None = None
        if trace_http:
            raw_body = await request.body()
            request_body = render_traced_body(raw_body)

            async def receive():
                return {"type": "http.request", "body": raw_body, "more_body": False}

            request._receive = receive

        try:
            response = await call_next(request)
        except Exception as exc:
            logger.exception(
                "request_error method=%s route=%s request_id=%s",
                request.method,
                request.url.path,
                request_id,
                extra={
                    "extra": {
                        "method": request.method,
                        "route": request.url.path,
                        "status": 500,
                        "request_id": request_id,
                        "exception": repr(exc),
                    }
                },
            )
            raise

        elapsed = time.perf_counter() - start
        route = _route_label(request)
        REQUESTS.labels(request.method, route, str(response.status_code)).inc()
        LATENCY.labels(request.method, route).observe(elapsed)

        if "X-Request-Id" not in response.headers:
            response.headers["X-Request-Id"] = request_id

        extra_payload: dict[str, Any] = {
            "method": request.method,
            "route": route,
            "status": response.status_code,
            "duration_ms": round(elapsed * 1000, 3),
            "request_id": request_id,
        }
        if trace_http:
            body = b""
            async for chunk in response.body_iterator:
                body += chunk
            response.body_iterator = iterate_in_threadpool(iter([body]))
            extra_payload["request_body"] = request_body
            extra_payload["response_body"] = render_traced_body(body)

        level = logging.INFO
        if response.status_code >= 500:
            level = logging.ERROR
        elif response.status_code >= 400:
            level = logging.WARNING
        logger.log(
            level,
            "request method=%s route=%s status=%s duration_ms=%.3f request_id=%s",
            request.method,
            route,
            response.status_code,
            extra_payload["duration_ms"],
            request_id,
            extra={"extra": extra_payload},
        )
        return response
