from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path

ENV_FILE = Path(".env")

# Seven days, the longest lifetime SigV4 allows for a presigned URL.
DEFAULT_PRESIGNED_URL_EXPIRATION_SECONDS = 60 * 60 * 24 * 7
DEFAULT_MULTI_UPLOAD_MAX_CONCURRENCY = 8

ADDRESSING_STYLES = ("auto", "path", "virtual")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _load_env_file() -> None:
    if not ENV_FILE.exists():
        return
    for raw_line in ENV_FILE.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key and key not in os.environ:
            os.environ[key] = value


def _as_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    return value.lower() in {"1", "true", "t", "yes", "y", "on"}


def _as_list(value: str | None) -> list[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def _as_optional(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


@dataclass
class Settings:
    S3_ENDPOINT_URL: str | None = None
    S3_ADDRESSING_STYLE: str = "auto"
    S3_PRESIGNED_URL_EXPIRATION_SECONDS: int = DEFAULT_PRESIGNED_URL_EXPIRATION_SECONDS
    MULTI_UPLOAD_MAX_CONCURRENCY: int = DEFAULT_MULTI_UPLOAD_MAX_CONCURRENCY
    MULTI_UPLOAD_CLEANUP_ON_FAILURE: bool = True
    ENABLE_METRICS: bool = True
    API_KEY_ENABLED: bool = False
    API_KEY: str | None = None
    CORS_ENABLED: bool = False
    CORS_ORIGINS: list[str] = field(default_factory=list)
    TRACE_HTTP: bool = False
    LOG_LEVEL: str = "INFO"

    def __post_init__(self) -> None:
        level = (self.LOG_LEVEL or "INFO").strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}.")
        self.LOG_LEVEL = level
        style = (self.S3_ADDRESSING_STYLE or "auto").strip().lower()
        if style not in ADDRESSING_STYLES:
            raise ValueError(
                f"S3_ADDRESSING_STYLE must be one of {', '.join(ADDRESSING_STYLES)}."
            )
        self.S3_ADDRESSING_STYLE = style
        if self.S3_PRESIGNED_URL_EXPIRATION_SECONDS <= 0:
            raise ValueError("S3_PRESIGNED_URL_EXPIRATION_SECONDS must be positive.")
        if self.MULTI_UPLOAD_MAX_CONCURRENCY < 1:
            raise ValueError("MULTI_UPLOAD_MAX_CONCURRENCY must be at least 1.")

    @classmethod
    def from_environment(cls) -> "Settings":
        _load_env_file()
        return cls(
            S3_ENDPOINT_URL=_as_optional(os.environ.get("S3_ENDPOINT_URL")),
            S3_ADDRESSING_STYLE=os.environ.get(
                "S3_ADDRESSING_STYLE", cls.S3_ADDRESSING_STYLE
            ),
            S3_PRESIGNED_URL_EXPIRATION_SECONDS=int(
                os.environ.get(
                    "S3_PRESIGNED_URL_EXPIRATION_SECONDS",
                    cls.S3_PRESIGNED_URL_EXPIRATION_SECONDS,
                )
            ),
            MULTI_UPLOAD_MAX_CONCURRENCY=int(
                os.environ.get(
                    "MULTI_UPLOAD_MAX_CONCURRENCY", cls.MULTI_UPLOAD_MAX_CONCURRENCY
                )
            ),
            MULTI_UPLOAD_CLEANUP_ON_FAILURE=_as_bool(
                os.environ.get("MULTI_UPLOAD_CLEANUP_ON_FAILURE"),
                cls.MULTI_UPLOAD_CLEANUP_ON_FAILURE,
            ),
            ENABLE_METRICS=_as_bool(
                os.environ.get("ENABLE_METRICS"), cls.ENABLE_METRICS
            ),
            API_KEY_ENABLED=_as_bool(
                os.environ.get("API_KEY_ENABLED"), cls.API_KEY_ENABLED
            ),
            API_KEY=os.environ.get("API_KEY"),
            CORS_ENABLED=_as_bool(os.environ.get("CORS_ENABLED"), cls.CORS_ENABLED),
            CORS_ORIGINS=_as_list(os.environ.get("CORS_ORIGINS")),
            TRACE_HTTP=_as_bool(os.environ.get("TRACE_HTTP"), cls.TRACE_HTTP),
            LOG_LEVEL=os.environ.get("LOG_LEVEL", cls.LOG_LEVEL),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_environment()
