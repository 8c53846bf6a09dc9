from __future__ import annotations

import os

import pytest

os.environ.setdefault("API_KEY_ENABLED", "false")
os.environ.setdefault("TRACE_HTTP", "false")

from s3plugin.common.config import Settings, get_settings  # noqa: E402
from s3plugin.services.plugin import S3Plugin  # noqa: E402
from tests.services.fake_storage import FakeClientFactory  # noqa: E402


@pytest.fixture(autouse=True)
def reset_settings_cache():
    get_settings.cache_clear()  # type: ignore[attr-defined]
    yield
    get_settings.cache_clear()  # type: ignore[attr-defined]


@pytest.fixture()
def settings() -> Settings:
    return Settings()


@pytest.fixture()
def clients() -> FakeClientFactory:
    return FakeClientFactory()


@pytest.fixture()
def storage(clients):
    return clients.storage_client


@pytest.fixture()
def plugin(clients, settings) -> S3Plugin:
    return S3Plugin(client_factory=clients, settings=settings)
