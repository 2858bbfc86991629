"""
Pytest configuration and fixtures for feedback relay tests.
"""
import json
from typing import Callable, List

import httpx
import pytest

from feedback_relay.config import RelayConfig, validate_notification_config


STATEFUL_URL = "https://apprise.example.com/notify/app"
STATELESS_URL = "https://apprise.example.com/notify"


@pytest.fixture(autouse=True)
def clean_feedback_env(monkeypatch):
    """Keep host FEEDBACK_* variables out of configuration tests."""
    import os

    for key in list(os.environ):
        if key.startswith("FEEDBACK_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    """Write a YAML config file and point FEEDBACK_CONFIG_PATH at it."""

    def _write(text: str):
        path = tmp_path / "feedback.yaml"
        path.write_text(text)
        monkeypatch.setenv("FEEDBACK_CONFIG_PATH", str(path))
        return path

    return _write


@pytest.fixture
def make_config() -> Callable[..., RelayConfig]:
    """Build a validated RelayConfig."""

    def _make(url: str = STATEFUL_URL, headers=None, stateless_urls=None) -> RelayConfig:
        return RelayConfig(
            addr="127.0.0.1:8080",
            notification=validate_notification_config(url, headers, stateless_urls),
        )

    return _make


class RecordingTransport(httpx.MockTransport):
    """Mock Apprise API recording every request it receives."""

    def __init__(self, status_code: int = 200, error: Exception = None):
        self.requests: List[httpx.Request] = []
        self.status_code = status_code
        self.error = error
        super().__init__(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return httpx.Response(self.status_code, json={"detail": "upstream secret detail"})

    @property
    def last_json(self) -> dict:
        return json.loads(self.requests[-1].content)


@pytest.fixture
def apprise_transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def valid_submission() -> dict:
    return {"subject": "Bug", "message": "It broke", "source": "web"}


@pytest.fixture
def make_transport() -> Callable[..., RecordingTransport]:
    """Build a mock Apprise API with a chosen status or transport error."""
    return RecordingTransport
