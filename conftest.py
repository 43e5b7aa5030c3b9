# Make the flat top-level packages (core, api, services, ui) importable
# when pytest is run from the repository root without installing.
import os
import sys

import httpx
import pytest

ROOT = os.path.dirname(__file__)
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from core.config import Config, ProxyConfig  # noqa: E402

BACKEND_URL = "http://backend.test/api"
SECRET = "s3cr3t-function-key"


class RecordingLogger:
    """RequestLogger double that keeps every call."""

    def __init__(self):
        self.forwards = []
        self.responses = []
        self.errors = []

    def log_forward(self, method, path, target_url, headers):
        self.forwards.append((method, path, target_url, headers))

    def log_response(self, method, target_url, status):
        self.responses.append((method, target_url, status))

    def log_error(self, kind, status, message):
        self.errors.append((kind, status, message))


class RecordingBackend:
    """httpx.MockTransport handler that records requests and replays a response."""

    def __init__(self, status_code=200, content=b'{"ok":true}', headers=None, error=None):
        self.status_code = status_code
        self.content = content
        self.headers = headers if headers is not None else {"content-type": "application/json"}
        self.error = error
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error("[Errno 111] Connection refused", request=request)
        return httpx.Response(self.status_code, headers=self.headers, content=self.content)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


def _unexpected_call(request: httpx.Request) -> httpx.Response:
    pytest.fail(f"backend must not be called, got {request.method} {request.url}")


@pytest.fixture
def recording_logger():
    return RecordingLogger()


@pytest.fixture
def proxy_config():
    return ProxyConfig(backend_base_url=BACKEND_URL, shared_secret_key=SECRET)


@pytest.fixture
def app_config(proxy_config):
    return Config(proxy=proxy_config)


@pytest.fixture
def backend():
    return RecordingBackend()


@pytest.fixture
def forbidden_transport():
    """Transport that fails the test if any upstream call is made."""
    return httpx.MockTransport(_unexpected_call)
