"""
Tests for the forwarder.

Covers:
- Configuration checks (short-circuit, no upstream call)
- URL, header and body rewriting as seen by the backend
- Upstream status/body passthrough
- Transport failures mapped to ConnectionError
"""

import httpx
import pytest

from conftest import BACKEND_URL, SECRET, RecordingBackend
from core.config import ProxyConfig
from core.request_types import ErrorKind, Failure, InboundRequest, Success
from services.forwarding_service import Forwarder, validate_config
from services.upstream import UpstreamClient


def make_forwarder(transport, logger):
    client = httpx.AsyncClient(transport=transport)
    return Forwarder(UpstreamClient(client), logger)


class TestConfigurationChecks:
    @pytest.mark.asyncio
    async def test_missing_backend_url_makes_no_call(self, forbidden_transport, recording_logger):
        forwarder = make_forwarder(forbidden_transport, recording_logger)
        config = ProxyConfig(shared_secret_key=SECRET)

        outcome = await forwarder.forward(InboundRequest.build("GET", "items"), config)

        assert isinstance(outcome, Failure)
        assert outcome.error.kind is ErrorKind.CONFIGURATION
        assert outcome.error.message == "backend base URL not set"
        assert outcome.error.status_code == 500
        assert recording_logger.forwards == []

    @pytest.mark.asyncio
    async def test_missing_secret_makes_no_call(self, forbidden_transport, recording_logger):
        forwarder = make_forwarder(forbidden_transport, recording_logger)
        config = ProxyConfig(backend_base_url=BACKEND_URL)

        outcome = await forwarder.forward(InboundRequest.build("POST", "items"), config)

        assert isinstance(outcome, Failure)
        assert outcome.error.kind is ErrorKind.CONFIGURATION
        assert outcome.error.message == "shared secret key not set"

    def test_backend_url_checked_before_secret(self):
        error = validate_config(ProxyConfig())

        assert error.message == "backend base URL not set"

    @pytest.mark.parametrize("url", ["backend.test/api", "/relative", "ftp://backend.test"])
    def test_backend_url_must_be_absolute_http(self, url):
        error = validate_config(ProxyConfig(backend_base_url=url, shared_secret_key=SECRET))

        assert error.kind is ErrorKind.CONFIGURATION
        assert "absolute" in error.message

    def test_valid_config_passes(self, proxy_config):
        assert validate_config(proxy_config) is None


class TestForwarding:
    @pytest.mark.asyncio
    async def test_backend_receives_rewritten_request(self, backend, proxy_config, recording_logger):
        forwarder = make_forwarder(backend.transport(), recording_logger)
        inbound = InboundRequest.build(
            "PUT",
            path="users/42",
            query={"notify": "yes please"},
            headers={
                "Host": "proxy.example.com",
                "X-Functions-Key": "client-forged",
                "X-Request-Id": "req-1",
            },
            body=b'{"name": "Ada"}',
        )

        outcome = await forwarder.forward(inbound, proxy_config)

        assert isinstance(outcome, Success)
        sent = backend.requests[0]
        assert sent.method == "PUT"
        assert str(sent.url) == f"{BACKEND_URL}/users/42?notify=yes+please"
        assert sent.headers.get_list("x-functions-key") == [SECRET]
        assert sent.headers["host"] == "backend.test"
        assert sent.headers["x-request-id"] == "req-1"
        assert sent.headers["content-type"] == "application/json"
        assert sent.content == b'{"name": "Ada"}'

    @pytest.mark.asyncio
    @pytest.mark.parametrize("method", ["GET", "HEAD"])
    async def test_bodyless_methods_send_no_body(self, backend, proxy_config, recording_logger, method):
        forwarder = make_forwarder(backend.transport(), recording_logger)
        inbound = InboundRequest.build(method, path="items", body=b"should not travel")

        await forwarder.forward(inbound, proxy_config)

        assert backend.requests[0].content == b""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("method", ["POST", "PATCH", "DELETE"])
    async def test_body_is_forwarded_byte_for_byte(self, backend, proxy_config, recording_logger, method):
        forwarder = make_forwarder(backend.transport(), recording_logger)
        body = bytes(range(256))
        inbound = InboundRequest.build(
            method, path="blob", headers={"Content-Type": "application/octet-stream"}, body=body
        )

        await forwarder.forward(inbound, proxy_config)

        assert backend.requests[0].content == body
        assert backend.requests[0].headers["content-type"] == "application/octet-stream"

    @pytest.mark.asyncio
    async def test_upstream_error_status_is_mirrored(self, proxy_config, recording_logger):
        backend = RecordingBackend(
            status_code=404,
            content=b'{"msg":"not found"}',
            headers={"content-type": "application/problem+json"},
        )
        forwarder = make_forwarder(backend.transport(), recording_logger)

        outcome = await forwarder.forward(InboundRequest.build("GET", "missing"), proxy_config)

        assert isinstance(outcome, Success)
        assert outcome.result.status_code == 404
        assert outcome.result.body == b'{"msg":"not found"}'
        assert outcome.result.content_type == "application/problem+json"
        assert recording_logger.responses == [("GET", f"{BACKEND_URL}/missing", 404)]

    @pytest.mark.asyncio
    async def test_missing_upstream_content_type_defaults_to_json(self, proxy_config, recording_logger):
        backend = RecordingBackend(content=b"plain", headers={})
        forwarder = make_forwarder(backend.transport(), recording_logger)

        outcome = await forwarder.forward(InboundRequest.build("GET"), proxy_config)

        assert outcome.result.content_type == "application/json"

    @pytest.mark.asyncio
    async def test_repeated_get_is_idempotent(self, backend, proxy_config, recording_logger):
        forwarder = make_forwarder(backend.transport(), recording_logger)
        inbound = InboundRequest.build("GET", path="items", query={"page": "2"})

        first = await forwarder.forward(inbound, proxy_config)
        second = await forwarder.forward(inbound, proxy_config)

        assert first == second
        assert backend.requests[0].url == backend.requests[1].url
        assert backend.requests[0].headers.raw == backend.requests[1].headers.raw


class TestHeaderEncoding:
    @pytest.mark.asyncio
    async def test_latin1_secret_reaches_backend(self, backend, recording_logger):
        forwarder = make_forwarder(backend.transport(), recording_logger)
        config = ProxyConfig(backend_base_url=BACKEND_URL, shared_secret_key="cl\xe9")

        outcome = await forwarder.forward(InboundRequest.build("GET", "x"), config)

        assert isinstance(outcome, Success)
        assert (b"x-functions-key", b"cl\xe9") in backend.requests[0].headers.raw

    @pytest.mark.asyncio
    async def test_unencodable_header_is_failure_not_exception(self, forbidden_transport, proxy_config, recording_logger):
        forwarder = make_forwarder(forbidden_transport, recording_logger)
        inbound = InboundRequest.build("GET", "x", headers={"X-Mark": "\u2713"})

        outcome = await forwarder.forward(inbound, proxy_config)

        assert isinstance(outcome, Failure)
        assert outcome.error.kind is ErrorKind.CONFIGURATION
        assert outcome.error.status_code == 500


class TestTransportFailures:
    @pytest.mark.asyncio
    async def test_connection_refused_is_connection_error(self, proxy_config, recording_logger):
        backend = RecordingBackend(error=httpx.ConnectError)
        forwarder = make_forwarder(backend.transport(), recording_logger)

        outcome = await forwarder.forward(InboundRequest.build("GET", "items"), proxy_config)

        assert isinstance(outcome, Failure)
        assert outcome.error.kind is ErrorKind.CONNECTION
        assert outcome.error.status_code == 502
        assert outcome.error.upstream_url == f"{BACKEND_URL}/items"
        assert "Connection refused" in outcome.error.message
        assert "ConnectError" in outcome.error.detail
        assert recording_logger.errors[0][:2] == ("ConnectionError", 502)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error", [httpx.ReadTimeout, httpx.RemoteProtocolError, httpx.ReadError]
    )
    async def test_other_transport_errors_are_connection_errors(self, proxy_config, recording_logger, error):
        backend = RecordingBackend(error=error)
        forwarder = make_forwarder(backend.transport(), recording_logger)

        outcome = await forwarder.forward(InboundRequest.build("POST", "items"), proxy_config)

        assert isinstance(outcome, Failure)
        assert outcome.error.kind is ErrorKind.CONNECTION

    @pytest.mark.asyncio
    async def test_failure_does_not_affect_next_request(self, proxy_config, recording_logger):
        backend = RecordingBackend(error=httpx.ConnectError)
        forwarder = make_forwarder(backend.transport(), recording_logger)

        first = await forwarder.forward(InboundRequest.build("GET", "a"), proxy_config)
        backend.error = None
        second = await forwarder.forward(InboundRequest.build("GET", "a"), proxy_config)

        assert isinstance(first, Failure)
        assert isinstance(second, Success)
        assert second.result.status_code == 200
