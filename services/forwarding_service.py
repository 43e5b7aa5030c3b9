"""Forwarding orchestration for proxied requests."""

import traceback
from urllib.parse import urlsplit

import httpx

from core.config import ProxyConfig
from core.protocols import RequestLogger, Upstream
from core.request_types import (
    ErrorKind,
    Failure,
    ForwardOutcome,
    InboundRequest,
    ProxyError,
    Success,
)
from core.transform import RequestTransformer


class Forwarder:
    """Forward one inbound request to the configured backend."""

    def __init__(
        self,
        upstream: Upstream,
        logger: RequestLogger,
        transformer: RequestTransformer | None = None,
    ) -> None:
        self._upstream = upstream
        self._logger = logger
        self._transformer = transformer or RequestTransformer()

    async def forward(self, request: InboundRequest, config: ProxyConfig) -> ForwardOutcome:
        """Forward ``request`` and return the upstream result or the failure.

        Never raises for configuration or transport problems; those come
        back as ``Failure``. A single attempt is made.
        """
        error = validate_config(config)
        if error is not None:
            self._logger.log_error(error.kind.value, error.status_code, error.message)
            return Failure(error)

        outbound = self._transformer.build_outbound(request, config)
        self._logger.log_forward(
            outbound.method,
            "/" + "/".join(request.path),
            outbound.url,
            outbound.headers,
        )

        try:
            result = await self._upstream.send(outbound)
        except httpx.InvalidURL as e:
            return self._fail(ErrorKind.CONFIGURATION, f"Invalid backend URL: {e}", outbound.url)
        except UnicodeEncodeError as e:
            return self._fail(ErrorKind.CONFIGURATION, f"Header cannot be encoded: {e}", outbound.url)
        except httpx.HTTPError as e:
            message = str(e) or type(e).__name__
            return self._fail(ErrorKind.CONNECTION, message, outbound.url)

        self._logger.log_response(outbound.method, outbound.url, result.status_code)
        return Success(result)

    def _fail(self, kind: ErrorKind, message: str, upstream_url: str) -> Failure:
        error = ProxyError(
            kind=kind,
            message=message,
            upstream_url=upstream_url,
            detail=traceback.format_exc(),
        )
        self._logger.log_error(kind.value, error.status_code, f"{message} ({upstream_url})")
        return Failure(error)


def validate_config(config: ProxyConfig) -> ProxyError | None:
    """Return the first configuration problem, backend URL checked first."""
    if not config.backend_base_url:
        return ProxyError(ErrorKind.CONFIGURATION, "backend base URL not set")
    parts = urlsplit(config.backend_base_url)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        return ProxyError(
            ErrorKind.CONFIGURATION,
            "backend base URL must be an absolute http(s) URL",
            upstream_url=config.backend_base_url,
        )
    if not config.shared_secret_key:
        return ProxyError(ErrorKind.CONFIGURATION, "shared secret key not set")
    return None
