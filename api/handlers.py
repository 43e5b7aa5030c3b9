"""FastAPI route handlers."""

from typing import Any
from urllib.parse import unquote

from fastapi import Request, Response
from fastapi.responses import JSONResponse

from core.config import Config
from core.headers import HeaderMap
from core.protocols import RequestLogger
from core.request_types import Failure, ForwardOutcome, InboundRequest, ProxyError


async def read_inbound_request(
    request: Request,
    path: str,
    max_body_size: int,
    route_prefix: str = "",
) -> InboundRequest | Response:
    """Capture the wildcard request, or return a 413 Response if too large."""
    raw_body = await request.body()
    if len(raw_body) > max_body_size:
        return JSONResponse(
            {"error": "RequestTooLarge", "message": "Request body too large"},
            status_code=413,
        )

    headers = HeaderMap(
        (name.decode("latin-1"), value.decode("latin-1"))
        for name, value in request.headers.raw
    )
    return InboundRequest.build(
        method=request.method,
        path=raw_path_segments(request, path, route_prefix),
        query=request.query_params.multi_items(),
        headers=headers,
        body=raw_body,
    )


async def handle_proxy(
    request: Request,
    path: str,
    config: Config,
    logger: RequestLogger,
) -> Response:
    """Handle any request under the wildcard proxy route."""
    inbound = await read_inbound_request(
        request, path, config.server.max_body_size, config.server.route_prefix
    )
    if isinstance(inbound, Response):
        logger.log_error("RequestTooLarge", 413, f"{request.method} /{path}")
        return inbound

    forwarder = request.app.state.forwarder
    outcome = await forwarder.forward(inbound, config.proxy)
    return build_response(outcome, include_details=config.proxy.include_error_details)


def build_response(outcome: ForwardOutcome, include_details: bool = False) -> Response:
    """Map a forwarding outcome onto the caller-facing response."""
    if isinstance(outcome, Failure):
        return JSONResponse(
            error_payload(outcome.error, include_details),
            status_code=outcome.error.status_code,
        )

    result = outcome.result
    return Response(
        content=result.body,
        status_code=result.status_code,
        headers={"content-type": result.content_type},
    )


def error_payload(error: ProxyError, include_details: bool = False) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "error": error.kind.value,
        "message": error.message,
        "backendUrl": error.upstream_url,
    }
    if include_details and error.detail:
        payload["detail"] = error.detail
    return payload


def raw_path_segments(request: Request, path: str, route_prefix: str = "") -> list[str]:
    """Split the undecoded request path so an encoded "/" stays in its segment.

    Falls back to the decoded ``path`` parameter when the server gives no
    ``raw_path`` or it does not start with the route prefix.
    """
    raw_path = request.scope.get("raw_path")
    prefix = f"/{route_prefix}" if route_prefix else ""
    if not raw_path:
        return path.split("/") if path else []
    raw = raw_path.decode("latin-1")
    if not raw.startswith(prefix):
        return path.split("/") if path else []
    remainder = raw[len(prefix):].removeprefix("/")
    if not remainder:
        return []
    return [unquote(segment) for segment in remainder.split("/")]
