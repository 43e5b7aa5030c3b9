"""FastAPI application factory."""

from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request

from api.handlers import handle_proxy
from core.config import Config
from core.protocols import RequestLogger
from core.request_types import HTTP_METHODS
from core.transform import RequestTransformer
from services.forwarding_service import Forwarder
from services.upstream import UpstreamClient


def create_app(
    config: Config,
    logger: RequestLogger,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    ``transport`` replaces the network transport of the backend client
    (used by tests to fake the backend).
    """
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        client = httpx.AsyncClient(
            timeout=config.proxy.upstream_timeout,
            follow_redirects=False,
            transport=transport,
        )
        upstream = UpstreamClient(client)
        app.state.forwarder = Forwarder(
            upstream=upstream,
            logger=logger,
            transformer=RequestTransformer(),
        )
        try:
            yield
        finally:
            await upstream.aclose()

    app = FastAPI(title="Backend Forwarding Proxy", version="0.1.0", lifespan=lifespan)

    prefix = f"/{config.server.route_prefix}" if config.server.route_prefix else ""

    @app.api_route(prefix or "/", methods=list(HTTP_METHODS), include_in_schema=False)
    async def proxy_root(request: Request):
        return await handle_proxy(request, "", config, logger)

    @app.api_route(f"{prefix}/{{path:path}}", methods=list(HTTP_METHODS))
    async def proxy_path(request: Request, path: str):
        return await handle_proxy(request, path, config, logger)

    return app
