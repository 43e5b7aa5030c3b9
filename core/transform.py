"""Outbound request construction."""

from collections.abc import Iterable, Sequence
from urllib.parse import quote, urlencode

from core.config import ProxyConfig
from core.headers import HeaderBuilder
from core.request_types import BODYLESS_METHODS, InboundRequest, OutboundRequest

# RFC 3986 pchar minus unreserved characters, which quote() never touches
PATH_SAFE_CHARS = ":@!$&'()*+,;="


class RequestTransformer:
    """Turn an inbound request into the request sent to the backend."""

    def __init__(self, header_builder: HeaderBuilder | None = None) -> None:
        self._headers = header_builder or HeaderBuilder()

    def build_outbound(self, request: InboundRequest, config: ProxyConfig) -> OutboundRequest:
        """Rewrite URL, headers and body of ``request`` for the backend."""
        return OutboundRequest(
            method=request.method,
            url=self.build_target_url(config.backend_base_url, request.path, request.query),
            headers=self._headers.build_upstream_headers(request.headers, config),
            body=self.outbound_body(request.method, request.body),
        )

    @staticmethod
    def build_target_url(
        base_url: str,
        path: Sequence[str],
        query: Iterable[tuple[str, str]] = (),
    ) -> str:
        """Join base URL, path segments and encoded query string."""
        joined = "/".join(quote(segment, safe=PATH_SAFE_CHARS) for segment in path)
        url = f"{base_url.rstrip('/')}/{joined}"
        query_string = urlencode(list(query))
        if query_string:
            url = f"{url}?{query_string}"
        return url

    @staticmethod
    def outbound_body(method: str, body: bytes) -> bytes | None:
        """GET and HEAD never carry a body upstream."""
        if method.upper() in BODYLESS_METHODS:
            return None
        return body
