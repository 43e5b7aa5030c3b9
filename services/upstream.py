"""HTTP client wrapper for backend requests."""

import httpx

from core.headers import DEFAULT_CONTENT_TYPE, HeaderMap
from core.request_types import OutboundRequest, ProxyResult

# Header bytes travel as ISO-8859-1 (RFC 7230 obs-text)
HEADER_ENCODING = "latin-1"


class UpstreamClient:
    """Send a single buffered request to the backend."""

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def send(self, request: OutboundRequest) -> ProxyResult:
        """Perform the round-trip and read the whole response body.

        Transport failures propagate as ``httpx`` exceptions.
        """
        response = await self._client.request(
            request.method,
            request.url,
            headers=encode_headers(request.headers),
            content=request.body,
        )
        return ProxyResult(
            status_code=response.status_code,
            content_type=response.headers.get("content-type", DEFAULT_CONTENT_TYPE),
            body=response.content,
        )

    async def aclose(self) -> None:
        await self._client.aclose()


def encode_headers(headers: HeaderMap) -> list[tuple[bytes, bytes]]:
    """Encode header names and values back to the bytes they arrived as."""
    return [
        (name.encode(HEADER_ENCODING), value.encode(HEADER_ENCODING))
        for name, value in headers.items()
    ]
