"""Shared protocol definitions."""

from typing import Protocol

from core.headers import HeaderMap
from core.request_types import OutboundRequest, ProxyResult


class RequestLogger(Protocol):
    """Protocol for request logging (Dashboard)."""

    def log_forward(
        self,
        method: str,
        path: str,
        target_url: str,
        headers: HeaderMap,
    ) -> None: ...
    def log_response(self, method: str, target_url: str, status: int) -> None: ...
    def log_error(self, kind: str, status: int, message: str) -> None: ...


class Upstream(Protocol):
    """Anything able to perform one backend round-trip."""

    async def send(self, request: OutboundRequest) -> ProxyResult: ...
