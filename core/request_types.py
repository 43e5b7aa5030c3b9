"""Shared request data types."""

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum

from core.headers import HeaderItems, HeaderMap

HTTP_METHODS = ("GET", "POST", "PUT", "DELETE", "PATCH", "HEAD")
BODYLESS_METHODS = frozenset({"GET", "HEAD"})

QueryItems = Mapping[str, str] | Iterable[tuple[str, str]]


@dataclass(frozen=True)
class InboundRequest:
    """A request as received on the wildcard route."""

    method: str
    path: tuple[str, ...] = ()
    query: tuple[tuple[str, str], ...] = ()
    headers: HeaderMap = field(default_factory=HeaderMap)
    body: bytes = b""

    @classmethod
    def build(
        cls,
        method: str,
        path: str | Sequence[str] = "",
        query: QueryItems | None = None,
        headers: HeaderItems | HeaderMap | None = None,
        body: bytes = b"",
    ) -> "InboundRequest":
        """Normalise loosely typed parts into an ``InboundRequest``."""
        if isinstance(path, str):
            segments = tuple(path.split("/")) if path else ()
        else:
            segments = tuple(path)
        if isinstance(query, Mapping):
            query = query.items()
        if not isinstance(headers, HeaderMap):
            headers = HeaderMap(headers)
        return cls(
            method=method.upper(),
            path=segments,
            query=tuple((str(k), str(v)) for k, v in query or ()),
            headers=headers,
            body=body,
        )


@dataclass(frozen=True)
class OutboundRequest:
    """The request sent to the backend."""

    method: str
    url: str
    headers: HeaderMap
    body: bytes | None = None


@dataclass(frozen=True)
class ProxyResult:
    """A completed upstream exchange."""

    status_code: int
    content_type: str
    body: bytes


class ErrorKind(str, Enum):
    CONFIGURATION = "ConfigurationError"
    CONNECTION = "ConnectionError"

    @property
    def status_code(self) -> int:
        # Upstream failures are a bad gateway, not a proxy bug
        if self is ErrorKind.CONNECTION:
            return 502
        return 500


@dataclass(frozen=True)
class ProxyError:
    """Why a request could not be forwarded.

    Attributes:
        kind: Error category
        message: Human-readable message
        upstream_url: Backend URL that was attempted (optional)
        detail: Traceback text, only exposed when error details are enabled
    """

    kind: ErrorKind
    message: str
    upstream_url: str | None = None
    detail: str | None = None

    @property
    def status_code(self) -> int:
        return self.kind.status_code


@dataclass(frozen=True)
class Success:
    result: ProxyResult


@dataclass(frozen=True)
class Failure:
    error: ProxyError


ForwardOutcome = Success | Failure
