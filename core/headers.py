"""Header storage and construction for upstream requests."""

from collections.abc import Iterable, Iterator, Mapping

from core.config import ProxyConfig

DEFAULT_CONTENT_TYPE = "application/json"

HeaderItems = Mapping[str, str] | Iterable[tuple[str, str]]


class HeaderMap:
    """Ordered multimap of HTTP headers with case-insensitive names.

    Names keep the casing they were added with. ``add`` appends a value,
    ``set`` replaces every value stored under the name (keeping the slot of
    the first one, or appending when absent), ``remove`` drops them all.
    """

    def __init__(self, items: HeaderItems | None = None) -> None:
        self._items: list[tuple[str, str]] = []
        if items is None:
            return
        if isinstance(items, Mapping):
            items = items.items()
        for name, value in items:
            self.add(name, value)

    def add(self, name: str, value: str) -> None:
        self._items.append((str(name), str(value)))

    def set(self, name: str, value: str) -> None:
        key = name.lower()
        updated: list[tuple[str, str]] = []
        placed = False
        for existing, old in self._items:
            if existing.lower() != key:
                updated.append((existing, old))
            elif not placed:
                updated.append((name, str(value)))
                placed = True
        if not placed:
            updated.append((name, str(value)))
        self._items = updated

    def remove(self, name: str) -> None:
        key = name.lower()
        self._items = [(n, v) for n, v in self._items if n.lower() != key]

    def get(self, name: str, default: str | None = None) -> str | None:
        key = name.lower()
        for existing, value in self._items:
            if existing.lower() == key:
                return value
        return default

    def get_all(self, name: str) -> list[str]:
        key = name.lower()
        return [value for existing, value in self._items if existing.lower() == key]

    def items(self) -> list[tuple[str, str]]:
        return list(self._items)

    def names(self) -> list[str]:
        seen: dict[str, str] = {}
        for name, _ in self._items:
            seen.setdefault(name.lower(), name)
        return list(seen.values())

    def without(self, names: Iterable[str]) -> "HeaderMap":
        """Return a copy with every header in ``names`` dropped."""
        blocked = {name.lower() for name in names}
        return HeaderMap([(n, v) for n, v in self._items if n.lower() not in blocked])

    def copy(self) -> "HeaderMap":
        return HeaderMap(self._items)

    def to_dict(self) -> dict[str, str]:
        """Flatten to a plain dict, joining repeated values with ", "."""
        merged: dict[str, str] = {}
        for name in self.names():
            merged[name] = ", ".join(self.get_all(name))
        return merged

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.get(name) is not None

    def __iter__(self) -> Iterator[str]:
        return iter(self.names())

    def __len__(self) -> int:
        return len(self._items)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, HeaderMap):
            return NotImplemented
        return [(n.lower(), v) for n, v in self._items] == [
            (n.lower(), v) for n, v in other._items
        ]

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"HeaderMap({self._items!r})"


class HeaderBuilder:
    """Build upstream headers from the inbound ones."""

    def build_upstream_headers(self, headers: HeaderMap, config: ProxyConfig) -> HeaderMap:
        """Strip denylisted headers and inject the shared secret."""
        upstream = headers.without(config.forwarded_header_denylist)
        # Only the proxy may supply the credential
        upstream.set(config.shared_secret_header, config.shared_secret_key)
        if "content-type" not in upstream:
            upstream.set("Content-Type", DEFAULT_CONTENT_TYPE)
        return upstream
