"""Configuration models and loading."""

import os
from collections.abc import Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from core.exceptions import SettingsError

DEFAULT_SECRET_HEADER = "x-functions-key"

# Hop-by-hop headers (RFC 7230) plus the ones the upstream client recomputes
DEFAULT_HEADER_DENYLIST = frozenset(
    {
        "host",
        "content-length",
        "connection",
        "keep-alive",
        "proxy-authenticate",
        "proxy-authorization",
        "te",
        "trailer",
        "transfer-encoding",
        "upgrade",
    }
)

ENV_VARS = {
    "backend_base_url": ("BACKEND_BASE_URL", "VITE_BACKEND_BASE_URL"),
    "shared_secret_key": ("SHARED_SECRET_KEY", "VITE_X_FUNCTIONS_KEY"),
    "shared_secret_header": ("SHARED_SECRET_HEADER",),
    "forwarded_header_denylist": ("PROXY_HEADER_DENYLIST",),
    "include_error_details": ("PROXY_INCLUDE_ERROR_DETAILS",),
    "upstream_timeout": ("PROXY_UPSTREAM_TIMEOUT",),
}

SERVER_ENV_VARS = {
    "host": "PROXY_HOST",
    "port": "PROXY_PORT",
    "route_prefix": "PROXY_ROUTE_PREFIX",
    "max_body_size": "PROXY_MAX_BODY_SIZE",
    "keep_alive_timeout": "PROXY_KEEP_ALIVE_TIMEOUT",
}


class ServerSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    host: str = "127.0.0.1"
    port: int = 8080
    route_prefix: str = "proxy"
    max_body_size: int = 50 * 1024 * 1024  # 50MB
    keep_alive_timeout: int = 5

    @field_validator("route_prefix")
    @classmethod
    def _strip_slashes(cls, value: str) -> str:
        return value.strip("/")


class ProxyConfig(BaseModel):
    """Settings the forwarder needs for every request.

    Empty ``backend_base_url`` / ``shared_secret_key`` are allowed here;
    they are reported per request as configuration errors.
    """

    model_config = ConfigDict(frozen=True)

    backend_base_url: str = ""
    shared_secret_key: str = ""
    shared_secret_header: str = DEFAULT_SECRET_HEADER
    forwarded_header_denylist: frozenset[str] = DEFAULT_HEADER_DENYLIST
    include_error_details: bool = False
    upstream_timeout: float = 30.0

    @field_validator("backend_base_url", "shared_secret_key", "shared_secret_header")
    @classmethod
    def _strip(cls, value: str) -> str:
        return value.strip()

    @field_validator("shared_secret_key", "shared_secret_header")
    @classmethod
    def _header_encodable(cls, value: str) -> str:
        try:
            value.encode("latin-1")
        except UnicodeEncodeError:
            raise ValueError("must only contain ISO-8859-1 characters to be sent as a header") from None
        return value

    @field_validator("backend_base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @field_validator("forwarded_header_denylist", mode="before")
    @classmethod
    def _normalize_denylist(cls, value: object) -> frozenset[str]:
        if isinstance(value, str):
            value = value.split(",")
        names = {str(name).strip().lower() for name in value or ()}
        names.discard("")
        # host always names the proxy itself, never the backend
        names.add("host")
        return frozenset(names)


class Config(BaseModel):
    model_config = ConfigDict(frozen=True)

    server: ServerSettings = Field(default_factory=ServerSettings)
    proxy: ProxyConfig = Field(default_factory=ProxyConfig)


def load_config(environ: Mapping[str, str] | None = None) -> Config:
    """Build the process configuration from environment variables.

    Raises:
        SettingsError: a variable is present but cannot be parsed.
    """
    env = os.environ if environ is None else environ

    proxy_data: dict[str, object] = {}
    for field, names in ENV_VARS.items():
        value = _first_set(env, names)
        if value is not None:
            proxy_data[field] = value

    extra_denylist = proxy_data.pop("forwarded_header_denylist", None)
    if extra_denylist is not None:
        proxy_data["forwarded_header_denylist"] = DEFAULT_HEADER_DENYLIST | {
            name for name in str(extra_denylist).split(",")
        }

    server_data = {
        field: env[name] for field, name in SERVER_ENV_VARS.items() if env.get(name)
    }

    try:
        return Config(
            server=ServerSettings.model_validate(server_data),
            proxy=ProxyConfig.model_validate(proxy_data),
        )
    except ValidationError as e:
        raise SettingsError(f"Invalid proxy settings: {e}") from e


def _first_set(env: Mapping[str, str], names: tuple[str, ...]) -> str | None:
    for name in names:
        value = env.get(name)
        if value:
            return value
    return None
