"""Shared logging utilities."""

import json
from collections.abc import Iterable
from datetime import UTC, datetime
from pathlib import Path
from typing import Any
from uuid import uuid4

LOG_ROOT = Path.cwd() / "logs"
CLI_LOG_FILE = LOG_ROOT / "proxy.log"

SENSITIVE_MARKERS = ("key", "authorization", "secret", "token", "cookie")


def write_forward_log(
    method: str,
    path: str,
    target_url: str,
    headers: dict[str, str],
    *,
    secret_headers: Iterable[str] = (),
    log_root: Path = LOG_ROOT,
) -> Path:
    """Write a single forwarded request log entry."""
    payload = {
        "timestamp": _utc_now(),
        "method": method,
        "path": path,
        "target_url": target_url,
        "headers": _redact_headers(headers, secret_headers),
    }
    return _write_json(log_root / "forwarded", payload)


def write_cli_log(
    level: str,
    message: str,
    *,
    log_file: Path = CLI_LOG_FILE,
    **extra: Any,
) -> None:
    """Append a line to the rolling CLI log file."""
    log_file.parent.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now(UTC).strftime("%Y-%m-%d %H:%M:%S")
    extra_str = " ".join(f"{k}={v}" for k, v in extra.items()) if extra else ""
    line = f"[{timestamp}] {level}: {message}"
    if extra_str:
        line += f" {extra_str}"
    line += "\n"
    with log_file.open("a") as f:
        f.write(line)


def _write_json(folder: Path, payload: dict[str, Any]) -> Path:
    """Write payload to a unique JSON file in the given folder."""
    folder.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now(UTC).strftime("%Y%m%dT%H%M%S.%fZ")
    file_path = folder / f"{timestamp}_{uuid4().hex}.json"
    file_path.write_text(json.dumps(payload, indent=2, default=str))
    return file_path


def _redact_headers(
    headers: dict[str, str],
    secret_headers: Iterable[str] = (),
) -> dict[str, str]:
    """Redact sensitive headers."""
    explicit = {name.lower() for name in secret_headers}
    redacted = {}
    for key, value in headers.items():
        key_lower = key.lower()
        if key_lower in explicit or any(marker in key_lower for marker in SENSITIVE_MARKERS):
            redacted[key] = mask_secret(value)
        else:
            redacted[key] = value
    return redacted


def mask_secret(value: str) -> str:
    if len(value) <= 10:
        return "***"
    return value[:6] + "..." + value[-4:]


def _utc_now() -> str:
    return datetime.now(UTC).isoformat()
