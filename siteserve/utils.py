from __future__ import annotations

import time
from pathlib import Path
from typing import Optional

from .errors import ConfigError


def parse_bool(value: object) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "y", "on"}
    return False


def parse_int(value: object, default: int) -> int:
    if value is None:
        return default
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        return default


def parse_addr(addr: str) -> tuple[str, int]:
    host, sep, port = addr.strip().rpartition(":")
    if not sep:
        raise ConfigError(f"Listen address must be host:port, got {addr!r}")
    try:
        port_num = int(port)
    except ValueError:
        raise ConfigError(f"Invalid port in listen address {addr!r}") from None
    if not 0 <= port_num <= 65535:
        raise ConfigError(f"Port out of range in listen address {addr!r}")
    return host.strip("[]"), port_num


def uptime_seconds(started: float, now: Optional[float] = None) -> int:
    if now is None:
        now = time.monotonic()
    return max(0, int(now - started + 0.5))


def safe_join(root: Path, rel: str) -> Optional[Path]:
    rel = rel.lstrip("/")
    if not rel or "\0" in rel:
        return None
    root_resolved = root.resolve()
    candidate = (root_resolved / rel).resolve()
    if candidate == root_resolved or not candidate.is_relative_to(root_resolved):
        return None
    return candidate
