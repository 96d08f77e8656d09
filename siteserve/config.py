from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path

import yaml

try:
    import tomllib as toml
except ImportError:
    import tomli as toml

from .blog import SORT_MODES
from .errors import ConfigError
from .utils import parse_addr, parse_bool, parse_int

DEFAULTS = {
    "addr": ":8080",
    "tls": False,
    "cert_file": "",
    "key_file": "",
    "templates": "templates",
    "static": "static",
    "blog": "blog",
    "resume": "markdown/resume.md",
    "reload_documents": False,
    "blog_workers": 1,
    "blog_sort": "display",
    "scan_timeout": 0,
    "log_level": "INFO",
}

HTTP_KEYS = {
    "addr": "addr",
    "tls": "tls",
    "certfile": "cert_file",
    "cert_file": "cert_file",
    "keyfile": "key_file",
    "key_file": "key_file",
}


def load_config(path: Path) -> dict:
    if not path.exists():
        return {}
    suffix = path.suffix.lower()
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Cannot read config file {path}: {exc}") from exc
    if suffix == ".toml":
        try:
            data = toml.loads(text)
        except toml.TOMLDecodeError as exc:
            raise ConfigError(f"Invalid TOML in config file {path}: {exc}") from exc
    elif suffix in {".yml", ".yaml"}:
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML in config file {path}: {exc}") from exc
        if data is None:
            data = {}
    else:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ConfigError(f"Invalid JSON in config file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Config must be a mapping: {path}")
    return flatten_config(data)


def flatten_config(data: dict) -> dict:
    flat = {}
    for key, value in data.items():
        if key.lower() == "http" and isinstance(value, dict):
            continue
        flat[key.lower().replace("-", "_")] = value
    http_section = next(
        (value for key, value in data.items() if key.lower() == "http" and isinstance(value, dict)),
        {},
    )
    for key, value in http_section.items():
        name = HTTP_KEYS.get(key.lower().replace("-", "_"))
        if name is not None:
            flat[name] = value
    return flat


@dataclass(frozen=True)
class ServerConfig:
    host: str = ""
    port: int = 8080
    tls: bool = False
    cert_file: str = ""
    key_file: str = ""
    templates_dir: Path = Path("templates")
    static_dir: Path = Path("static")
    blog_dir: Path = Path("blog")
    resume_path: Path = Path("markdown/resume.md")
    reload_documents: bool = False
    blog_workers: int = 1
    blog_sort: str = "display"
    scan_timeout: float = 0.0
    log_level: str = "INFO"

    @classmethod
    def from_args(cls, args: object) -> "ServerConfig":
        host, port = parse_addr(str(getattr(args, "addr", DEFAULTS["addr"])))
        tls = parse_bool(getattr(args, "tls", False))
        cert_file = (getattr(args, "cert_file", "") or "").strip()
        key_file = (getattr(args, "key_file", "") or "").strip()
        if tls and not (cert_file and key_file):
            raise ConfigError("TLS is enabled but cert_file or key_file is missing")
        blog_sort = str(getattr(args, "blog_sort", "display")).strip().lower()
        if blog_sort not in SORT_MODES:
            raise ConfigError(f"blog_sort must be one of {', '.join(SORT_MODES)}, got {blog_sort!r}")
        try:
            scan_timeout = float(getattr(args, "scan_timeout", 0) or 0)
        except (TypeError, ValueError):
            raise ConfigError("scan_timeout must be a number of seconds") from None
        return cls(
            host=host,
            port=port,
            tls=tls,
            cert_file=cert_file,
            key_file=key_file,
            templates_dir=Path(getattr(args, "templates", DEFAULTS["templates"])),
            static_dir=Path(getattr(args, "static", DEFAULTS["static"])),
            blog_dir=Path(getattr(args, "blog", DEFAULTS["blog"])),
            resume_path=Path(getattr(args, "resume", DEFAULTS["resume"])),
            reload_documents=parse_bool(getattr(args, "reload_documents", False)),
            blog_workers=max(1, parse_int(getattr(args, "blog_workers", 1), 1)),
            blog_sort=blog_sort,
            scan_timeout=max(0.0, scan_timeout),
            log_level=str(getattr(args, "log_level", "INFO")).upper(),
        )
