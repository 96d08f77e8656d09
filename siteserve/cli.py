from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import Optional, Sequence

from .config import DEFAULTS, ServerConfig, load_config
from .errors import ConfigError
from .routes import build_dispatcher
from .server import make_server, serve
from .utils import parse_bool, parse_int

STARTED = time.monotonic()


def build_parser(config: dict, config_path: str) -> argparse.ArgumentParser:
    def cfg_value(key: str) -> object:
        value = config.get(key)
        return DEFAULTS[key] if value is None else value

    def cfg_str(key: str) -> str:
        return str(cfg_value(key))

    def cfg_bool(key: str) -> bool:
        return parse_bool(cfg_value(key))

    def cfg_int(key: str) -> int:
        return parse_int(cfg_value(key), DEFAULTS[key])

    parser = argparse.ArgumentParser(description="Personal site content server.")
    parser.add_argument("--config", default=config_path, help="Path to config file (TOML/YAML/JSON).")
    parser.add_argument("--addr", default=cfg_str("addr"), help="Address to bind, host:port.")
    parser.add_argument(
        "--tls",
        action=argparse.BooleanOptionalAction,
        default=cfg_bool("tls"),
        help="Whether to enable TLS.",
    )
    parser.add_argument("--cert-file", default=cfg_str("cert_file"), help="Path for the TLS certificate.")
    parser.add_argument("--key-file", default=cfg_str("key_file"), help="Path for the TLS private key file.")
    parser.add_argument("--templates", default=cfg_str("templates"), help="Directory containing page templates.")
    parser.add_argument("--static", default=cfg_str("static"), help="Directory served under /static/.")
    parser.add_argument("--blog", default=cfg_str("blog"), help="Directory containing Markdown blog posts.")
    parser.add_argument("--resume", default=cfg_str("resume"), help="Markdown file served at /resume.")
    parser.add_argument(
        "--reload-documents",
        action=argparse.BooleanOptionalAction,
        default=cfg_bool("reload_documents"),
        help="Re-read single-document routes on every request.",
    )
    parser.add_argument(
        "--blog-workers",
        default=cfg_int("blog_workers"),
        type=int,
        help="Worker threads used to render the blog index.",
    )
    parser.add_argument(
        "--blog-sort",
        default=cfg_str("blog_sort"),
        choices=["display", "chronological"],
        help="Blog index ordering.",
    )
    parser.add_argument(
        "--scan-timeout",
        default=cfg_value("scan_timeout"),
        type=float,
        help="Seconds allowed for one blog index scan (0 disables the limit).",
    )
    parser.add_argument("--log-level", default=cfg_str("log_level"), help="Logging level.")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> None:
    pre_parser = argparse.ArgumentParser(add_help=False)
    pre_parser.add_argument("--config", default="config.toml", help="Path to config file (TOML/YAML/JSON).")
    pre_args, _ = pre_parser.parse_known_args(argv)

    try:
        config = load_config(Path(pre_args.config))
        args = build_parser(config, pre_args.config).parse_args(argv)
        server_config = ServerConfig.from_args(args)
        logging.basicConfig(
            level=getattr(logging, server_config.log_level, logging.INFO),
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
        dispatcher = build_dispatcher(server_config, started=STARTED)
        httpd = make_server(server_config, dispatcher)
    except ConfigError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        sys.exit(1)
    except OSError as exc:
        print(f"Cannot start server: {exc}", file=sys.stderr)
        sys.exit(1)

    serve(httpd, server_config)


if __name__ == "__main__":
    main()
