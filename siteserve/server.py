from __future__ import annotations

import logging
import ssl
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from urllib.parse import unquote, urlsplit

from .config import ServerConfig
from .routes import Dispatcher, Response

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 30


class SiteServer(ThreadingHTTPServer):
    daemon_threads = True

    def __init__(self, server_address: tuple[str, int], dispatcher: Dispatcher) -> None:
        self.dispatcher = dispatcher
        super().__init__(server_address, SiteHandler)

    def handle_error(self, request, client_address) -> None:
        logger.warning("Connection from %s failed", client_address[0], exc_info=True)


class SiteHandler(BaseHTTPRequestHandler):
    server: SiteServer
    server_version = "siteserve"
    timeout = REQUEST_TIMEOUT

    def setup(self) -> None:
        # TLS handshake runs here, in the connection thread, not in accept().
        if isinstance(self.request, ssl.SSLSocket):
            self.request.settimeout(self.timeout)
            self.request.do_handshake()
        super().setup()

    def do_GET(self) -> None:
        self.respond(self.resolve(), send_body=True)

    def do_HEAD(self) -> None:
        self.respond(self.resolve(), send_body=False)

    def resolve(self) -> Response:
        path = unquote(urlsplit(self.path).path) or "/"
        return self.server.dispatcher.dispatch(path)

    def respond(self, response: Response, send_body: bool) -> None:
        self.send_response(response.status)
        self.send_header("Content-Type", response.content_type)
        self.send_header("Content-Length", str(len(response.body)))
        for name, value in response.headers:
            self.send_header(name, value)
        self.end_headers()
        if send_body:
            self.wfile.write(response.body)

    def log_message(self, format: str, *args) -> None:
        logger.info("%s %s", self.address_string(), format % args)


def make_server(config: ServerConfig, dispatcher: Dispatcher) -> SiteServer:
    httpd = SiteServer((config.host, config.port), dispatcher)
    if config.tls:
        context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
        context.load_cert_chain(certfile=config.cert_file, keyfile=config.key_file)
        httpd.socket = context.wrap_socket(httpd.socket, server_side=True, do_handshake_on_connect=False)
    return httpd


def serve(httpd: SiteServer, config: ServerConfig) -> None:
    scheme = "https" if config.tls else "http"
    host, port = httpd.server_address[:2]
    logger.info("Listening %s on %s:%s", scheme, host, port)
    with httpd:
        try:
            httpd.serve_forever()
        except KeyboardInterrupt:
            logger.info("Server stopped")
