from __future__ import annotations

import logging
import mimetypes
import sys
import time
from dataclasses import dataclass
from http import HTTPStatus
from pathlib import Path
from typing import Optional, Union

from .blog import resolve_article, scan_blog
from .config import ServerConfig
from .content import PostMeta, extract_meta
from .errors import ConfigError, NotFound, RenderError, SiteError
from .pages import PageContext, TemplateSet, assemble_page
from .render import MarkdownRenderer, RenderResult, highlight_css
from .utils import safe_join, uptime_seconds

logger = logging.getLogger(__name__)

HTML_TYPE = "text/html; charset=utf-8"
TEXT_TYPE = "text/plain; charset=utf-8"
STATIC_PREFIX = "/static/"
BLOG_ROOT = "/blog/"
BLOG_TEMPLATE = "blog.html"
ARTICLE_TEMPLATE = "article.html"
DOCUMENT_TEMPLATE = "markdown.html"
HIGHLIGHT_CSS = "highlight.css"

FIXED_ROUTES = {
    "/": "index.html",
    "/contact": "contact.html",
}


@dataclass(frozen=True)
class Response:
    status: int
    body: bytes = b""
    content_type: str = HTML_TYPE
    headers: tuple[tuple[str, str], ...] = ()


@dataclass(frozen=True)
class RouteEntry:
    pattern: str
    template_name: str


@dataclass(frozen=True)
class Document:
    result: RenderResult
    meta: PostMeta


class _NotFound:
    def __repr__(self) -> str:
        return "NOT_FOUND"


NOT_FOUND = _NotFound()

Outcome = Union[Document, _NotFound, SiteError]


def render_document(source: bytes, renderer: MarkdownRenderer) -> Document:
    result = renderer.render(source)
    return Document(result=result, meta=extract_meta(result.metadata))


class DocumentRoute:
    """A route backed by one Markdown file.

    The file is read and rendered once when the route is built; a missing file
    answers 404 for the lifetime of the process. With ``reload`` the file is
    read again on every request instead.
    """

    def __init__(
        self,
        pattern: str,
        source_path: Path,
        renderer: MarkdownRenderer,
        template_name: str = DOCUMENT_TEMPLATE,
        reload: bool = False,
    ) -> None:
        self.pattern = pattern
        self.source_path = source_path
        self.renderer = renderer
        self.template_name = template_name
        self.reload = reload
        self._outcome: Optional[Outcome] = None if reload else self._load()

    def _load(self) -> Outcome:
        try:
            source = self.source_path.read_bytes()
        except OSError as exc:
            logger.warning("Document %s for %s unavailable: %s", self.source_path, self.pattern, exc)
            return NOT_FOUND
        try:
            return render_document(source, self.renderer)
        except (RenderError, ConfigError) as exc:
            logger.error("Document %s for %s failed to render: %s", self.source_path, self.pattern, exc)
            return exc

    def document(self) -> Document:
        outcome = self._load() if self.reload else self._outcome
        if isinstance(outcome, Document):
            return outcome
        if isinstance(outcome, SiteError):
            raise type(outcome)(str(outcome))
        raise NotFound(f"No document at {self.source_path}")


class RouteTable:
    def __init__(self) -> None:
        self._routes: dict[str, Union[RouteEntry, DocumentRoute]] = {}

    def add(self, route: Union[RouteEntry, DocumentRoute]) -> None:
        if route.pattern in self._routes:
            logger.warning("Route %s registered twice, keeping the last one", route.pattern)
        self._routes[route.pattern] = route
        logger.info("Added template '%s' for pattern '%s'", route.template_name, route.pattern)

    def lookup(self, path: str) -> Optional[Union[RouteEntry, DocumentRoute]]:
        return self._routes.get(path)

    def template_names(self) -> set[str]:
        return {route.template_name for route in self._routes.values()}

    def __len__(self) -> int:
        return len(self._routes)


def error_response(status: int) -> Response:
    if status == HTTPStatus.NOT_FOUND:
        body = "404 page not found\n"
    else:
        body = f"{status} {HTTPStatus(status).phrase}\n"
    return Response(status=status, body=body.encode("utf-8"), content_type=TEXT_TYPE)


class Dispatcher:
    def __init__(
        self,
        config: ServerConfig,
        routes: RouteTable,
        templates: TemplateSet,
        renderer: MarkdownRenderer,
        started: Optional[float] = None,
        cmd: Optional[str] = None,
    ) -> None:
        self.config = config
        self.routes = routes
        self.templates = templates
        self.renderer = renderer
        self.started = time.monotonic() if started is None else started
        self.cmd = sys.argv[0] if cmd is None else cmd

    def context(self, html: str = "", title: str = "") -> PageContext:
        return PageContext(uptime=uptime_seconds(self.started), cmd=self.cmd, html=html, title=title)

    def page(self, template_name: str, context: PageContext, **extra) -> Response:
        body = assemble_page(self.templates, template_name, context, **extra)
        return Response(status=HTTPStatus.OK, body=body.encode("utf-8"))

    def dispatch(self, path: str) -> Response:
        try:
            return self.route(path)
        except SiteError as exc:
            if exc.status == HTTPStatus.NOT_FOUND:
                logger.info("Not found: %s (%s)", path, exc)
            else:
                logger.error("Request for %s failed: %s", path, exc)
            return error_response(exc.status)
        except Exception:
            logger.exception("Unhandled error serving %s", path)
            return error_response(HTTPStatus.INTERNAL_SERVER_ERROR)

    def route(self, path: str) -> Response:
        if path.startswith(STATIC_PREFIX):
            return self.serve_static(path[len(STATIC_PREFIX) :])
        if path == BLOG_ROOT.rstrip("/"):
            return Response(status=HTTPStatus.MOVED_PERMANENTLY, headers=(("Location", BLOG_ROOT),))
        if path == BLOG_ROOT:
            return self.serve_blog_index()
        if path.startswith(BLOG_ROOT):
            return self.serve_article(path[len(BLOG_ROOT) :])
        route = self.routes.lookup(path)
        if route is None:
            raise NotFound(f"No route for {path}")
        if isinstance(route, DocumentRoute):
            doc = route.document()
            return self.page(route.template_name, self.context(doc.result.html, doc.meta.title))
        return self.page(route.template_name, self.context())

    def serve_static(self, rel: str) -> Response:
        path = safe_join(self.config.static_dir, rel)
        if path is not None and path.is_file():
            content_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
            if content_type.startswith("text/"):
                content_type += "; charset=utf-8"
            try:
                body = path.read_bytes()
            except OSError as exc:
                raise NotFound(f"Cannot read static file {path}: {exc}") from exc
            return Response(status=HTTPStatus.OK, body=body, content_type=content_type)
        if rel == HIGHLIGHT_CSS:
            return Response(
                status=HTTPStatus.OK,
                body=highlight_css().encode("utf-8"),
                content_type="text/css; charset=utf-8",
            )
        raise NotFound(f"No static file {rel!r}")

    def serve_blog_index(self) -> Response:
        deadline = None
        if self.config.scan_timeout > 0:
            deadline = time.monotonic() + self.config.scan_timeout
        entries = scan_blog(
            self.config.blog_dir,
            self.renderer,
            workers=self.config.blog_workers,
            deadline=deadline,
            sort=self.config.blog_sort,
        )
        return self.page(BLOG_TEMPLATE, self.context(), blog_entries=entries)

    def serve_article(self, slug: str) -> Response:
        path = resolve_article(self.config.blog_dir, slug)
        try:
            source = path.read_bytes()
        except FileNotFoundError as exc:
            raise NotFound(f"No article named {slug!r}") from exc
        except OSError as exc:
            raise RenderError(f"Cannot read {path}: {exc}") from exc
        doc = render_document(source, self.renderer)
        return self.page(ARTICLE_TEMPLATE, self.context(doc.result.html, doc.meta.title))


def build_routes(config: ServerConfig, renderer: MarkdownRenderer) -> RouteTable:
    routes = RouteTable()
    for pattern, template_name in FIXED_ROUTES.items():
        routes.add(RouteEntry(pattern=pattern, template_name=template_name))
    routes.add(
        DocumentRoute("/resume", config.resume_path, renderer, reload=config.reload_documents)
    )
    return routes


def build_dispatcher(
    config: ServerConfig,
    renderer: Optional[MarkdownRenderer] = None,
    started: Optional[float] = None,
    cmd: Optional[str] = None,
) -> Dispatcher:
    renderer = renderer or MarkdownRenderer()
    routes = build_routes(config, renderer)
    required = routes.template_names() | {BLOG_TEMPLATE, ARTICLE_TEMPLATE}
    templates = TemplateSet.load(config.templates_dir, required)
    if not config.blog_dir.is_dir():
        logger.warning("Blog directory %s not found, /blog/ will answer 500", config.blog_dir)
    return Dispatcher(config, routes, templates, renderer, started=started, cmd=cmd)
