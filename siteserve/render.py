from __future__ import annotations

import copy
import re
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Optional

import markdown
from pygments.formatters import HtmlFormatter

from .content import parse_front_matter, slugify
from .errors import RenderError

PLACEHOLDER_RE = re.compile(r"\{\{(\w+)\}\}")

DEFAULT_EXTENSIONS = [
    "fenced_code",
    "tables",
    "codehilite",
    "toc",
    "pymdownx.tilde",
    "pymdownx.magiclink",
    "pymdownx.tasklist",
]

DEFAULT_EXTENSION_CONFIGS = {
    "codehilite": {"css_class": "codehilite", "guess_lang": False},
    "toc": {"slugify": slugify},
    "pymdownx.tilde": {"subscript": False},
    "pymdownx.tasklist": {"custom_checkbox": False},
}


@dataclass(frozen=True)
class RenderResult:
    html: str
    metadata: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))


class MarkdownRenderer:
    """Turn Markdown bytes into a trusted HTML fragment plus front-matter metadata.

    A new ``markdown.Markdown`` is built per call since instances keep
    per-document state and are not safe to share between request threads.
    """

    def __init__(
        self,
        extensions: Optional[list] = None,
        extension_configs: Optional[dict] = None,
        output_format: str = "xhtml",
    ) -> None:
        self.extensions = list(DEFAULT_EXTENSIONS if extensions is None else extensions)
        configs = DEFAULT_EXTENSION_CONFIGS if extension_configs is None else extension_configs
        self.extension_configs = {
            name: dict(values) for name, values in configs.items() if name in self.extensions
        }
        self.output_format = output_format

    def _markdown(self) -> markdown.Markdown:
        return markdown.Markdown(
            extensions=self.extensions,
            extension_configs=copy.deepcopy(self.extension_configs),
            output_format=self.output_format,
        )

    def render(self, source: bytes) -> RenderResult:
        try:
            text = source.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise RenderError(f"Source is not valid UTF-8: {exc}") from exc
        meta, body = parse_front_matter(text)
        try:
            html_content = self._markdown().convert(body)
        except Exception as exc:
            raise RenderError(f"Markdown conversion failed: {exc}") from exc
        return RenderResult(html=html_content, metadata=meta)

    def render_file(self, path: Path) -> RenderResult:
        try:
            source = path.read_bytes()
        except OSError as exc:
            raise RenderError(f"Cannot read {path}: {exc}") from exc
        try:
            return self.render(source)
        except RenderError as exc:
            raise RenderError(f"{path}: {exc}") from exc


def highlight_css(style: str = "default") -> str:
    return HtmlFormatter(style=style, cssclass="codehilite").get_style_defs(".codehilite")


def render_template(template: str, **context: str) -> str:
    values = {"markdown": "", "blog_entries": "", **context}
    return PLACEHOLDER_RE.sub(lambda m: values.get(m.group(1), m.group(0)), template)


def read_template(path: Path) -> str:
    return path.read_text(encoding="utf-8")
