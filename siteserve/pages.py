from __future__ import annotations

import html
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional, Sequence

from .blog import BlogEntry
from .errors import ConfigError
from .render import read_template, render_template

TEMPLATE_SUFFIX = ".html"


@dataclass(frozen=True)
class PageContext:
    uptime: int
    cmd: str
    html: str = ""
    title: str = ""


class TemplateSet:
    def __init__(self, templates: dict[str, str]) -> None:
        self._templates = dict(templates)

    @classmethod
    def load(cls, templates_dir: Path, required: Iterable[str] = ()) -> "TemplateSet":
        if not templates_dir.is_dir():
            raise ConfigError(f"Templates directory not found: {templates_dir}")
        templates = {}
        for path in sorted(templates_dir.glob(f"*{TEMPLATE_SUFFIX}")):
            try:
                templates[path.name] = read_template(path)
            except (OSError, UnicodeDecodeError) as exc:
                raise ConfigError(f"Cannot read template {path}: {exc}") from exc
        missing = sorted(set(required) - set(templates))
        if missing:
            raise ConfigError(f"Missing templates in {templates_dir}: {', '.join(missing)}")
        return cls(templates)

    def __contains__(self, name: str) -> bool:
        return name in self._templates

    def names(self) -> list[str]:
        return sorted(self._templates)

    def get(self, name: str) -> str:
        try:
            return self._templates[name]
        except KeyError:
            raise ConfigError(f"Unknown template: {name}") from None


def build_blog_list(entries: Sequence[BlogEntry], root: str = "/blog") -> str:
    items = []
    for entry in entries:
        title = html.escape(entry.title or entry.slug)
        url = f"{root}/{html.escape(entry.slug, quote=True)}"
        items.append(
            f'<li class="blog-entry"><span class="blog-date">{html.escape(entry.display_date)}</span>'
            f'<a href="{url}">{title}</a></li>'
        )
    if not items:
        return '<p class="blog-empty">No posts yet.</p>'
    return '<ul class="blog-list">\n' + "\n".join(items) + "\n</ul>"


def assemble_page(
    templates: TemplateSet,
    name: str,
    context: PageContext,
    blog_entries: Optional[Sequence[BlogEntry]] = None,
) -> str:
    values = {
        "title": html.escape(context.title),
        "uptime": str(context.uptime),
        "cmd": html.escape(context.cmd),
        "markdown": context.html,
        "blog_entries": build_blog_list(blog_entries) if blog_entries is not None else "",
    }
    return render_template(templates.get(name), **values)
