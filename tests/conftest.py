from __future__ import annotations

import time
from pathlib import Path

import pytest

from siteserve.config import ServerConfig
from siteserve.routes import build_dispatcher

TEMPLATES = {
    "index.html": "<title>Home</title><p>up {{uptime}}s via {{cmd}}</p>",
    "contact.html": "<title>Contact</title><p>mail me</p>",
    "markdown.html": "<title>{{title}}</title><main>{{markdown}}</main>",
    "article.html": "<title>{{title}}</title><article>{{markdown}}</article>",
    "blog.html": "<title>Blog</title>{{blog_entries}}",
}


def write_post(blog_dir: Path, name: str, title: str = "", date: str = "", body: str = "Body text.") -> Path:
    lines = ["---"]
    if title:
        lines.append(f"Title: {title}")
    if date:
        lines.append(f"Date: {date}")
    lines.append("---")
    path = blog_dir / name
    path.write_text("\n".join(lines) + "\n\n" + body + "\n", encoding="utf-8")
    return path


@pytest.fixture
def site_root(tmp_path: Path) -> Path:
    templates = tmp_path / "templates"
    templates.mkdir()
    for name, text in TEMPLATES.items():
        (templates / name).write_text(text, encoding="utf-8")

    static = tmp_path / "static"
    static.mkdir()
    (static / "style.css").write_text("body { color: black; }\n", encoding="utf-8")
    (tmp_path / "secret.txt").write_text("do not serve\n", encoding="utf-8")

    markdown_dir = tmp_path / "markdown"
    markdown_dir.mkdir()
    (markdown_dir / "resume.md").write_text(
        "---\nTitle: My Resume\n---\n\n# Experience\n\nLots of it.\n", encoding="utf-8"
    )

    blog = tmp_path / "blog"
    blog.mkdir()
    write_post(blog, "second.md", title="Second post", date="01/01/2024")
    write_post(blog, "first.md", title="First post", date="01/01/2023")
    return tmp_path


def make_config(root: Path, **overrides) -> ServerConfig:
    values = {
        "host": "127.0.0.1",
        "port": 0,
        "templates_dir": root / "templates",
        "static_dir": root / "static",
        "blog_dir": root / "blog",
        "resume_path": root / "markdown" / "resume.md",
    }
    values.update(overrides)
    return ServerConfig(**values)


@pytest.fixture
def site_config(site_root: Path) -> ServerConfig:
    return make_config(site_root)


@pytest.fixture
def dispatcher(site_config: ServerConfig):
    return build_dispatcher(site_config, started=time.monotonic(), cmd="siteserve-test")
