from __future__ import annotations

import datetime as dt
import logging
import os
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from .content import extract_meta
from .errors import ConfigError, NotFound, RenderError, ScanTimeout
from .utils import safe_join

if TYPE_CHECKING:
    from .render import MarkdownRenderer

logger = logging.getLogger(__name__)

MARKDOWN_SUFFIX = ".md"
SORT_MODES = ("display", "chronological")


@dataclass(frozen=True)
class BlogEntry:
    slug: str
    title: str = ""
    display_date: str = ""
    date: Optional[dt.date] = None


def list_posts(blog_dir: Path) -> list[Path]:
    try:
        with os.scandir(blog_dir) as it:
            entries = sorted(it, key=lambda e: e.name)
            return [
                Path(entry.path)
                for entry in entries
                if not entry.is_dir() and os.path.splitext(entry.name)[1] == MARKDOWN_SUFFIX
            ]
    except OSError as exc:
        raise ConfigError(f"Cannot read blog directory {blog_dir}: {exc}") from exc


def load_entry(path: Path, renderer: MarkdownRenderer) -> Optional[BlogEntry]:
    try:
        result = renderer.render_file(path)
        meta = extract_meta(result.metadata)
    except (RenderError, ConfigError) as exc:
        logger.warning("Skipping blog post %s: %s", path.name, exc)
        return None
    return BlogEntry(slug=path.stem, title=meta.title, display_date=meta.display_date, date=meta.date)


def sort_entries(entries: list[BlogEntry], mode: str = "display") -> list[BlogEntry]:
    if mode == "display":
        return sorted(entries, key=lambda e: e.display_date)
    if mode == "chronological":
        return sorted(entries, key=lambda e: (e.date is not None, e.date or dt.date.min))
    raise ConfigError(f"Unknown blog sort mode: {mode!r}")


def check_deadline(deadline: Optional[float]) -> None:
    if deadline is not None and time.monotonic() > deadline:
        raise ScanTimeout("Blog scan exceeded its deadline")


def scan_blog(
    blog_dir: Path,
    renderer: MarkdownRenderer,
    *,
    workers: int = 1,
    deadline: Optional[float] = None,
    sort: str = "display",
) -> list[BlogEntry]:
    """Render every Markdown post in ``blog_dir`` and return the sorted index.

    Subdirectories and non-Markdown files are ignored. Posts that fail to
    render or carry a malformed date are skipped, the rest still load.
    """
    paths = list_posts(blog_dir)

    def load(path: Path) -> Optional[BlogEntry]:
        check_deadline(deadline)
        return load_entry(path, renderer)

    workers = max(1, min(workers, len(paths) or 1))
    if workers > 1:
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [executor.submit(load, path) for path in paths]
            try:
                loaded = [future.result() for future in futures]
            except ScanTimeout:
                for future in futures:
                    future.cancel()
                raise
    else:
        loaded = [load(path) for path in paths]

    entries = [entry for entry in loaded if entry is not None]
    return sort_entries(entries, sort)


def resolve_article(blog_dir: Path, slug: str) -> Path:
    slug = slug.strip("/")
    if not slug:
        raise NotFound("Empty article slug")
    path = safe_join(blog_dir, slug + MARKDOWN_SUFFIX)
    if path is None or not path.is_file():
        raise NotFound(f"No article named {slug!r}")
    return path
