from __future__ import annotations

import datetime as dt
import re
from dataclasses import dataclass
from typing import Mapping, Optional

import yaml

from .errors import ConfigError, RenderError

DATE_IN_FMT = "%d/%m/%Y"
DATE_OUT_FMT = "%d %b %Y"
TEXT_TAGS = {
    "tag:yaml.org,2002:bool",
    "tag:yaml.org,2002:int",
    "tag:yaml.org,2002:float",
    "tag:yaml.org,2002:timestamp",
}


class FrontMatterLoader(yaml.SafeLoader):
    """Safe loader that keeps plain scalars as their source text."""


FrontMatterLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag not in TEXT_TAGS]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}


def slugify(text: str, separator: str = "-") -> str:
    text = text.lower()
    text = re.sub(r"[^\w]+", separator, text, flags=re.UNICODE)
    text = text.strip("-_").replace("_", separator)
    return text or "section"


def stringify(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ", ".join(stringify(item) for item in value if item is not None)
    if isinstance(value, dt.datetime):
        return value.isoformat(sep=" ")
    if isinstance(value, dt.date):
        return value.isoformat()
    return str(value)


def parse_front_matter(text: str) -> tuple[dict[str, str], str]:
    clean_text = text.lstrip("\ufeff")
    lines = clean_text.splitlines()
    if not lines or lines[0].strip() != "---":
        return {}, clean_text

    end = None
    for i in range(1, len(lines)):
        if lines[i].strip() in {"---", "..."}:
            end = i
            break
    if end is None:
        return {}, clean_text

    try:
        data = yaml.load("\n".join(lines[1:end]), Loader=FrontMatterLoader)
    except yaml.YAMLError as exc:
        raise RenderError(f"Invalid front matter: {exc}") from exc
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise RenderError("Front matter must be a mapping")

    meta = {str(key): stringify(value) for key, value in data.items()}
    body = "\n".join(lines[end + 1 :])
    return meta, body


def lookup(meta: Mapping[str, str], key: str) -> str:
    if key in meta:
        return meta[key]
    wanted = key.lower()
    for name, value in meta.items():
        if name.lower() == wanted:
            return value
    return ""


def parse_display_date(value: str) -> tuple[dt.date, str]:
    try:
        date = dt.datetime.strptime(value.strip(), DATE_IN_FMT).date()
    except ValueError:
        raise ConfigError(f"Date {value!r} does not match DD/MM/YYYY") from None
    return date, date.strftime(DATE_OUT_FMT)


@dataclass(frozen=True)
class PostMeta:
    title: str = ""
    date: Optional[dt.date] = None
    display_date: str = ""


def extract_meta(meta: Mapping[str, str]) -> PostMeta:
    title = lookup(meta, "Title")
    raw_date = lookup(meta, "Date")
    if not raw_date:
        return PostMeta(title=title)
    date, display = parse_display_date(raw_date)
    return PostMeta(title=title, date=date, display_date=display)
