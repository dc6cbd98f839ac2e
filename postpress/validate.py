from __future__ import annotations

import datetime as dt
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .config import SiteConfig
from .content import RawDocument, slugify
from .errors import MissingFieldError, TypeMismatchError
from .models import Post

REQUIRED_FIELDS = ("title", "date", "layout")
DATE_PREFIX_RE = re.compile(r"^\s*(\d{4})-(\d{1,2})-(\d{1,2})(?:$|[T\s])")
SCALAR_TYPES = (str, int, float)


@dataclass(frozen=True)
class PostMeta:
    title: str
    date: dt.date
    layout: str
    categories: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()
    author: Optional[str] = None
    cover: Optional[str] = None
    excerpt: Optional[str] = None
    slug: Optional[str] = None


def is_blank(value: object) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def coerce_text(meta: dict, key: str, path: Path) -> Optional[str]:
    value = meta.get(key)
    if is_blank(value):
        return None
    if isinstance(value, bool) or not isinstance(value, SCALAR_TYPES):
        raise TypeMismatchError(key, "a string", value, path)
    return str(value).strip()


def coerce_date(value: object, path: Path) -> dt.date:
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    if isinstance(value, str):
        match = DATE_PREFIX_RE.match(value)
        if match:
            try:
                return dt.date(*(int(part) for part in match.groups()))
            except ValueError:
                pass
    raise TypeMismatchError("date", "a calendar date (YYYY-MM-DD)", value, path)


def coerce_labels(meta: dict, key: str, path: Path) -> tuple[str, ...]:
    value = meta.get(key)
    if is_blank(value):
        return ()
    if isinstance(value, str):
        items = value.split()
    elif isinstance(value, (list, tuple)):
        items = []
        for item in value:
            if isinstance(item, bool) or not isinstance(item, SCALAR_TYPES):
                raise TypeMismatchError(key, "a list of labels", value, path)
            items.append(str(item).strip())
    else:
        raise TypeMismatchError(key, "a list of labels", value, path)
    labels = []
    for item in items:
        if item and item not in labels:
            labels.append(item)
    return tuple(labels)


def validate_metadata(meta: dict, path: Path) -> PostMeta:
    for key in REQUIRED_FIELDS:
        if is_blank(meta.get(key)):
            raise MissingFieldError(key, path)

    categories = coerce_labels(meta, "categories", path)
    if not categories and not is_blank(meta.get("category")):
        categories = (coerce_text(meta, "category", path),)

    return PostMeta(
        title=coerce_text(meta, "title", path),
        date=coerce_date(meta["date"], path),
        layout=coerce_text(meta, "layout", path),
        categories=categories,
        tags=coerce_labels(meta, "tags", path),
        author=coerce_text(meta, "author", path),
        cover=coerce_text(meta, "cover", path),
        excerpt=coerce_text(meta, "excerpt", path),
        slug=coerce_text(meta, "slug", path),
    )


def post_url(categories: tuple[str, ...], date: dt.date, slug: str) -> str:
    parts = [slugify(label) for label in categories]
    parts += [f"{date.year:04d}", f"{date.month:02d}", f"{date.day:02d}", f"{slug}.html"]
    return "/" + "/".join(parts)


def build_post(document: RawDocument, site: SiteConfig) -> Post:
    meta = validate_metadata(document.meta, document.path)
    slug = slugify(meta.slug or meta.title)
    return Post(
        source=document.path.as_posix(),
        title=meta.title,
        date=meta.date,
        layout=meta.layout,
        slug=slug,
        url=post_url(meta.categories, meta.date, slug),
        author=meta.author or site.author,
        categories=meta.categories,
        tags=meta.tags,
        cover=meta.cover,
        excerpt=meta.excerpt,
        body=document.body,
    )
