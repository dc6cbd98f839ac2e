from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class Post:
    source: str
    title: str
    date: dt.date
    layout: str
    slug: str
    url: str
    author: str = ""
    categories: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()
    cover: Optional[str] = None
    excerpt: Optional[str] = None
    body: str = ""
    content: str = ""
    excerpt_html: str = ""
    toc: str = ""


@dataclass(frozen=True)
class Category:
    name: str
    slug: str
    description: str
    posts: tuple[Post, ...]

    @property
    def url(self) -> str:
        return f"/category/{self.slug}/"


@dataclass(frozen=True)
class Tag:
    name: str
    slug: str
    posts: tuple[Post, ...]

    @property
    def url(self) -> str:
        return f"/tag/{self.slug}/"


@dataclass(frozen=True)
class Page:
    number: int
    total_pages: int
    posts: tuple[Post, ...]
    url: str
    previous_url: Optional[str] = None
    next_url: Optional[str] = None


@dataclass(frozen=True)
class OutputDocument:
    path: str
    content: str
    source: str = field(default="", compare=False)
