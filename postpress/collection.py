from __future__ import annotations

import math
from typing import Optional

from .config import SiteConfig
from .content import slugify
from .errors import ConfigError
from .models import Category, Page, Post, Tag


def sort_posts(posts: list[Post]) -> list[Post]:
    """Newest first; ties by title, then by source path."""
    by_title = sorted(posts, key=lambda p: (p.title, p.source))
    return sorted(by_title, key=lambda p: p.date, reverse=True)


def page_url(number: int, site: SiteConfig) -> str:
    if number == 1:
        return "/"
    path = site.paginate_path.replace(":num", str(number))
    if not path.startswith("/"):
        path = f"/{path}"
    return path


def paginate(posts: list[Post], page_size: int, site: SiteConfig) -> list[Page]:
    if page_size < 1:
        raise ConfigError(f"page size must be at least 1, got {page_size}")
    total_pages = max(1, math.ceil(len(posts) / page_size))
    pages = []
    for number in range(1, total_pages + 1):
        start = (number - 1) * page_size
        pages.append(
            Page(
                number=number,
                total_pages=total_pages,
                posts=tuple(posts[start : start + page_size]),
                url=page_url(number, site),
                previous_url=page_url(number - 1, site) if number > 1 else None,
                next_url=page_url(number + 1, site) if number < total_pages else None,
            )
        )
    return pages


def assemble(posts: list[Post], page_size: int, site: SiteConfig) -> list[Page]:
    return paginate(sort_posts(posts), page_size, site)


def group_labels(posts: list[Post], attr: str) -> list[tuple[str, tuple[Post, ...]]]:
    """Posts per label in collection order, labels sorted case-insensitively."""
    label_map: dict[str, list[Post]] = {}
    for post in posts:
        for label in getattr(post, attr):
            label_map.setdefault(label, []).append(post)
    return [(label, tuple(items)) for label, items in sorted(label_map.items(), key=lambda x: (x[0].lower(), x[0]))]


def group_by_category(posts: list[Post], site: SiteConfig) -> list[Category]:
    return [
        Category(name=label, slug=slugify(label), description=site.category_description(label), posts=items)
        for label, items in group_labels(posts, "categories")
    ]


def group_by_tag(posts: list[Post]) -> list[Tag]:
    return [Tag(name=label, slug=slugify(label), posts=items) for label, items in group_labels(posts, "tags")]


def with_neighbors(posts: list[Post]) -> list[tuple[Post, Optional[Post], Optional[Post]]]:
    """Pair each sorted post with its older (previous) and newer (next) neighbor."""
    result = []
    for i, post in enumerate(posts):
        previous = posts[i + 1] if i + 1 < len(posts) else None
        next_post = posts[i - 1] if i > 0 else None
        result.append((post, previous, next_post))
    return result
