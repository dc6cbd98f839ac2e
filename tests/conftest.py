"""Shared fixtures for building small sites in a temporary directory."""

import datetime as dt
from pathlib import Path
from typing import Callable, Optional

import pytest

from postpress.models import Post

DEFAULT_LAYOUT = """<html><head><title>{{ page.title }}</title></head>
<body>{{ content }}</body></html>
"""
POST_LAYOUT = """---
layout: default
---
<article><h1>{{ page.title }}</h1><time>{{ page.date_iso }}</time>{{ content }}</article>
"""
HOME_LAYOUT = """---
layout: default
---
<section>{{ paginator.posts }}</section>{{ paginator.nav }}
"""
CATEGORY_LAYOUT = """---
layout: default
---
<h2>{{ category.name }}</h2><p class="desc">{{ category.description }}</p>{{ category.posts }}
"""


def post_text(title: str, date: str, body: str = "Body text.", **meta: str) -> str:
    lines = ["---", f'title: "{title}"', f"date: {date}", f"layout: {meta.pop('layout', 'post')}"]
    lines += [f"{key}: {value}" for key, value in meta.items()]
    lines += ["---", body, ""]
    return "\n".join(lines)


@pytest.fixture
def site_dir(tmp_path: Path) -> Path:
    """Create a source tree with layouts, a config and an empty posts directory."""
    source = tmp_path / "site"
    layouts = source / "_layouts"
    layouts.mkdir(parents=True)
    (source / "_posts").mkdir()
    (layouts / "default.html").write_text(DEFAULT_LAYOUT, encoding="utf-8")
    (layouts / "post.html").write_text(POST_LAYOUT, encoding="utf-8")
    (layouts / "home.html").write_text(HOME_LAYOUT, encoding="utf-8")
    (layouts / "category.html").write_text(CATEGORY_LAYOUT, encoding="utf-8")
    (source / "_config.yml").write_text(
        "\n".join(
            [
                "title: Dev blog",
                'url: "http://example.github.io/"',
                "paginate: 5",
                "descriptions:",
                "  - cat: SwiftUI",
                '    desc: "Posts about SwiftUI."',
                "",
            ]
        ),
        encoding="utf-8",
    )
    return source


@pytest.fixture
def write_post(site_dir: Path) -> Callable[..., Path]:
    """Return a helper that writes a post file into the site's _posts directory."""

    def _write(name: str, title: str, date: str, body: str = "Body text.", **meta: str) -> Path:
        path = site_dir / "_posts" / name
        path.write_text(post_text(title, date, body, **meta), encoding="utf-8")
        return path

    return _write


def make_post(
    title: str,
    date: dt.date,
    categories: tuple[str, ...] = (),
    source: Optional[str] = None,
) -> Post:
    slug = title.lower().replace(" ", "-")
    return Post(
        source=source or f"_posts/{date.isoformat()}-{slug}.md",
        title=title,
        date=date,
        layout="post",
        slug=slug,
        url=f"/{date.year}/{date.month:02d}/{date.day:02d}/{slug}.html",
        categories=categories,
    )
