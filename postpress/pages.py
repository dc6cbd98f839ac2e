from __future__ import annotations

import datetime as dt
import html
from typing import Optional

from pygments.formatters import HtmlFormatter
from pygments.util import ClassNotFound

from .config import SiteConfig
from .errors import ConfigError
from .models import Category, OutputDocument, Page, Post, Tag
from .render import Layouts, label_links, site_context
from .utils import iso_date

EPOCH = dt.date(1970, 1, 1)
HIGHLIGHT_CSS_PATH = "/assets/css/highlight.css"


def index_path(url: str) -> str:
    if url.endswith("/"):
        return f"{url}index.html"
    return url


def build_post_cards(posts: tuple[Post, ...], site: SiteConfig) -> str:
    cards = []
    for post in posts:
        url = site.relative_url(post.url)
        cover = ""
        if post.cover:
            cover = f'<img class="post-cover" src="{site.relative_url(post.cover)}" alt="">'
        cards.append(
            '<article class="post-card">'
            f"{cover}"
            '<div class="post-meta">'
            f'<time class="post-date" datetime="{post.date.isoformat()}">{post.date.isoformat()}</time>'
            f'<span class="post-tags">{label_links(post.categories, site, "category")}</span>'
            "</div>"
            f'<h2 class="post-title"><a href="{url}">{html.escape(post.title)}</a></h2>'
            f'<div class="post-excerpt">{post.excerpt_html}</div>'
            f'<a class="post-more" href="{url}">Read more</a>'
            "</article>"
        )
    return "\n".join(cards)


def build_pagination(page: Page, site: SiteConfig) -> str:
    if page.total_pages <= 1:
        return ""
    items = []
    if page.previous_url:
        items.append(f'<a class="page-link" href="{site.relative_url(page.previous_url)}">Newer posts</a>')
    else:
        items.append('<span class="page-link is-disabled">Newer posts</span>')
    items.append(f'<span class="page-number">Page {page.number} of {page.total_pages}</span>')
    if page.next_url:
        items.append(f'<a class="page-link" href="{site.relative_url(page.next_url)}">Older posts</a>')
    else:
        items.append('<span class="page-link is-disabled">Older posts</span>')
    return f'<nav class="pagination">{"".join(items)}</nav>'


def build_index_pages(pages: list[Page], site: SiteConfig, layouts: Layouts) -> list[OutputDocument]:
    documents = []
    base = site_context(site)
    for page in pages:
        title = site.title if page.number == 1 else f"{site.title} | Page {page.number}"
        context = {
            **base,
            "page.title": html.escape(title),
            "page.url": site.relative_url(page.url),
            "paginator.page": str(page.number),
            "paginator.total_pages": str(page.total_pages),
            "paginator.previous_url": site.relative_url(page.previous_url) if page.previous_url else "",
            "paginator.next_url": site.relative_url(page.next_url) if page.next_url else "",
            "paginator.posts": build_post_cards(page.posts, site),
            "paginator.nav": build_pagination(page, site),
        }
        content = layouts.render(site.index_layout, context, f"index page {page.number}")
        documents.append(OutputDocument(path=index_path(page.url), content=content, source=f"index page {page.number}"))
    return documents


def build_category_pages(
    categories: list[Category], site: SiteConfig, layouts: Layouts
) -> list[OutputDocument]:
    documents = []
    base = site_context(site)
    for category in categories:
        source = f"category {category.name}"
        context = {
            **base,
            "page.title": html.escape(f"{category.name} | {site.title}"),
            "page.url": site.relative_url(category.url),
            "category.name": html.escape(category.name),
            "category.slug": category.slug,
            "category.description": html.escape(category.description),
            "category.count": str(len(category.posts)),
            "category.posts": build_post_cards(category.posts, site),
        }
        content = layouts.render(site.category_layout, context, source)
        documents.append(OutputDocument(path=index_path(category.url), content=content, source=source))
    return documents


def tag_layout_name(site: SiteConfig, layouts: Layouts) -> str:
    if site.tag_layout in layouts.names():
        return site.tag_layout
    return site.category_layout


def build_tag_pages(tags: list[Tag], site: SiteConfig, layouts: Layouts) -> list[OutputDocument]:
    """Tag archives; ``category.*`` is filled too so a category layout can render them."""
    documents = []
    base = site_context(site)
    layout = tag_layout_name(site, layouts)
    for tag in tags:
        source = f"tag {tag.name}"
        archive = {
            "name": html.escape(tag.name),
            "slug": tag.slug,
            "description": "",
            "count": str(len(tag.posts)),
            "posts": build_post_cards(tag.posts, site),
        }
        context = {
            **base,
            "page.title": html.escape(f"{tag.name} | {site.title}"),
            "page.url": site.relative_url(tag.url),
            **{f"tag.{key}": value for key, value in archive.items()},
            **{f"category.{key}": value for key, value in archive.items()},
        }
        content = layouts.render(layout, context, source)
        documents.append(OutputDocument(path=index_path(tag.url), content=content, source=source))
    return documents


def build_feed(posts: list[Post], site: SiteConfig) -> OutputDocument:
    """Atom feed of the newest posts, in the shape jekyll-feed produces."""
    feed_url = site.absolute_url("/feed.xml")
    updated = iso_date(posts[0].date if posts else EPOCH)
    entries = []
    for post in posts[: site.feed_limit]:
        link = site.absolute_url(post.url)
        categories = "".join(f'<category term="{html.escape(label)}" />' for label in post.categories)
        author = f"<author><name>{html.escape(post.author)}</name></author>" if post.author else ""
        entries.append(
            "\n".join(
                [
                    "<entry>",
                    f"<title type=\"html\">{html.escape(post.title)}</title>",
                    f'<link href="{link}" rel="alternate" type="text/html" title="{html.escape(post.title)}" />',
                    f"<published>{iso_date(post.date)}</published>",
                    f"<updated>{iso_date(post.date)}</updated>",
                    f"<id>{link}</id>",
                    f'<content type="html" xml:base="{link}">{html.escape(post.content)}</content>',
                    f"{author}{categories}",
                    f'<summary type="html">{html.escape(post.excerpt_html)}</summary>',
                    "</entry>",
                ]
            )
        )
    author = f"<author><name>{html.escape(site.author)}</name></author>" if site.author else ""
    atom = "\n".join(
        [
            '<?xml version="1.0" encoding="utf-8"?>',
            '<feed xmlns="http://www.w3.org/2005/Atom">',
            f'<link href="{feed_url}" rel="self" type="application/atom+xml" />',
            f'<link href="{site.absolute_url("/")}" rel="alternate" type="text/html" />',
            f"<updated>{updated}</updated>",
            f"<id>{feed_url}</id>",
            f'<title type="html">{html.escape(site.title)}</title>',
            f"<subtitle>{html.escape(site.description or site.subtitle)}</subtitle>",
            author,
            "\n".join(entries),
            "</feed>",
        ]
    )
    return OutputDocument(path="/feed.xml", content=atom + "\n", source="feed")


def build_sitemap(
    posts: list[Post],
    pages: list[Page],
    categories: list[Category],
    site: SiteConfig,
    tags: tuple[Tag, ...] = (),
) -> OutputDocument:
    urls: list[tuple[str, Optional[dt.date]]] = []
    for page in pages:
        urls.append((site.absolute_url(page.url), page.posts[0].date if page.posts else None))
    for post in posts:
        urls.append((site.absolute_url(post.url), post.date))
    for category in categories:
        urls.append((site.absolute_url(category.url), max(post.date for post in category.posts)))
    for tag in tags:
        urls.append((site.absolute_url(tag.url), max(post.date for post in tag.posts)))
    items = []
    for url, lastmod in urls:
        lines = ["<url>", f"<loc>{html.escape(url)}</loc>"]
        if lastmod:
            lines.append(f"<lastmod>{lastmod.isoformat()}</lastmod>")
        lines.append("</url>")
        items.append("\n".join(lines))
    sitemap = "\n".join(
        [
            '<?xml version="1.0" encoding="UTF-8"?>',
            '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">',
            "\n".join(items),
            "</urlset>",
        ]
    )
    return OutputDocument(path="/sitemap.xml", content=sitemap + "\n", source="sitemap")


def build_highlight_css(site: SiteConfig) -> OutputDocument:
    try:
        formatter = HtmlFormatter(style=site.pygments_style, cssclass="highlight")
    except ClassNotFound as exc:
        raise ConfigError(f"unknown pygments_style '{site.pygments_style}'") from exc
    return OutputDocument(
        path=HIGHLIGHT_CSS_PATH, content=formatter.get_style_defs(".highlight") + "\n", source="pygments"
    )
