from __future__ import annotations

import html
import re
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional

import markdown

from .config import SiteConfig
from .content import parse_front_matter, read_text, slugify
from .errors import LayoutChainError, UnknownLayoutError
from .liquid import LiquidBlocksExtension
from .models import OutputDocument, Post

IMG_SRC_RE = re.compile(r'<img([^>]*?)src="([^"]+)"', re.IGNORECASE)
PLACEHOLDER_RE = re.compile(r"\{\{\s*([A-Za-z_][\w.]*)\s*\}\}")
LAYOUT_SUFFIXES = {".html", ".htm", ".xml"}


def fix_relative_img_src(html_text: str, root: str) -> str:
    def repl(match: re.Match) -> str:
        attrs = match.group(1)
        src = match.group(2)
        if src.startswith(("http://", "https://", "//", "data:", "#", "./", "../")):
            return match.group(0)
        src = src.lstrip("/")
        return f'<img{attrs}src="{root}/{src}"'

    return IMG_SRC_RE.sub(repl, html_text)


def render_template(template: str, context: dict) -> str:
    """Substitute ``{{ name }}`` placeholders in a single pass.

    Substituted values are never scanned again, so braces inside rendered
    post content survive untouched. Unknown names render as empty text.
    """

    def repl(match: re.Match) -> str:
        value = context.get(match.group(1))
        return "" if value is None else str(value)

    return PLACEHOLDER_RE.sub(repl, template)


def markdown_extensions(site: SiteConfig) -> tuple[list, dict]:
    extensions: list = [LiquidBlocksExtension(), "fenced_code", "tables", "toc"]
    configs: dict = {"toc": {"toc_depth": "2-4"}}
    if site.highlighter == "pygments":
        extensions.append("codehilite")
        configs["codehilite"] = {"css_class": "highlight", "guess_lang": False}
    return extensions, configs


def convert_markdown(text: str, site: SiteConfig) -> tuple[str, str]:
    extensions, configs = markdown_extensions(site)
    md = markdown.Markdown(extensions=extensions, extension_configs=configs)
    html_content = md.convert(text)
    toc_html = md.toc
    md.reset()
    return fix_relative_img_src(html_content, site.baseurl), toc_html


def excerpt_source(post: Post, site: SiteConfig) -> str:
    if post.excerpt:
        return post.excerpt
    separator = site.excerpt_separator
    body = post.body.strip()
    if separator and separator in body:
        return body.split(separator, 1)[0]
    return body


def convert_post(post: Post, site: SiteConfig) -> Post:
    content, toc = convert_markdown(post.body, site)
    excerpt_html, _ = convert_markdown(excerpt_source(post, site), site)
    return replace(post, content=content, excerpt_html=excerpt_html, toc=toc)


@dataclass(frozen=True)
class Layout:
    name: str
    template: str
    parent: Optional[str] = None
    path: Optional[Path] = None


class Layouts:
    """Named layouts, each with at most one parent layout."""

    def __init__(self, layouts: dict[str, Layout]):
        self._layouts = dict(layouts)
        for layout in self._layouts.values():
            if layout.parent is None:
                continue
            parent = self._layouts.get(layout.parent)
            if parent is None:
                raise UnknownLayoutError(layout.parent, layout.path)
            if parent.parent is not None or parent.name == layout.name:
                raise LayoutChainError(
                    f"layout '{layout.name}' extends '{parent.name}', which extends another layout; "
                    "only one parent level is supported",
                    layout.path,
                )

    @classmethod
    def load(cls, layouts_dir: Path) -> "Layouts":
        layouts = {}
        if layouts_dir.is_dir():
            for path in sorted(layouts_dir.iterdir(), key=lambda p: p.name):
                if not path.is_file() or path.suffix.lower() not in LAYOUT_SUFFIXES:
                    continue
                text = read_text(path)
                parent = None
                if text.lstrip("\ufeff").startswith("---"):
                    meta, text = parse_front_matter(text, path)
                    parent = str(meta["layout"]).strip() if meta.get("layout") else None
                layouts[path.stem] = Layout(name=path.stem, template=text, parent=parent, path=path)
        return cls(layouts)

    def names(self) -> list[str]:
        return sorted(self._layouts)

    def get(self, name: str, source: Optional[str] = None) -> Layout:
        layout = self._layouts.get(name)
        if layout is None:
            raise UnknownLayoutError(name, source)
        return layout

    def render(self, name: str, context: dict, source: Optional[str] = None) -> str:
        layout = self.get(name, source)
        output = render_template(layout.template, context)
        if layout.parent is None:
            return output
        parent = self.get(layout.parent, source)
        return render_template(parent.template, {**context, "content": output})


def site_context(site: SiteConfig) -> dict:
    social = "".join(
        f'<li><a href="{html.escape(link.url)}" title="{html.escape(link.desc)}">'
        f'<i class="fa fa-{html.escape(link.icon)}"></i> {html.escape(link.name)}</a></li>'
        for link in site.social
        if link.url
    )
    stylesheet = ""
    if site.highlighter == "pygments":
        stylesheet = f'<link rel="stylesheet" href="{site.relative_url("/assets/css/highlight.css")}">'
    elif site.highlightjs_theme:
        stylesheet = (
            '<link rel="stylesheet" href="https://cdnjs.cloudflare.com/ajax/libs/highlight.js/'
            f'11.9.0/styles/{html.escape(site.highlightjs_theme)}.min.css">'
        )
    return {
        "site.title": html.escape(site.title),
        "site.subtitle": html.escape(site.subtitle),
        "site.description": html.escape(site.description),
        "site.author": html.escape(site.author),
        "site.email": html.escape(site.email),
        "site.url": site.url,
        "site.baseurl": site.baseurl,
        "site.cover": site.relative_url(site.cover) if site.cover else "",
        "site.logo": site.relative_url(site.logo) if site.logo else "",
        "site.highlightjs_theme": html.escape(site.highlightjs_theme),
        "site.social": f'<ul class="social">{social}</ul>' if social else "",
        "site.stylesheet": stylesheet,
        "site.feed_url": site.relative_url("/feed.xml"),
    }


def label_links(labels: tuple[str, ...], site: SiteConfig, prefix: str) -> str:
    return " ".join(
        f'<a class="chip" href="{site.relative_url(f"/{prefix}/{slugify(label)}/")}">{html.escape(label)}</a>'
        for label in labels
    )


def neighbor_context(key: str, post: Optional[Post], site: SiteConfig) -> dict:
    if post is None:
        return {f"page.{key}_url": "", f"page.{key}_title": ""}
    return {f"page.{key}_url": site.relative_url(post.url), f"page.{key}_title": html.escape(post.title)}


def post_nav(previous: Optional[Post], next_post: Optional[Post], site: SiteConfig) -> str:
    links = []
    if previous is not None:
        links.append(f'<a class="post-nav-previous" href="{site.relative_url(previous.url)}">{html.escape(previous.title)}</a>')
    if next_post is not None:
        links.append(f'<a class="post-nav-next" href="{site.relative_url(next_post.url)}">{html.escape(next_post.title)}</a>')
    return f'<nav class="post-nav">{"".join(links)}</nav>' if links else ""


def post_context(
    post: Post,
    site: SiteConfig,
    previous: Optional[Post] = None,
    next_post: Optional[Post] = None,
) -> dict:
    """Layout variables for one post.

    ``previous`` is the next older post and ``next_post`` the next newer one;
    both links stay empty unless ``inter_post_navigation`` is on.
    """
    if not site.inter_post_navigation:
        previous = next_post = None
    return {
        "page.title": html.escape(post.title),
        "page.date": post.date.strftime("%b %d, %Y").replace(" 0", " "),
        "page.date_iso": post.date.isoformat(),
        "page.author": html.escape(post.author),
        "page.url": site.relative_url(post.url),
        "page.absolute_url": site.absolute_url(post.url),
        "page.categories": label_links(post.categories, site, "category"),
        "page.tags": label_links(post.tags, site, "tag"),
        "page.cover": site.relative_url(post.cover) if post.cover else "",
        "page.excerpt": post.excerpt_html,
        "page.toc": post.toc,
        **neighbor_context("previous", previous, site),
        **neighbor_context("next", next_post, site),
        "page.post_nav": post_nav(previous, next_post, site),
        "content": post.content,
    }


def render_post(
    post: Post,
    site: SiteConfig,
    layouts: Layouts,
    previous: Optional[Post] = None,
    next_post: Optional[Post] = None,
) -> OutputDocument:
    context = {**site_context(site), **post_context(post, site, previous, next_post)}
    return OutputDocument(path=post.url, content=layouts.render(post.layout, context, post.source), source=post.source)
