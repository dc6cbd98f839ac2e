from __future__ import annotations

import argparse
import os
import sys
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from .collection import group_by_category, group_by_tag, paginate, sort_posts, with_neighbors
from .config import DUPLICATE_POLICIES, SiteConfig, load_config, read_site_config
from .content import discover_posts, is_excluded, is_published, read_document, resolve_duplicates
from .emit import SiteEmitter
from .errors import SiteBuildError
from .models import Category, Page, Post, Tag
from .pages import (
    build_category_pages,
    build_feed,
    build_highlight_css,
    build_index_pages,
    build_sitemap,
    build_tag_pages,
)
from .render import Layouts, convert_post, render_post
from .utils import parse_int, warn
from .validate import build_post

MAX_WORKERS = 32
DEFAULT_EXCLUDE = ("Gemfile", "Gemfile.lock", "node_modules", "vendor", "README.md", "LICENSE")
SKIP_STATIC_SUFFIXES = {".md", ".markdown"}


@dataclass(frozen=True)
class BuildResult:
    posts: tuple[Post, ...]
    pages: tuple[Page, ...]
    categories: tuple[Category, ...]
    tags: tuple[Tag, ...]
    files: int


def resolve_workers(requested: int) -> int:
    if requested <= 0:
        requested = os.cpu_count() or 1
    return max(1, min(requested, MAX_WORKERS))


def run_parallel(func: Callable, items: list, workers: int) -> list:
    """Apply ``func`` to every item, preserving order.

    The first exception in item order propagates and aborts the build.
    """
    workers = min(workers, len(items))
    if workers <= 1:
        return [func(item) for item in items]
    with ThreadPoolExecutor(max_workers=workers) as executor:
        return list(executor.map(func, items))


def static_files(source_dir: Path, output_dir: Path, site: SiteConfig, config_path: Optional[Path]) -> list[Path]:
    exclude = DEFAULT_EXCLUDE + site.exclude
    output_resolved = output_dir.resolve()
    config_resolved = config_path.resolve() if config_path else None
    files = []
    for path in sorted(source_dir.rglob("*"), key=lambda p: p.as_posix()):
        if not path.is_file():
            continue
        rel = path.relative_to(source_dir)
        if any(part.startswith(("_", ".")) for part in rel.parts):
            continue
        if path.suffix.lower() in SKIP_STATIC_SUFFIXES or is_excluded(rel, exclude):
            continue
        resolved = path.resolve()
        if resolved == config_resolved or resolved.is_relative_to(output_resolved):
            continue
        files.append(path)
    return files


def build_site(
    site: SiteConfig,
    source_dir: Path,
    output_dir: Path,
    workers: int = 0,
    config_path: Optional[Path] = None,
) -> BuildResult:
    posts_dir = source_dir / site.posts_dir
    if not posts_dir.is_dir():
        warn(f"posts directory not found: {posts_dir}")
    layouts = Layouts.load(source_dir / site.layouts_dir)
    emitter = SiteEmitter(output_dir, source_dir)
    workers = resolve_workers(workers or site.build_workers)

    def load_post(path: Path) -> Optional[Post]:
        document = read_document(path)
        if not is_published(document.meta):
            return None
        return convert_post(build_post(document, site), site)

    post_files = discover_posts(posts_dir, site.exclude)
    loaded = run_parallel(load_post, post_files, workers)
    posts = resolve_duplicates([post for post in loaded if post is not None], site.duplicates)
    for post in posts:
        emitter.claim(post.url, post.source)

    ordered = sort_posts(posts)

    def emit_post(item: tuple[Post, Optional[Post], Optional[Post]]) -> None:
        post, previous, next_post = item
        emitter.add(render_post(post, site, layouts, previous, next_post), claimed=True)

    run_parallel(emit_post, with_neighbors(ordered), workers)

    pages = paginate(ordered, site.paginate, site)
    categories = group_by_category(ordered, site)
    tags = group_by_tag(ordered)
    documents = build_index_pages(pages, site, layouts)
    documents += build_category_pages(categories, site, layouts)
    documents += build_tag_pages(tags, site, layouts)
    documents.append(build_feed(ordered, site))
    documents.append(build_sitemap(ordered, pages, categories, site, tuple(tags)))
    if site.highlighter == "pygments":
        documents.append(build_highlight_css(site))
    for document in documents:
        emitter.add(document)
    for path in static_files(source_dir, output_dir, site, config_path):
        emitter.add_static(path, "/" + path.relative_to(source_dir).as_posix())

    files = emitter.commit()
    return BuildResult(
        posts=tuple(ordered), pages=tuple(pages), categories=tuple(categories), tags=tuple(tags), files=files
    )


def main(argv: Optional[list[str]] = None) -> None:
    pre_parser = argparse.ArgumentParser(add_help=False)
    pre_parser.add_argument("--source", default=".", help="Site source directory.")
    pre_parser.add_argument("--config", default="", help="Path to site config file (YAML/TOML/JSON).")
    pre_args, _ = pre_parser.parse_known_args(argv)
    source_dir = Path(pre_args.source)
    config_path = Path(pre_args.config) if pre_args.config else source_dir / "_config.yml"

    try:
        config = load_config(config_path)
    except SiteBuildError as exc:
        print(f"Build failed: {exc}", file=sys.stderr)
        sys.exit(1)

    def cfg_str(key: str, default: str) -> str:
        value = config.get(key)
        return default if value is None else str(value)

    parser = argparse.ArgumentParser(description="Build a static blog from Markdown posts and layouts.")
    parser.add_argument("--source", default=pre_args.source, help="Site source directory.")
    parser.add_argument("--config", default=pre_args.config, help="Path to site config file (YAML/TOML/JSON).")
    parser.add_argument(
        "--destination",
        default=cfg_str("destination", "_site"),
        help="Output directory, relative to the source directory unless absolute.",
    )
    parser.add_argument(
        "--workers",
        default=parse_int(config.get("build_workers"), 0),
        type=int,
        help="Number of worker threads for loading and rendering posts (0 = auto).",
    )
    parser.add_argument(
        "--duplicates",
        choices=DUPLICATE_POLICIES,
        default=None,
        help="How to treat two posts with the same output path (default from config, else warn).",
    )
    args = parser.parse_args(argv)

    output_dir = Path(args.destination)
    if not output_dir.is_absolute():
        output_dir = source_dir / output_dir

    start = time.perf_counter()
    try:
        site = read_site_config(config_path, {"duplicates": args.duplicates})
        result = build_site(site, source_dir, output_dir, workers=args.workers, config_path=config_path)
    except SiteBuildError as exc:
        print(f"Build failed: {exc}", file=sys.stderr)
        sys.exit(1)
    elapsed = time.perf_counter() - start
    print(
        f"Built {len(result.posts)} posts, {len(result.pages)} index pages, "
        f"{len(result.categories)} categories and {len(result.tags)} tags in {elapsed:.2f}s."
    )
    print(f"Site generated in: {output_dir}")
