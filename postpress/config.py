from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

try:
    import tomllib as toml
except ImportError:
    import tomli as toml

from .errors import ConfigError
from .utils import parse_bool, parse_int

DEFAULT_PAGINATE = 5
DEFAULT_PAGINATE_PATH = "/page:num/"
DEFAULT_FEED_LIMIT = 10
DUPLICATE_POLICIES = ("warn", "error")
HIGHLIGHTERS = ("pygments", "highlightjs")


def load_config(path: Path) -> dict:
    if not path.exists():
        return {}
    suffix = path.suffix.lower()
    text = path.read_text(encoding="utf-8")
    if suffix == ".toml":
        try:
            data = toml.loads(text)
        except toml.TOMLDecodeError as exc:
            raise ConfigError(f"invalid TOML: {exc}", path) from exc
    elif suffix in {".yml", ".yaml"}:
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ConfigError(f"invalid YAML: {exc}", path) from exc
        if data is None:
            return {}
    else:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ConfigError(f"invalid JSON: {exc}", path) from exc
    if not isinstance(data, dict):
        raise ConfigError("config must be a mapping", path)
    return data


def normalize_url(value: object) -> str:
    return str(value or "").strip().rstrip("/")


def normalize_baseurl(value: object) -> str:
    value = str(value or "").strip().strip("/")
    return f"/{value}" if value else ""


@dataclass(frozen=True)
class SocialLink:
    name: str
    icon: str = ""
    username: str = ""
    url: str = ""
    desc: str = ""
    share: bool = False


@dataclass(frozen=True)
class SiteConfig:
    """Site-wide settings, read once per build and passed to every stage."""

    title: str = ""
    subtitle: str = ""
    description: str = ""
    author: str = ""
    email: str = ""
    url: str = ""
    baseurl: str = ""
    cover: str = ""
    logo: str = ""
    paginate: int = DEFAULT_PAGINATE
    paginate_path: str = DEFAULT_PAGINATE_PATH
    highlighter: str = "pygments"
    highlightjs_theme: str = ""
    pygments_style: str = "default"
    social: tuple[SocialLink, ...] = ()
    descriptions: dict[str, str] = field(default_factory=dict)
    exclude: tuple[str, ...] = ()
    feed_limit: int = DEFAULT_FEED_LIMIT
    excerpt_separator: str = "\n\n"
    duplicates: str = "warn"
    build_workers: int = 0
    posts_dir: str = "_posts"
    layouts_dir: str = "_layouts"
    index_layout: str = "home"
    category_layout: str = "category"
    tag_layout: str = "tag"
    inter_post_navigation: bool = True
    destination: str = "_site"

    @classmethod
    def from_mapping(cls, data: dict, path: Optional[Path] = None) -> "SiteConfig":
        def text(key: str, default: str = "") -> str:
            value = data.get(key)
            return default if value is None else str(value).strip()

        social = []
        for item in data.get("social") or []:
            if not isinstance(item, dict) or not item.get("name"):
                raise ConfigError(f"social entries need a name, got {item!r}", path)
            social.append(
                SocialLink(
                    name=str(item["name"]),
                    icon=str(item.get("icon") or ""),
                    username=str(item.get("username") or ""),
                    url=normalize_url(item.get("url")),
                    desc=str(item.get("desc") or ""),
                    share=parse_bool(item.get("share")),
                )
            )

        descriptions = {}
        for item in data.get("descriptions") or []:
            if not isinstance(item, dict) or "cat" not in item:
                raise ConfigError(f"category descriptions need a 'cat' key, got {item!r}", path)
            descriptions[str(item["cat"])] = str(item.get("desc") or "")

        exclude = data.get("exclude") or []
        if isinstance(exclude, str):
            exclude = [exclude]

        duplicates = text("duplicates", "warn").lower()
        if duplicates not in DUPLICATE_POLICIES:
            raise ConfigError(f"duplicates must be one of {', '.join(DUPLICATE_POLICIES)}", path)
        highlighter = text("highlighter", "pygments").lower()
        if highlighter not in HIGHLIGHTERS:
            raise ConfigError(f"highlighter must be one of {', '.join(HIGHLIGHTERS)}", path)

        paginate = parse_int(data.get("paginate"), DEFAULT_PAGINATE)
        if paginate < 1:
            raise ConfigError(f"paginate must be at least 1, got {paginate}", path)
        paginate_path = text("paginate_path", DEFAULT_PAGINATE_PATH)
        if ":num" not in paginate_path:
            raise ConfigError("paginate_path must contain ':num'", path)

        separator = data.get("excerpt_separator")
        return cls(
            title=text("title"),
            subtitle=text("subtitle"),
            description=text("description"),
            author=text("author") or text("name"),
            email=text("email"),
            url=normalize_url(data.get("url")),
            baseurl=normalize_baseurl(data.get("baseurl")),
            cover=text("cover"),
            logo=text("logo"),
            paginate=paginate,
            paginate_path=paginate_path,
            highlighter=highlighter,
            highlightjs_theme=text("highlightjs_theme"),
            pygments_style=text("pygments_style", "default"),
            social=tuple(social),
            descriptions=descriptions,
            exclude=tuple(str(item).strip("/") for item in exclude),
            feed_limit=max(0, parse_int(data.get("feed_limit"), DEFAULT_FEED_LIMIT)),
            excerpt_separator="\n\n" if separator is None else str(separator),
            duplicates=duplicates,
            build_workers=max(0, parse_int(data.get("build_workers"), 0)),
            posts_dir=text("posts_dir", "_posts"),
            layouts_dir=text("layouts_dir", "_layouts"),
            index_layout=text("index_layout", "home"),
            category_layout=text("category_layout", "category"),
            tag_layout=text("tag_layout", "tag"),
            inter_post_navigation=parse_bool(data.get("inter_post_navigation"), default=True),
            destination=text("destination", "_site"),
        )

    @property
    def site_url(self) -> str:
        return f"{self.url}{self.baseurl}"

    def absolute_url(self, path: str) -> str:
        if not path.startswith("/"):
            path = f"/{path}"
        return f"{self.site_url}{path}"

    def relative_url(self, path: str) -> str:
        if not path.startswith("/"):
            path = f"/{path}"
        return f"{self.baseurl}{path}"

    def category_description(self, label: str) -> str:
        return self.descriptions.get(label, "")


def read_site_config(path: Path, overrides: Optional[dict] = None) -> SiteConfig:
    data = load_config(path)
    if overrides:
        data.update({key: value for key, value in overrides.items() if value is not None})
    return SiteConfig.from_mapping(data, path)
