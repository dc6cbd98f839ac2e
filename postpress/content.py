from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

import yaml

from .errors import MalformedDocumentError
from .utils import parse_bool, warn

POST_SUFFIXES = {".md", ".markdown"}
FRONT_MATTER_OPEN = "---"
FRONT_MATTER_CLOSE = {"---", "..."}
TIMESTAMP_TAG = "tag:yaml.org,2002:timestamp"


class FrontMatterLoader(yaml.SafeLoader):
    """SafeLoader that leaves timestamps as plain strings.

    Dates are checked by the metadata validator, which reports an impossible
    date such as 2019-02-30 against the `date` field instead of failing here.
    """


FrontMatterLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag != TIMESTAMP_TAG]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}


@dataclass(frozen=True)
class RawDocument:
    path: Path
    meta: dict
    body: str


def slugify(text: str) -> str:
    text = text.lower()
    text = re.sub(r"[\W_]+", "-", text, flags=re.UNICODE).strip("-")
    return text or "post"


def parse_front_matter(text: str, path: Path) -> tuple[dict, str]:
    clean_text = text.lstrip("\ufeff")
    lines = clean_text.splitlines()
    if not lines or lines[0].strip() != FRONT_MATTER_OPEN:
        raise MalformedDocumentError("document does not start with a '---' front matter line", path)

    end = None
    for i in range(1, len(lines)):
        if lines[i].strip() in FRONT_MATTER_CLOSE:
            end = i
            break
    if end is None:
        raise MalformedDocumentError("front matter is not closed with '---'", path)

    block = "\n".join(lines[1:end])
    try:
        meta = yaml.load(block, Loader=FrontMatterLoader) if block.strip() else {}
    except (yaml.YAMLError, ValueError) as exc:
        raise MalformedDocumentError(f"front matter is not valid YAML: {exc}", path) from exc
    if meta is None:
        meta = {}
    if not isinstance(meta, dict):
        raise MalformedDocumentError("front matter must be a mapping of keys to values", path)
    meta = {str(key).strip().lower(): value for key, value in meta.items()}
    body = "\n".join(lines[end + 1 :])
    return meta, body


def is_excluded(rel: Path, exclude: tuple[str, ...]) -> bool:
    rel_posix = rel.as_posix()
    for pattern in exclude:
        if not pattern:
            continue
        if rel_posix == pattern or rel_posix.startswith(f"{pattern}/") or rel.match(pattern):
            return True
    return False


def discover_posts(posts_dir: Path, exclude: tuple[str, ...] = ()) -> list[Path]:
    """Post files under ``posts_dir`` in load order (sorted POSIX path)."""
    if not posts_dir.is_dir():
        return []
    paths = []
    for path in posts_dir.rglob("*"):
        if not path.is_file() or path.suffix.lower() not in POST_SUFFIXES:
            continue
        rel = path.relative_to(posts_dir)
        if any(part.startswith(".") for part in rel.parts):
            continue
        if is_excluded(rel, exclude):
            continue
        paths.append(path)
    return sorted(paths, key=lambda p: p.as_posix())


def read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise MalformedDocumentError(f"file is not valid UTF-8: {exc}", path) from exc


def read_document(path: Path) -> RawDocument:
    meta, body = parse_front_matter(read_text(path), path)
    return RawDocument(path=path, meta=meta, body=body)


def load_documents(posts_dir: Path, exclude: tuple[str, ...] = ()) -> list[RawDocument]:
    return [read_document(path) for path in discover_posts(posts_dir, exclude)]


def is_published(meta: dict) -> bool:
    if parse_bool(meta.get("draft")):
        return False
    return parse_bool(meta.get("published"), default=True)


def resolve_duplicates(posts: list, policy: str) -> list:
    """Apply the duplicate policy to posts given in load order.

    Posts sharing an output URL are duplicates. Under ``warn`` the
    last-loaded one replaces the earlier one in place and a warning names
    both files. Under ``error`` the list is returned untouched and the
    emitter reports the collision.
    """
    if policy == "error":
        return list(posts)
    kept: dict[str, object] = {}
    for post in posts:
        previous = kept.get(post.url)
        if previous is not None:
            warn(
                f"{post.source} and {previous.source} both publish {post.url}; "
                f"keeping {post.source} (last loaded)"
            )
        kept[post.url] = post
    return list(kept.values())
