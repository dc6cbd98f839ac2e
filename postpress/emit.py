from __future__ import annotations

import os
import shutil
import tempfile
import threading
from pathlib import Path

from .errors import WriteConflictError
from .models import OutputDocument
from .utils import check_replace_target, remove_tree

COMPLETE_MARKER = ".postpress-complete"


def output_relpath(url_path: str) -> str:
    """Map an output URL path to a file path relative to the site root."""
    rel = url_path.lstrip("/")
    if not rel or rel.endswith("/"):
        rel = f"{rel}index.html"
    return rel


class SiteEmitter:
    """Collects output documents and writes them as one complete site.

    Every output path may be claimed once; a second claim raises
    ``WriteConflictError``. Claims are safe to make from worker threads.
    Nothing touches the destination until ``commit`` succeeds: the site is
    written to a staging directory next to it and swapped into place.
    """

    def __init__(self, output_dir: Path, source_dir: Path):
        check_replace_target(output_dir, source_dir)
        self.output_dir = output_dir
        self._claims: dict[str, str] = {}
        self._documents: dict[str, OutputDocument] = {}
        self._static: dict[str, Path] = {}
        self._lock = threading.Lock()

    def claim(self, url_path: str, source: str) -> str:
        rel = output_relpath(url_path)
        with self._lock:
            owner = self._claims.get(rel)
            if owner is not None:
                raise WriteConflictError("/" + rel, owner, source)
            self._claims[rel] = source
        return rel

    def add(self, document: OutputDocument, claimed: bool = False) -> None:
        """Store ``document``; pass ``claimed=True`` when its path was claimed beforehand."""
        if claimed:
            rel = output_relpath(document.path)
        else:
            rel = self.claim(document.path, document.source)
        with self._lock:
            self._documents[rel] = document

    def add_static(self, source_file: Path, url_path: str) -> None:
        rel = self.claim(url_path, source_file.as_posix())
        with self._lock:
            self._static[rel] = source_file

    @property
    def claimed(self) -> dict[str, str]:
        with self._lock:
            return dict(self._claims)

    def write_tree(self, target: Path) -> None:
        for rel in sorted(self._static):
            dest = target / rel
            dest.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(self._static[rel], dest)
        for rel in sorted(self._documents):
            dest = target / rel
            dest.parent.mkdir(parents=True, exist_ok=True)
            dest.write_text(self._documents[rel].content, encoding="utf-8")
        total = len(self._documents) + len(self._static)
        target.joinpath(COMPLETE_MARKER).write_text(f"{total} files\n", encoding="utf-8")

    def commit(self) -> int:
        parent = self.output_dir.parent
        parent.mkdir(parents=True, exist_ok=True)
        staging = Path(tempfile.mkdtemp(prefix=f".{self.output_dir.name}-staging-", dir=parent))
        staging.chmod(0o755)
        previous = None
        try:
            self.write_tree(staging)
            if self.output_dir.exists():
                previous = staging.with_name(f"{staging.name}-previous")
                os.replace(self.output_dir, previous)
            os.replace(staging, self.output_dir)
        except BaseException:
            if previous is not None and previous.exists() and not self.output_dir.exists():
                os.replace(previous, self.output_dir)
            remove_tree(staging)
            raise
        if previous is not None:
            remove_tree(previous)
        return len(self._documents) + len(self._static)


def is_complete(output_dir: Path) -> bool:
    return output_dir.joinpath(COMPLETE_MARKER).is_file()
