"""Unit tests for output path claims and the staged write."""

import os
import threading
from pathlib import Path

import pytest

from postpress import emit
from postpress.emit import COMPLETE_MARKER, SiteEmitter, is_complete, output_relpath
from postpress.errors import ConfigError, WriteConflictError
from postpress.models import OutputDocument


class TestOutputRelpath:
    @pytest.mark.parametrize(
        ("url", "expected"),
        [
            ("/", "index.html"),
            ("/page2/", "page2/index.html"),
            ("/swiftui/2019/11/28/custom-controls-in-swiftui.html", "swiftui/2019/11/28/custom-controls-in-swiftui.html"),
            ("/feed.xml", "feed.xml"),
        ],
    )
    def test_mapping(self, url: str, expected: str) -> None:
        assert output_relpath(url) == expected


class TestClaims:
    """Test cases for output path conflicts."""

    def test_second_claim_conflicts(self, tmp_path: Path) -> None:
        emitter = SiteEmitter(tmp_path / "_site", tmp_path / "src")
        emitter.claim("/a.html", "_posts/one.md")
        with pytest.raises(WriteConflictError) as exc_info:
            emitter.claim("/a.html", "_posts/two.md")
        err = exc_info.value
        assert err.output_path == "/a.html"
        assert err.first == "_posts/one.md"
        assert err.second == "_posts/two.md"
        assert "_posts/one.md" in str(err) and "_posts/two.md" in str(err)

    def test_directory_and_index_are_the_same_path(self, tmp_path: Path) -> None:
        emitter = SiteEmitter(tmp_path / "_site", tmp_path / "src")
        emitter.claim("/page2/", "index page 2")
        with pytest.raises(WriteConflictError):
            emitter.claim("/page2/index.html", "static")

    def test_concurrent_claims_for_one_path(self, tmp_path: Path) -> None:
        """Exactly one of many threads claiming the same path succeeds."""
        emitter = SiteEmitter(tmp_path / "_site", tmp_path / "src")
        results: list[str] = []
        barrier = threading.Barrier(8)

        def worker(index: int) -> None:
            barrier.wait()
            try:
                emitter.claim("/same.html", f"doc-{index}")
                results.append("ok")
            except WriteConflictError:
                results.append("conflict")

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        assert results.count("ok") == 1
        assert results.count("conflict") == 7
        assert list(emitter.claimed) == ["same.html"]

    def test_preclaimed_document_is_stored_without_second_claim(self, tmp_path: Path) -> None:
        emitter = SiteEmitter(tmp_path / "_site", tmp_path / "src")
        emitter.claim("/a.html", "_posts/one.md")
        emitter.add(OutputDocument(path="/a.html", content="x", source="_posts/one.md"), claimed=True)
        assert emitter.claimed == {"a.html": "_posts/one.md"}
        with pytest.raises(WriteConflictError):
            emitter.add(OutputDocument(path="/a.html", content="y", source="_posts/two.md"))

    def test_refuses_to_replace_source(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError):
            SiteEmitter(tmp_path, tmp_path)
        with pytest.raises(ConfigError):
            SiteEmitter(tmp_path, tmp_path / "site")


class TestCommit:
    """Test cases for writing the site."""

    def test_writes_documents_static_files_and_marker(self, tmp_path: Path) -> None:
        static = tmp_path / "style.css"
        static.write_text("body {}", encoding="utf-8")
        output = tmp_path / "out" / "_site"
        emitter = SiteEmitter(output, tmp_path / "src")
        emitter.add(OutputDocument(path="/", content="home", source="index"))
        emitter.add(OutputDocument(path="/a/2019/11/28/x.html", content="post", source="x.md"))
        emitter.add_static(static, "/assets/style.css")
        assert emitter.commit() == 3
        assert (output / "index.html").read_text(encoding="utf-8") == "home"
        assert (output / "a/2019/11/28/x.html").read_text(encoding="utf-8") == "post"
        assert (output / "assets/style.css").read_text(encoding="utf-8") == "body {}"
        assert is_complete(output)
        assert [p.name for p in output.parent.iterdir()] == ["_site"]

    def test_replaces_previous_output(self, tmp_path: Path) -> None:
        output = tmp_path / "_site"
        output.mkdir()
        (output / "stale.html").write_text("old", encoding="utf-8")
        emitter = SiteEmitter(output, tmp_path / "src")
        emitter.add(OutputDocument(path="/", content="new", source="index"))
        emitter.commit()
        assert sorted(p.name for p in output.iterdir()) == [COMPLETE_MARKER, "index.html"]
        assert sorted(p.name for p in tmp_path.iterdir()) == ["_site"]

    def test_failure_leaves_previous_output(self, tmp_path: Path) -> None:
        """A failed write removes the staging directory and keeps the old site."""
        output = tmp_path / "_site"
        output.mkdir()
        (output / "index.html").write_text("old", encoding="utf-8")
        emitter = SiteEmitter(output, tmp_path / "src")
        emitter.add_static(tmp_path / "missing.css", "/missing.css")
        with pytest.raises(FileNotFoundError):
            emitter.commit()
        assert (output / "index.html").read_text(encoding="utf-8") == "old"
        assert sorted(p.name for p in tmp_path.iterdir()) == ["_site"]

    def test_failed_swap_restores_previous_output(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """If the staged site cannot be moved into place, the old site returns under its own name."""
        output = tmp_path / "_site"
        output.mkdir()
        (output / "index.html").write_text("old", encoding="utf-8")
        emitter = SiteEmitter(output, tmp_path / "src")
        emitter.add(OutputDocument(path="/", content="new", source="index"))
        real_replace = os.replace

        def failing_replace(src: Path, dst: Path) -> None:
            if Path(dst) == output and Path(src).name.startswith(".") and not Path(src).name.endswith("-previous"):
                raise OSError("cross-device link")
            real_replace(src, dst)

        monkeypatch.setattr(emit.os, "replace", failing_replace)
        with pytest.raises(OSError):
            emitter.commit()
        assert (output / "index.html").read_text(encoding="utf-8") == "old"
        assert sorted(p.name for p in tmp_path.iterdir()) == ["_site"]
