"""Unit tests for front matter parsing, discovery and duplicate handling."""

import datetime as dt
from pathlib import Path

import pytest

from conftest import make_post
from postpress.content import (
    discover_posts,
    read_document,
    is_published,
    load_documents,
    parse_front_matter,
    resolve_duplicates,
    slugify,
)
from postpress.errors import MalformedDocumentError

DOC = Path("_posts/2019-11-28-custom-controls.md")


class TestParseFrontMatter:
    """Test cases for splitting metadata from body."""

    def test_valid_document(self) -> None:
        """Metadata is parsed as YAML and the body follows the closing line."""
        text = "---\ntitle: Custom controls in SwiftUI\ndate: 2019-11-28\nCategories: [SwiftUI]\n---\nHello\n"
        meta, body = parse_front_matter(text, DOC)
        assert meta["title"] == "Custom controls in SwiftUI"
        assert meta["date"] == "2019-11-28"
        assert meta["categories"] == ["SwiftUI"]
        assert body == "Hello"

    def test_impossible_date_is_left_for_validation(self) -> None:
        """Timestamps stay strings, so an impossible date is not a YAML error."""
        meta, _ = parse_front_matter("---\ntitle: x\ndate: 2019-02-30\n---\n", DOC)
        assert meta["date"] == "2019-02-30"

    def test_bom_is_ignored(self) -> None:
        """A leading byte order mark does not hide the delimiter."""
        meta, _ = parse_front_matter("\ufeff---\ntitle: x\n---\n", DOC)
        assert meta == {"title": "x"}

    def test_empty_block(self) -> None:
        """An empty metadata block is an empty mapping."""
        meta, body = parse_front_matter("---\n---\nbody", DOC)
        assert meta == {}
        assert body == "body"

    @pytest.mark.parametrize(
        "text",
        [
            "title: no delimiter\n",
            "",
            "---\ntitle: never closed\n",
            "---\n- a list\n---\n",
            "---\ntitle: [broken\n---\n",
        ],
    )
    def test_malformed(self, text: str) -> None:
        """Missing delimiters or non-mapping metadata raise MalformedDocumentError."""
        with pytest.raises(MalformedDocumentError) as exc_info:
            parse_front_matter(text, DOC)
        assert exc_info.value.path == str(DOC)

    def test_explicit_timestamp_tag_with_bad_value(self) -> None:
        with pytest.raises(MalformedDocumentError):
            parse_front_matter("---\ndate: !!timestamp 2019-13-45\n---\n", DOC)

    def test_code_in_body_is_untouched(self) -> None:
        """Body text, including code with braces and dashes, is passed through verbatim."""
        body = "```swift\nlet x = { $0 }\n---\n```"
        _, parsed = parse_front_matter(f"---\ntitle: x\n---\n{body}", DOC)
        assert parsed == body


class TestSlugify:
    """Test cases for slug derivation."""

    def test_title(self) -> None:
        assert slugify("Custom controls in SwiftUI") == "custom-controls-in-swiftui"

    def test_punctuation_and_underscores(self) -> None:
        assert slugify("  SwiftUI: @State_vs_@Binding! ") == "swiftui-state-vs-binding"

    def test_empty(self) -> None:
        assert slugify("!!!") == "post"


class TestDiscovery:
    """Test cases for finding post files."""

    def test_sorted_and_filtered(self, tmp_path: Path) -> None:
        """Only Markdown files are loaded, sorted by path, hidden and excluded ones skipped."""
        posts = tmp_path / "_posts"
        (posts / "2020").mkdir(parents=True)
        (posts / "b.md").write_text("---\n---\n", encoding="utf-8")
        (posts / "a.markdown").write_text("---\n---\n", encoding="utf-8")
        (posts / "2020" / "c.md").write_text("---\n---\n", encoding="utf-8")
        (posts / ".hidden.md").write_text("---\n---\n", encoding="utf-8")
        (posts / "notes.txt").write_text("x", encoding="utf-8")
        (posts / "old").mkdir()
        (posts / "old" / "d.md").write_text("---\n---\n", encoding="utf-8")
        names = [p.relative_to(posts).as_posix() for p in discover_posts(posts, ("old",))]
        assert names == ["2020/c.md", "a.markdown", "b.md"]

    def test_missing_directory(self, tmp_path: Path) -> None:
        assert discover_posts(tmp_path / "nope") == []

    def test_load_documents_fails_on_first_malformed(self, tmp_path: Path) -> None:
        """A single malformed document aborts loading."""
        (tmp_path / "a.md").write_text("---\ntitle: ok\n---\n", encoding="utf-8")
        (tmp_path / "b.md").write_text("no front matter", encoding="utf-8")
        with pytest.raises(MalformedDocumentError) as exc_info:
            load_documents(tmp_path)
        assert exc_info.value.path.endswith("b.md")


class TestPublished:
    @pytest.mark.parametrize(
        ("meta", "expected"),
        [({}, True), ({"published": False}, False), ({"draft": True}, False), ({"published": "true"}, True)],
    )
    def test_is_published(self, meta: dict, expected: bool) -> None:
        assert is_published(meta) is expected


class TestResolveDuplicates:
    """Test cases for posts that publish to the same URL."""

    def test_last_loaded_wins_with_warning(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Under 'warn' the later document replaces the earlier one and a warning is printed."""
        date = dt.date(2019, 11, 28)
        draft = make_post("Custom controls in SwiftUI", date, source="_posts/a-draft.md")
        final = make_post("Custom controls in SwiftUI", date, source="_posts/b-final.md")
        other = make_post("Animating paths", dt.date(2019, 11, 20))
        result = resolve_duplicates([draft, other, final], "warn")
        assert result == [final, other]
        err = capsys.readouterr().err
        assert "Warning:" in err
        assert "_posts/a-draft.md" in err
        assert "_posts/b-final.md" in err

    def test_error_policy_keeps_everything(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Under 'error' nothing is dropped here; the emitter reports the conflict."""
        date = dt.date(2019, 11, 28)
        posts = [make_post("Custom controls in SwiftUI", date, source=f"_posts/{n}.md") for n in "ab"]
        assert resolve_duplicates(posts, "error") == posts
        assert capsys.readouterr().err == ""


class TestReadDocument:
    def test_invalid_utf8_names_the_file(self, tmp_path: Path) -> None:
        """Bytes that are not UTF-8 raise MalformedDocumentError for that file."""
        path = tmp_path / "2019-11-28-latin1.md"
        path.write_bytes(b"---\ntitle: \xff\xfe caf\xe9\ndate: 2019-11-28\n---\n")
        with pytest.raises(MalformedDocumentError) as exc_info:
            read_document(path)
        assert exc_info.value.path == str(path)
        assert "UTF-8" in exc_info.value.message
