"""Tests for chapter/index page rendering and the artifact store."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from novelshelf.pipeline.render import (
    IndexEntry,
    nav_links,
    read_chapter_page,
    render_chapter_page,
    render_index,
)
from novelshelf.pipeline.storage import (
    ArtifactStore,
    chapter_filename,
    parse_sentinel,
    render_sentinel,
)
from novelshelf.scraper.models import ChapterArtifact


# ---------------------------------------------------------------------------
# Navigation
# ---------------------------------------------------------------------------

class TestNavLinks:
    @pytest.mark.parametrize(
        "number, total, expected",
        [
            (1, 3, (None, "chapter_0002.html")),
            (2, 3, ("chapter_0001.html", "chapter_0003.html")),
            (3, 3, ("chapter_0002.html", None)),
            (1, 1, (None, None)),
        ],
    )
    def test_sequence_arithmetic(self, number, total, expected) -> None:
        assert nav_links(number, total) == expected

    def test_links_ignore_missing_neighbours(self) -> None:
        # A missing chapter 5 on disk does not change chapter 4's next link.
        assert nav_links(4, 10)[1] == "chapter_0005.html"


# ---------------------------------------------------------------------------
# Chapter page
# ---------------------------------------------------------------------------

class TestChapterPage:
    def _artifact(self) -> ChapterArtifact:
        return ChapterArtifact(
            number=12,
            title="Chapter 12: Fool <&> Star",
            body_html="<p>The gray fog rolled in.</p>",
            extracted_at=datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc),
        )

    def test_page_structure(self) -> None:
        page = render_chapter_page(self._artifact(), total=20)
        assert '<meta name="chapter-number" content="12">' in page
        assert "Fool &lt;&amp;&gt; Star" in page
        assert 'href="chapter_0011.html"' in page
        assert 'href="chapter_0013.html"' in page
        assert 'href="index.html"' in page

    def test_read_back(self) -> None:
        artifact = self._artifact()
        parsed = read_chapter_page(render_chapter_page(artifact, total=20))

        assert parsed.number == 12
        assert parsed.title == "Chapter 12: Fool <&> Star"
        assert parsed.body_html == artifact.body_html
        assert parsed.extracted_at == artifact.extracted_at


class TestIndex:
    def test_sorted_entries(self) -> None:
        page = render_index(
            "Lord of the Mysteries",
            [IndexEntry(3, "Melissa"), IndexEntry(1, "Crimson")],
        )
        assert page.index("chapter_0001.html") < page.index("chapter_0003.html")
        assert "2 chapters" in page
        assert "<title>Lord of the Mysteries - Chapter Index</title>" in page

    def test_empty_index(self) -> None:
        page = render_index("Empty", [])
        assert "0 chapters" in page
        assert "Start reading" not in page


# ---------------------------------------------------------------------------
# Store and sentinels
# ---------------------------------------------------------------------------

class TestStore:
    def test_filename_is_zero_padded(self) -> None:
        assert chapter_filename(7) == "chapter_0007.html"
        assert chapter_filename(12345) == "chapter_12345.html"

    def test_sentinel_roundtrip(self) -> None:
        text = render_sentinel(2, "https://x/2?a=1&b=2", "bot_challenge", "still <blocked>")
        info = parse_sentinel(text)
        assert info.kind == "bot_challenge"
        assert info.message == "still <blocked>"

    def test_regular_page_is_not_sentinel(self) -> None:
        assert parse_sentinel("<html><body><p>story</p></body></html>") is None

    def test_sentinel_drops_stale_clean_page(self, tmp_path) -> None:
        store = ArtifactStore(tmp_path / "raw", tmp_path / "clean")
        store.write_raw(1, "<html>raw</html>")
        store.write_clean(1, "<html>clean</html>")
        assert store.is_complete(1)

        store.write_sentinel(1, "https://x/1", "transient_error", "reset")
        assert not store.clean_path(1).exists()
        assert not store.is_complete(1)
        assert not store.has_valid_raw(1)

    def test_numbers_listing_ignores_other_files(self, tmp_path) -> None:
        store = ArtifactStore(tmp_path / "raw", tmp_path / "clean")
        store.write_clean(10, "a")
        store.write_clean(2, "b")
        store.write_index("<html></html>")
        assert store.clean_numbers() == [2, 10]

    def test_no_temp_files_left_behind(self, tmp_path) -> None:
        store = ArtifactStore(tmp_path / "raw", tmp_path / "clean")
        store.write_raw(1, "x")
        assert [p.name for p in store.raw_dir.iterdir()] == ["chapter_0001.html"]
