"""
Unit tests for FootnoteRenderer and the footer layouts.
"""

import pytest

from annotator.services.pdf_annotation import (
    EXPORT_FOOTNOTE_LAYOUT,
    PERSISTED_FOOTNOTE_LAYOUT,
    FootnoteRenderer,
    has_comments,
)

from conftest import FakeHighlight, RecordingPage


class TestFootnoteLayouts:
    """Tests for the two footer presets."""

    def test_export_layout(self):
        layout = EXPORT_FOOTNOTE_LAYOUT
        assert (layout.start_y, layout.header_gap, layout.entry_step) == (150, 30, 50)
        assert (layout.separator_thickness, layout.separator_gray) == (1.5, 0.2)

    def test_persisted_layout(self):
        layout = PERSISTED_FOOTNOTE_LAYOUT
        assert (layout.start_y, layout.header_gap, layout.entry_step) == (100, 25, 45)
        assert (layout.separator_thickness, layout.separator_gray) == (1.0, 0.3)


class TestHasComments:
    """Tests for has_comments."""

    def test_empty_list(self):
        assert has_comments([]) is False

    def test_empty_comment_does_not_count(self):
        assert has_comments([FakeHighlight("a", comment=""), FakeHighlight("b")]) is False

    def test_one_comment(self):
        assert has_comments([FakeHighlight("a"), FakeHighlight("b", comment="note")]) is True


class TestFootnoteRenderer:
    """Tests for drawing the footnote block."""

    def test_block_structure(self, fonts):
        """Test separator, header, entry, comment and page stamp are all drawn."""
        page = RecordingPage(width=612)
        highlights = [FakeHighlight("Key finding", color="red", comment="Important")]

        assert FootnoteRenderer(EXPORT_FOOTNOTE_LAYOUT).render_footnotes(page, highlights, 0, 3, fonts)

        assert page.lines == [{
            "start": (50, 170),
            "end": (562, 170),
            "thickness": 1.5,
            "color": (0.2, 0.2, 0.2),
        }]
        assert page.text_values() == ["Footnotes:", "1. Key finding:", "Important", "Page 1 of 3"]

        header, entry, comment, stamp = page.texts
        assert (header["x"], header["y"], header["size"], header["font"]) == (50, 150, 14, "hebo")
        assert (entry["x"], entry["y"], entry["font"]) == (50, 120, "hebo")
        assert entry["color"] == (1.0, 0.0, 0.0)
        assert entry["max_width"] == 512
        assert (comment["x"], comment["y"], comment["font"]) == (70, 100, "helv")
        assert comment["max_width"] == 492
        assert (stamp["x"], stamp["y"], stamp["size"]) == (512, 50, 9)
        assert stamp["color"] == (0.5, 0.5, 0.5)

    def test_numbering_counts_uncommented_highlights(self, fonts):
        """Test entry numbers follow the highlight's position among all page highlights."""
        page = RecordingPage()
        highlights = [
            FakeHighlight("alpha"),
            FakeHighlight("beta", comment="on beta"),
            FakeHighlight("gamma"),
            FakeHighlight("delta", comment="on delta"),
        ]
        FootnoteRenderer().render_footnotes(page, highlights, 1, 2, fonts)

        entries = [t for t in page.text_values() if t.endswith(":") and t != "Footnotes:"]
        assert entries == ["2. beta:", "4. delta:"]

    def test_entries_step_down_by_layout(self, fonts):
        """Test consecutive entries use the layout's entry step."""
        page = RecordingPage()
        highlights = [FakeHighlight("a", comment="x"), FakeHighlight("b", comment="y")]
        FootnoteRenderer(PERSISTED_FOOTNOTE_LAYOUT).render_footnotes(page, highlights, 0, 1, fonts)

        entry_ys = [t["y"] for t in page.texts if t["text"] in ("1. a:", "2. b:")]
        assert entry_ys == [75, 30]
        assert page.texts[0]["y"] == 100
        assert page.lines[0]["start"] == (50, 120)
        assert page.lines[0]["thickness"] == 1.0

    def test_failure_returns_false(self, fonts):
        """Test a draw failure inside the block is reported, not raised."""
        page = RecordingPage(fail_on_text="Footnotes")
        highlights = [FakeHighlight("a", comment="x")]

        assert FootnoteRenderer().render_footnotes(page, highlights, 0, 1, fonts) is False

    @pytest.mark.parametrize("width", [300, 612, 1000])
    def test_stamp_tracks_page_width(self, fonts, width):
        page = RecordingPage(width=width)
        FootnoteRenderer().render_footnotes(page, [FakeHighlight("a", comment="x")], 0, 1, fonts)

        assert page.texts[-1]["x"] == width - 100
