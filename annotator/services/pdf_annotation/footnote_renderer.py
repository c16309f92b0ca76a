"""
Footnote Renderer

Draws the footnote block at the bottom of a page: a separator line, a
"Footnotes:" header, one numbered entry per commented highlight and a
"Page N of M" stamp.

Entries are stacked downward at a fixed step. There is no overflow
handling; entries that do not fit end up below the visible page area.
"""

import logging
from dataclasses import dataclass
from typing import Sequence

from .colors import BLACK, resolve_color
from .page_surface import FontPair
from ..errors import DrawError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FootnoteLayout:
    """Fixed coordinates of the footnote block (bottom-left origin)."""
    start_y: float  # Baseline of the "Footnotes:" header
    x: float = 50
    margin: float = 50
    header_gap: float = 30  # Header baseline to first entry baseline
    entry_step: float = 50  # Vertical distance between entries
    separator_offset: float = 20  # Separator line sits this far above the header
    separator_thickness: float = 1.5
    separator_gray: float = 0.2


# Used for on-demand exports
EXPORT_FOOTNOTE_LAYOUT = FootnoteLayout(
    start_y=150,
    header_gap=30,
    entry_step=50,
    separator_thickness=1.5,
    separator_gray=0.2,
)

# Used for the persisted annotated version
PERSISTED_FOOTNOTE_LAYOUT = FootnoteLayout(
    start_y=100,
    header_gap=25,
    entry_step=45,
    separator_thickness=1.0,
    separator_gray=0.3,
)


def has_comments(highlights: Sequence) -> bool:
    """True if at least one highlight carries a non-empty comment."""
    return any(h.comment for h in highlights)


class FootnoteRenderer:
    """Renders the footnote block for one page."""

    HEADER_TEXT = "Footnotes:"
    HEADER_SIZE = 14
    ENTRY_SIZE = 12
    COMMENT_INDENT = 20
    COMMENT_DROP = 20  # Comment baseline sits this far below its entry line
    ENTRY_WIDTH_INSET = 100
    COMMENT_WIDTH_INSET = 120
    STAMP_SIZE = 9
    STAMP_INSET = 100
    STAMP_GRAY = 0.5

    def __init__(self, layout: FootnoteLayout = EXPORT_FOOTNOTE_LAYOUT):
        self.layout = layout

    def render_footnotes(
        self,
        page,
        highlights: Sequence,
        page_index: int,
        total_pages: int,
        fonts: FontPair,
    ) -> bool:
        """
        Draw the footnote block.

        Args:
            page: RenderedPage (or anything with the same drawing methods)
            highlights: All highlights on this page in document order; the
                entry number is the highlight's position in this list
            page_index: 0-indexed page number
            total_pages: Page count of the document
            fonts: Regular and bold fonts for this rendering

        Returns:
            True if the block was drawn, False if drawing failed
        """
        try:
            self._render(page, highlights, page_index, total_pages, fonts)
            return True
        except Exception as e:
            error = DrawError(f"Failed to draw footnotes: {e}", page_number=page_index + 1)
            logger.error(f"Error adding footnotes on page {error.page_number}: {error}")
            return False

    def _render(self, page, highlights, page_index, total_pages, fonts) -> None:
        layout = self.layout
        separator_y = layout.start_y + layout.separator_offset
        gray = layout.separator_gray

        page.draw_line(
            (layout.margin, separator_y),
            (page.width - layout.margin, separator_y),
            thickness=layout.separator_thickness,
            color=(gray, gray, gray),
        )

        page.draw_text(
            self.HEADER_TEXT,
            layout.x,
            layout.start_y,
            size=self.HEADER_SIZE,
            font=fonts.bold,
            color=BLACK,
        )

        current_y = layout.start_y - layout.header_gap
        for index, highlight in enumerate(highlights):
            if not highlight.comment:
                continue

            page.draw_text(
                f"{index + 1}. {highlight.text}:",
                layout.x,
                current_y,
                size=self.ENTRY_SIZE,
                font=fonts.bold,
                color=resolve_color(highlight.color),
                max_width=page.width - self.ENTRY_WIDTH_INSET,
            )
            page.draw_text(
                highlight.comment,
                layout.x + self.COMMENT_INDENT,
                current_y - self.COMMENT_DROP,
                size=self.ENTRY_SIZE,
                font=fonts.regular,
                color=BLACK,
                max_width=page.width - self.COMMENT_WIDTH_INSET,
            )
            current_y -= layout.entry_step

        stamp_gray = self.STAMP_GRAY
        page.draw_text(
            f"Page {page_index + 1} of {total_pages}",
            page.width - self.STAMP_INSET,
            layout.margin,
            size=self.STAMP_SIZE,
            font=fonts.regular,
            color=(stamp_gray, stamp_gray, stamp_gray),
        )
