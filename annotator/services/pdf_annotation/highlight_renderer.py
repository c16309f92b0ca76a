"""
Highlight Renderer

Draws highlight rectangles, the highlighted text and inline footnote
markers onto a page.
"""

import logging
from typing import Optional, Sequence

from .colors import BLACK, resolve_color
from .page_surface import FontPair
from .placement import PlacementEstimator
from ..errors import DrawError

logger = logging.getLogger(__name__)


class HighlightRenderer:
    """
    Renders the highlights of one page.

    Highlights are drawn in the order given. A failure on one highlight is
    logged and does not stop the rest of the page.
    """

    FILL_OPACITY = 0.3
    BORDER_WIDTH = 1
    TEXT_SIZE = 12
    RECT_PADDING = 2  # Rectangle extends this far below and above the line box
    TEXT_RISE = 4  # Baseline offset above the placement y
    MARKER_OFFSET = 5  # Gap between the marker/comment and the highlight box

    def __init__(self, estimator: Optional[PlacementEstimator] = None):
        self.estimator = estimator or PlacementEstimator()

    def render_highlights(self, page, highlights: Sequence, fonts: FontPair) -> int:
        """
        Draw every highlight of a page.

        Args:
            page: RenderedPage (or anything with the same drawing methods)
            highlights: Highlights on this page in document order
            fonts: Regular and bold fonts for this rendering

        Returns:
            Number of highlights drawn without error
        """
        rendered = 0
        for index, highlight in enumerate(highlights):
            try:
                self._render_one(page, highlight, index, fonts)
                rendered += 1
            except Exception as e:
                error = DrawError(
                    f"Failed to draw highlight {getattr(highlight, 'id', index)}: {e}",
                    page_number=getattr(highlight, "page", None),
                )
                logger.error(f"Error processing highlight on page {error.page_number}: {error}")
        return rendered

    def _render_one(self, page, highlight, index: int, fonts: FontPair) -> None:
        placement = self.estimator.estimate(highlight, page.height)
        color = resolve_color(highlight.color)
        text_y = placement.y + self.TEXT_RISE

        page.draw_rectangle(
            placement.x,
            placement.y - self.RECT_PADDING,
            placement.width,
            placement.height + 2 * self.RECT_PADDING,
            color=color,
            opacity=self.FILL_OPACITY,
            border_color=color,
            border_width=self.BORDER_WIDTH,
        )

        page.draw_text(
            highlight.text,
            placement.x,
            text_y,
            size=self.TEXT_SIZE,
            font=fonts.bold,
            color=BLACK,
            max_width=placement.width,
        )

        if highlight.comment:
            page.draw_text(
                f"{index + 1}.",
                placement.x - self.MARKER_OFFSET,
                text_y,
                size=self.TEXT_SIZE,
                font=fonts.bold,
                color=BLACK,
            )
            page.draw_text(
                f": {highlight.comment}",
                placement.x + placement.width + self.MARKER_OFFSET,
                text_y,
                size=self.TEXT_SIZE,
                font=fonts.regular,
                color=BLACK,
            )
