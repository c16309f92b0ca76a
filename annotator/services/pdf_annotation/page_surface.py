"""
Page Surface

Thin drawing layer over a PyMuPDF page. Callers work in PDF user space with
the origin at the bottom-left corner (y grows upward); this module converts
to PyMuPDF's top-left origin.
"""

import bisect
import logging
from dataclasses import dataclass
from itertools import accumulate
from typing import Optional, Tuple

import fitz  # PyMuPDF

from .colors import RGB, BLACK

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmbeddedFont:
    """A standard (base-14) font usable for drawing and measuring text."""
    name: str  # PyMuPDF base-14 short name, e.g. "helv"
    font: fitz.Font

    def text_length(self, text: str, size: float) -> float:
        return self.font.text_length(text, fontsize=size)

    def char_lengths(self, text: str, size: float) -> Tuple[float, ...]:
        return tuple(self.font.char_lengths(text, fontsize=size))


@dataclass(frozen=True)
class FontPair:
    """Regular and bold fonts shared by every page of one rendering."""
    regular: EmbeddedFont
    bold: EmbeddedFont


REGULAR_FONT_NAME = "helv"  # Helvetica
BOLD_FONT_NAME = "hebo"  # Helvetica-Bold


def load_standard_fonts() -> FontPair:
    """Load Helvetica and Helvetica-Bold."""
    return FontPair(
        regular=EmbeddedFont(REGULAR_FONT_NAME, fitz.Font(fontname=REGULAR_FONT_NAME)),
        bold=EmbeddedFont(BOLD_FONT_NAME, fitz.Font(fontname=BOLD_FONT_NAME)),
    )


def clip_text(text: str, max_width: Optional[float], font: EmbeddedFont, size: float) -> str:
    """
    Truncate text from the end until it fits in max_width.

    A max_width of None means unclipped. A non-positive max_width clips
    everything.
    """
    if max_width is None:
        return text
    if max_width <= 0:
        return ""
    # Cumulative widths are non-decreasing
    widths = list(accumulate(font.char_lengths(text, size)))
    return text[:bisect.bisect_right(widths, max_width)]


class RenderedPage:
    """
    Drawable view of one page of an open document.

    Owned by a single pipeline run and discarded after the document is
    serialized.
    """

    def __init__(self, page: fitz.Page):
        self._page = page
        rect = page.rect
        self.width = rect.width
        self.height = rect.height

    @property
    def number(self) -> int:
        """0-indexed page number."""
        return self._page.number

    def _flip_y(self, y: float) -> float:
        return self.height - y

    def draw_rectangle(
        self,
        x: float,
        y: float,
        width: float,
        height: float,
        color: RGB,
        opacity: float = 1.0,
        border_color: Optional[RGB] = None,
        border_width: float = 0,
    ) -> None:
        """Draw a filled rectangle whose bottom-left corner is (x, y)."""
        rect = fitz.Rect(
            x,
            self._flip_y(y + height),
            x + width,
            self._flip_y(y),
        )
        self._page.draw_rect(
            rect,
            color=border_color if border_width else None,
            fill=color,
            width=border_width,
            fill_opacity=opacity,
            stroke_opacity=1,
        )

    def draw_line(
        self,
        start: Tuple[float, float],
        end: Tuple[float, float],
        thickness: float,
        color: RGB,
    ) -> None:
        """Draw a straight line between two points."""
        self._page.draw_line(
            fitz.Point(start[0], self._flip_y(start[1])),
            fitz.Point(end[0], self._flip_y(end[1])),
            color=color,
            width=thickness,
        )

    def draw_text(
        self,
        text: str,
        x: float,
        y: float,
        size: float,
        font: EmbeddedFont,
        color: RGB = BLACK,
        max_width: Optional[float] = None,
    ) -> Optional[str]:
        """
        Draw a single line of text with its baseline starting at (x, y).

        Returns:
            The text actually drawn after clipping, or None if nothing was drawn
        """
        visible = clip_text(text, max_width, font, size)
        if not visible:
            return None
        self._page.insert_text(
            fitz.Point(x, self._flip_y(y)),
            visible,
            fontsize=size,
            fontname=font.name,
            color=color,
        )
        return visible
