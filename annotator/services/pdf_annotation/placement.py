"""
Highlight Placement

Converts a highlight's character offsets into an approximate rectangle on
the page. Coordinates are PDF user space with the origin at the bottom-left.

The estimate is a fixed linear scale of the start/end offsets; it does not
look at glyph positions. Renderers only call PlacementEstimator.estimate, so
a layout-aware estimator can replace this one.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class Placement:
    """Where a highlight is drawn on its page."""
    x: float
    y: float
    width: float
    height: float


class PlacementEstimator:
    """Linear offset-to-coordinate estimator."""

    LEFT_MARGIN = 50
    SCALE = 0.1  # Page units per character offset
    LINE_HEIGHT = 20

    def estimate(self, highlight, page_height: float) -> Placement:
        """
        Estimate the rectangle for a highlight.

        Args:
            highlight: Object with integer ``start`` and ``end`` offsets
            page_height: Height of the page in points

        Returns:
            Placement; width may be zero or negative when end <= start
        """
        start = highlight.start
        end = highlight.end
        return Placement(
            x=self.LEFT_MARGIN + start * self.SCALE,
            y=page_height - start * self.SCALE,
            width=(end - start) * self.SCALE,
            height=self.LINE_HEIGHT,
        )
