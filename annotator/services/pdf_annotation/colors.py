"""
Highlight Colors

Named highlight colors and their normalized RGB values. The same
enumeration is used for persisted highlights and for rendering.
"""

from enum import Enum
from typing import Optional, Tuple

RGB = Tuple[float, float, float]


class HighlightColor(str, Enum):
    """Colors a highlight may be stored with."""
    YELLOW = "yellow"
    BLUE = "blue"
    GREEN = "green"
    RED = "red"
    PURPLE = "purple"
    PINK = "pink"
    ORANGE = "orange"


DEFAULT_COLOR = HighlightColor.YELLOW

# RGB, 0.0-1.0
COLOR_VALUES = {
    HighlightColor.YELLOW.value: (1.0, 1.0, 0.0),
    HighlightColor.BLUE.value: (0.0, 0.0, 1.0),
    HighlightColor.GREEN.value: (0.0, 1.0, 0.0),
    HighlightColor.RED.value: (1.0, 0.0, 0.0),
    HighlightColor.PURPLE.value: (0.5, 0.0, 0.5),
    HighlightColor.PINK.value: (1.0, 0.4, 0.7),
    HighlightColor.ORANGE.value: (1.0, 0.6, 0.0),
}

BLACK: RGB = (0.0, 0.0, 0.0)


def resolve_color(name: Optional[str]) -> RGB:
    """
    Map a color name to its RGB triple.

    Unknown, empty or missing names resolve to yellow.
    """
    if isinstance(name, HighlightColor):
        name = name.value
    if not isinstance(name, str):
        return COLOR_VALUES[DEFAULT_COLOR.value]
    return COLOR_VALUES.get(name.strip(), COLOR_VALUES[DEFAULT_COLOR.value])
