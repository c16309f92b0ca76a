"""
PDF Annotation Service

Burns user highlights and per-page footnotes into a copy of a PDF.

Components:
- resolve_color: Maps highlight color names to RGB
- PlacementEstimator: Approximates on-page rectangles from character offsets
- RenderedPage: Bottom-left-origin drawing surface over a PyMuPDF page
- HighlightRenderer: Draws highlight boxes, highlighted text and markers
- FootnoteRenderer: Draws the footnote block and page stamp
- AnnotatedPDFPipeline: Main orchestrator from source bytes to output bytes
"""

from .colors import HighlightColor, resolve_color, COLOR_VALUES, DEFAULT_COLOR
from .placement import Placement, PlacementEstimator
from .page_surface import EmbeddedFont, FontPair, RenderedPage, clip_text, load_standard_fonts
from .highlight_renderer import HighlightRenderer
from .footnote_renderer import (
    FootnoteLayout,
    FootnoteRenderer,
    EXPORT_FOOTNOTE_LAYOUT,
    PERSISTED_FOOTNOTE_LAYOUT,
    has_comments,
)
from .pipeline import AnnotatedPDFPipeline, HighlightSnapshot, highlights_for_page

__all__ = [
    "HighlightColor",
    "resolve_color",
    "COLOR_VALUES",
    "DEFAULT_COLOR",
    "Placement",
    "PlacementEstimator",
    "EmbeddedFont",
    "FontPair",
    "RenderedPage",
    "clip_text",
    "load_standard_fonts",
    "HighlightRenderer",
    "FootnoteLayout",
    "FootnoteRenderer",
    "EXPORT_FOOTNOTE_LAYOUT",
    "PERSISTED_FOOTNOTE_LAYOUT",
    "has_comments",
    "AnnotatedPDFPipeline",
    "HighlightSnapshot",
    "highlights_for_page",
]
