"""
Annotated PDF Pipeline

Takes the bytes of an original PDF plus the document's highlights and
produces a new PDF with highlight overlays and per-page footnotes burned
into the page content.

Never blocks on a single bad highlight or page - those are logged and
skipped. Only failures that affect the whole document (unparseable input,
font setup, serialization) raise RenderError, and then no output is
produced at all.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

import fitz  # PyMuPDF

from .footnote_renderer import (
    EXPORT_FOOTNOTE_LAYOUT,
    FootnoteLayout,
    FootnoteRenderer,
    has_comments,
)
from .highlight_renderer import HighlightRenderer
from .page_surface import FontPair, RenderedPage, load_standard_fonts
from .placement import PlacementEstimator
from ..errors import RenderError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HighlightSnapshot:
    """Detached copy of a highlight, safe to use outside a DB session."""
    id: str
    text: str
    color: Optional[str]
    comment: Optional[str]
    page: int
    start: int
    end: int

    @classmethod
    def from_model(cls, highlight) -> "HighlightSnapshot":
        return cls(
            id=str(highlight.id),
            text=highlight.text,
            color=highlight.color,
            comment=highlight.comment,
            page=highlight.page,
            start=highlight.start,
            end=highlight.end,
        )


def highlights_for_page(highlights: Sequence, page_number: int) -> List:
    """Highlights whose 1-indexed page matches, in their original order."""
    return [h for h in highlights if h.page == page_number]


class AnnotatedPDFPipeline:
    """
    Renders annotated PDFs.

    Holds no per-document state, so one instance can serve concurrent
    requests.
    """

    def __init__(
        self,
        estimator: Optional[PlacementEstimator] = None,
        footnote_layout: FootnoteLayout = EXPORT_FOOTNOTE_LAYOUT,
    ):
        self.estimator = estimator or PlacementEstimator()
        self.footnote_layout = footnote_layout
        self.highlight_renderer = HighlightRenderer(estimator=self.estimator)

    def generate_annotated(
        self,
        source_bytes: bytes,
        highlights: Iterable,
        footnote_layout: Optional[FootnoteLayout] = None,
    ) -> bytes:
        """
        Render highlights and footnotes into a copy of a PDF.

        Args:
            source_bytes: Original PDF
            highlights: Highlight-like objects (page, start, end, text,
                color, comment) in document order
            footnote_layout: Overrides the pipeline's default footer layout

        Returns:
            Bytes of the annotated PDF

        Raises:
            RenderError: If the source cannot be opened or the result cannot
                be serialized
        """
        highlights = list(highlights)
        footnotes = FootnoteRenderer(footnote_layout or self.footnote_layout)

        doc = self._open_document(source_bytes)
        try:
            fonts = self._load_fonts()
            total_pages = doc.page_count
            logger.info(
                f"Rendering annotated PDF: {total_pages} pages, {len(highlights)} highlights"
            )

            for page_index in range(total_pages):
                try:
                    self._render_page(doc, page_index, total_pages, highlights, fonts, footnotes)
                except Exception as e:
                    logger.error(f"Error processing page {page_index + 1}: {e}")

            output = self._serialize(doc)
        finally:
            doc.close()

        logger.info(f"Annotated PDF rendered ({len(output)} bytes)")
        return output

    def _open_document(self, source_bytes: bytes) -> fitz.Document:
        if not source_bytes:
            raise RenderError("Source PDF is empty")

        try:
            doc = fitz.open(stream=source_bytes, filetype="pdf")
        except Exception as e:
            raise RenderError("Failed to parse source PDF", details=str(e)) from e

        if doc.is_encrypted:
            doc.close()
            raise RenderError("PDF is encrypted and cannot be annotated")

        if doc.page_count == 0:
            doc.close()
            raise RenderError("PDF has no pages")

        return doc

    def _load_fonts(self) -> FontPair:
        try:
            return load_standard_fonts()
        except Exception as e:
            raise RenderError("Failed to embed fonts", details=str(e)) from e

    def _render_page(
        self,
        doc: fitz.Document,
        page_index: int,
        total_pages: int,
        highlights: List,
        fonts: FontPair,
        footnotes: FootnoteRenderer,
    ) -> None:
        page_highlights = highlights_for_page(highlights, page_index + 1)
        if not page_highlights:
            return

        page = RenderedPage(doc[page_index])
        rendered = self.highlight_renderer.render_highlights(page, page_highlights, fonts)
        logger.debug(
            f"Page {page_index + 1}: {rendered}/{len(page_highlights)} highlights rendered"
        )

        if has_comments(page_highlights):
            footnotes.render_footnotes(page, page_highlights, page_index, total_pages, fonts)

    def _serialize(self, doc: fitz.Document) -> bytes:
        # No object streams, no page changes, form fields left as they are
        try:
            return doc.tobytes(garbage=0, deflate=True, use_objstms=0)
        except Exception as e:
            raise RenderError("Failed to serialize annotated PDF", details=str(e)) from e
