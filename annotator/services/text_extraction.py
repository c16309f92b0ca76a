"""
Text extraction for uploaded PDFs.

Uses PyMuPDF to read the page count and the plain text of every page.
"""

import logging
from dataclasses import dataclass

import fitz  # PyMuPDF

from .errors import RenderError

logger = logging.getLogger(__name__)

PAGE_SEPARATOR = "\n\n"


@dataclass
class ExtractedText:
    """Plain text and page count of a PDF."""
    text: str
    page_count: int


class TextExtractor:
    """Extracts plain text from PDF bytes."""

    def extract(self, pdf_bytes: bytes) -> ExtractedText:
        """
        Extract text from every page.

        Raises:
            RenderError: If the bytes are not a readable PDF
        """
        if not pdf_bytes:
            raise RenderError("Uploaded PDF is empty")

        try:
            doc = fitz.open(stream=pdf_bytes, filetype="pdf")
        except Exception as e:
            raise RenderError("Failed to parse PDF", details=str(e)) from e

        try:
            if doc.is_encrypted:
                raise RenderError("PDF is encrypted and cannot be read")
            if doc.page_count == 0:
                raise RenderError("PDF has no pages")
            page_texts = [page.get_text("text") for page in doc]
            page_count = doc.page_count
        except RenderError:
            raise
        except Exception as e:
            raise RenderError("Failed to extract text from PDF", details=str(e)) from e
        finally:
            doc.close()

        text = PAGE_SEPARATOR.join(t.strip() for t in page_texts)
        logger.info(f"Extracted {len(text)} characters from {page_count} pages")
        return ExtractedText(text=text, page_count=page_count)
