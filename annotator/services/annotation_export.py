"""
Annotation export service.

Single entry point for the three ways a client can get an annotated PDF:
- render_fresh: render from the original on every call, nothing stored
- generate_and_store: render once and store the result as the document's
  annotated version
- load_persisted: return the stored annotated version unchanged
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from .blob_store import BlobStore, epoch_millis
from .errors import NoAnnotatedVersionError, StoragePathMissingError
from .pdf_annotation import (
    AnnotatedPDFPipeline,
    EXPORT_FOOTNOTE_LAYOUT,
    PERSISTED_FOOTNOTE_LAYOUT,
    HighlightSnapshot,
)

logger = logging.getLogger(__name__)


@dataclass
class AnnotatedVersion:
    """A freshly stored annotated rendering."""
    storage_path: str
    generated_at: datetime
    url: str
    size: int


def annotated_storage_key(document_id, generated_at: datetime) -> str:
    """Blob key for a generated rendering; unique per millisecond."""
    return f"annotated/{document_id}/{epoch_millis(generated_at)}-annotated.pdf"


def export_filename(title: str) -> str:
    """Download name for an annotated export, e.g. report.pdf -> report_annotated.pdf."""
    return f"{(title or 'document').replace('.pdf', '', 1)}_annotated.pdf"


def snapshot_highlights(document) -> List[HighlightSnapshot]:
    """Copy a document's highlights so rendering does not touch the DB session."""
    return [HighlightSnapshot.from_model(h) for h in document.highlights]


class AnnotationExportService:
    """Renders, stores and retrieves annotated PDFs for documents."""

    def __init__(
        self,
        blob_store: BlobStore,
        pipeline: Optional[AnnotatedPDFPipeline] = None,
        url_ttl_seconds: int = 3600,
    ):
        self.blob_store = blob_store
        self.pipeline = pipeline or AnnotatedPDFPipeline()
        self.url_ttl_seconds = url_ttl_seconds

    def _load_original(self, document) -> bytes:
        if not document.storage_path:
            logger.error(f"PDF has no storage path: {document.id}")
            raise StoragePathMissingError("PDF has no storage path")
        source_bytes = self.blob_store.get(document.storage_path)
        logger.info(f"Loaded original PDF {document.storage_path} ({len(source_bytes)} bytes)")
        return source_bytes

    def render_fresh(self, document, highlights: Optional[List[HighlightSnapshot]] = None) -> bytes:
        """
        Render the original PDF with the document's current highlights.

        Args:
            document: Document row (or snapshot) with storage_path and highlights
            highlights: Pre-taken snapshot of the highlights, if any

        Returns:
            Annotated PDF bytes; nothing is stored
        """
        if highlights is None:
            highlights = snapshot_highlights(document)
        source_bytes = self._load_original(document)
        return self.pipeline.generate_annotated(
            source_bytes,
            highlights,
            footnote_layout=EXPORT_FOOTNOTE_LAYOUT,
        )

    def generate_and_store(
        self,
        document,
        highlights: Optional[List[HighlightSnapshot]] = None,
        now: Optional[datetime] = None,
    ) -> AnnotatedVersion:
        """
        Render the annotated PDF and store it under a new key.

        The caller records the returned version on the document. If that
        never happens the stored blob is simply left behind.
        """
        if highlights is None:
            highlights = snapshot_highlights(document)
        source_bytes = self._load_original(document)
        output = self.pipeline.generate_annotated(
            source_bytes,
            highlights,
            footnote_layout=PERSISTED_FOOTNOTE_LAYOUT,
        )

        generated_at = now or datetime.utcnow()
        key = annotated_storage_key(document.id, generated_at)
        self.blob_store.put(key, output)
        url = self.blob_store.signed_url(key, expires_in=self.url_ttl_seconds)

        logger.info(f"Stored annotated version of {document.id} at {key}")
        return AnnotatedVersion(
            storage_path=key,
            generated_at=generated_at,
            url=url,
            size=len(output),
        )

    def load_persisted(self, document) -> bytes:
        """Bytes of the stored annotated version, unchanged."""
        if not document.has_annotated_version:
            raise NoAnnotatedVersionError("No annotated version available. Please generate it first.")
        return self.blob_store.get(document.annotated_storage_path)
