"""
Document and highlight operations.

Handles:
- Upload: store original bytes, extract text, summarize, create the record
- Owner-scoped lookup, listing and deletion (with blob cleanup)
- Adding, editing and removing highlights
"""

import logging
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy.orm import Session
from werkzeug.utils import secure_filename

from annotator.db import Document, Highlight
from .blob_store import BlobStore, epoch_millis
from .errors import (
    BlobNotFoundError,
    DocumentNotFoundError,
    HighlightNotFoundError,
    InvalidHighlightError,
)
from .pdf_annotation import DEFAULT_COLOR
from .summarizer import Summarizer
from .text_extraction import TextExtractor

logger = logging.getLogger(__name__)


DEFAULT_UPLOAD_NAME = "document.pdf"


def original_storage_key(user_id: str, filename: str, uploaded_at: datetime) -> str:
    """
    Blob key for an uploaded original.

    The client filename is reduced to a safe base name; the document title
    keeps the name as uploaded.
    """
    safe_name = secure_filename(filename or "") or DEFAULT_UPLOAD_NAME
    return f"pdfs/{secure_filename(user_id) or 'user'}/{epoch_millis(uploaded_at)}-{safe_name}"


def _parse_uuid(value, not_found: type, label: str) -> UUID:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        raise not_found(f"{label} not found") from None


def create_document(
    db: Session,
    blob_store: BlobStore,
    extractor: TextExtractor,
    summarizer: Summarizer,
    user_id: str,
    filename: str,
    data: bytes,
    now: Optional[datetime] = None,
) -> Document:
    """
    Store an uploaded PDF and create its document record.

    The blob is written first; if the PDF then turns out to be unreadable
    the blob is removed again and the RenderError propagates.
    """
    uploaded_at = now or datetime.utcnow()
    key = original_storage_key(user_id, filename, uploaded_at)

    logger.info(f"Uploading file with key: {key}")
    blob_store.put(key, data)

    try:
        extracted = extractor.extract(data)
    except Exception:
        _delete_quietly(blob_store, key)
        raise

    summary = summarizer.summarize(extracted.text)

    document = Document(
        user_id=user_id,
        title=filename,
        size=len(data),
        page_count=extracted.page_count,
        text_content=extracted.text,
        summary=summary,
        storage_path=key,
        upload_date=uploaded_at,
    )
    db.add(document)
    db.commit()
    db.refresh(document)

    logger.info(f"Created document {document.id} ({filename}, {len(data)} bytes, {extracted.page_count} pages)")
    return document


def list_documents(db: Session, user_id: str) -> List[Document]:
    """All documents of a user, newest first."""
    return (
        db.query(Document)
        .filter(Document.user_id == user_id)
        .order_by(Document.upload_date.desc())
        .all()
    )


def get_document(db: Session, document_id, user_id: str) -> Document:
    """Fetch a document owned by the user."""
    doc_uuid = _parse_uuid(document_id, DocumentNotFoundError, "PDF")
    document = (
        db.query(Document)
        .filter(Document.id == doc_uuid, Document.user_id == user_id)
        .first()
    )
    if not document:
        raise DocumentNotFoundError("PDF not found")
    return document


def _delete_quietly(blob_store: BlobStore, key: str) -> None:
    try:
        blob_store.delete(key)
    except BlobNotFoundError:
        logger.warning(f"Blob already gone: {key}")


def delete_document(db: Session, blob_store: BlobStore, document: Document) -> None:
    """Delete a document, its highlights and its stored PDFs."""
    for key in (document.storage_path, document.annotated_storage_path):
        if key:
            logger.info(f"Deleting blob: {key}")
            _delete_quietly(blob_store, key)

    db.delete(document)
    db.commit()
    logger.info(f"Deleted document {document.id}")


def record_annotated_version(db: Session, document: Document, storage_path: str, generated_at: datetime) -> Document:
    """Point the document at its newest annotated rendering."""
    document.annotated_storage_path = storage_path
    document.annotated_generated_at = generated_at
    db.commit()
    db.refresh(document)
    return document


def add_highlight(
    db: Session,
    document: Document,
    text: str,
    page: int,
    start: int,
    end: int,
    color: Optional[str] = None,
    comment: Optional[str] = None,
) -> Highlight:
    """Append a highlight to a document."""
    if not text:
        raise InvalidHighlightError("Highlight text is required")
    if page < 1 or page > document.page_count:
        raise InvalidHighlightError(
            f"Page {page} out of range (document has {document.page_count} pages)"
        )

    next_position = max((h.position for h in document.highlights), default=-1) + 1
    highlight = Highlight(
        text=text,
        color=color or DEFAULT_COLOR.value,
        comment=comment,
        page=page,
        start=start,
        end=end,
        position=next_position,
        created_at=datetime.utcnow(),
    )
    document.highlights.append(highlight)
    db.commit()
    db.refresh(highlight)

    logger.info(f"Added highlight {highlight.id} to document {document.id} (page {page})")
    return highlight


def _find_highlight(document: Document, highlight_id) -> Highlight:
    hl_uuid = _parse_uuid(highlight_id, HighlightNotFoundError, "Highlight")
    for highlight in document.highlights:
        if highlight.id == hl_uuid:
            return highlight
    raise HighlightNotFoundError("Highlight not found")


def update_highlight(
    db: Session,
    document: Document,
    highlight_id,
    color: Optional[str] = None,
    comment: Optional[str] = None,
) -> Highlight:
    """
    Change a highlight's color and/or comment.

    A None color keeps the current color; a None comment keeps the current
    comment (an empty string clears it).
    """
    highlight = _find_highlight(document, highlight_id)
    if color:
        highlight.color = color
    if comment is not None:
        highlight.comment = comment
    db.commit()
    db.refresh(highlight)
    return highlight


def delete_highlight(db: Session, document: Document, highlight_id) -> UUID:
    """Remove a highlight from a document."""
    highlight = _find_highlight(document, highlight_id)
    document.highlights.remove(highlight)
    db.commit()
    logger.info(f"Deleted highlight {highlight.id} (remaining: {len(document.highlights)})")
    return highlight.id
