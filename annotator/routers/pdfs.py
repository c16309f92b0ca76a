"""
PDF router for uploads, highlights and annotated exports.

Endpoints:
- POST /upload - Upload a PDF
- GET / - List the caller's PDFs
- GET /{pdf_id} - Get one PDF with a signed URL
- DELETE /{pdf_id} - Delete a PDF, its highlights and stored files
- POST /{pdf_id}/highlights - Add a highlight
- PUT /{pdf_id}/highlights/{highlight_id} - Change color/comment
- DELETE /{pdf_id}/highlights/{highlight_id} - Remove a highlight
- POST /{pdf_id}/generate-annotated - Render and store the annotated version
- GET /{pdf_id}/export/fresh (also /export) - Render from the original now
- GET /{pdf_id}/export/annotated - Download the stored annotated version
"""

import asyncio
import logging
from datetime import datetime
from typing import List, Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from fastapi.responses import Response
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from annotator.config import Settings
from annotator.db import Document, Highlight, get_db
from annotator.dependencies import (
    get_app_settings,
    get_blob_store,
    get_export_service,
    get_summarizer,
    get_text_extractor,
)
from annotator.security import get_current_user_id
from annotator.services import document_service
from annotator.services.annotation_export import (
    AnnotationExportService,
    export_filename,
    snapshot_highlights,
)
from annotator.services.blob_store import BlobStore
from annotator.services.errors import AnnotatorError
from annotator.services.pdf_annotation import HighlightColor
from annotator.services.summarizer import Summarizer
from annotator.services.text_extraction import TextExtractor

logger = logging.getLogger(__name__)

router = APIRouter()

PDF_CONTENT_TYPE = "application/pdf"


# =============================================================================
# Request / Response Models
# =============================================================================

class HighlightCreate(BaseModel):
    """Request model for adding a highlight."""
    text: str = Field(min_length=1)
    color: HighlightColor = HighlightColor.YELLOW
    comment: Optional[str] = None
    page: int = Field(ge=1)
    start: int
    end: int


class HighlightUpdate(BaseModel):
    """Request model for editing a highlight."""
    color: Optional[HighlightColor] = None
    comment: Optional[str] = None


class HighlightResponse(BaseModel):
    id: str
    text: str
    color: str
    comment: Optional[str] = None
    page: int
    start: int
    end: int
    createdAt: Optional[str] = None


class AnnotatedVersionResponse(BaseModel):
    storagePath: str
    generatedAt: Optional[str] = None
    url: Optional[str] = None


class DocumentResponse(BaseModel):
    """Response model for PDF details."""
    id: str
    title: str
    size: int
    pageCount: int
    textContent: Optional[str] = None
    summary: Optional[str] = None
    storagePath: Optional[str] = None
    uploadDate: Optional[str] = None
    url: Optional[str] = None
    error: Optional[str] = None
    highlights: List[HighlightResponse] = Field(default_factory=list)
    annotatedVersion: Optional[AnnotatedVersionResponse] = None
    createdAt: Optional[str] = None
    updatedAt: Optional[str] = None


class UploadResponse(BaseModel):
    message: str
    pdf: DocumentResponse


class GenerateAnnotatedResponse(BaseModel):
    message: str
    url: str
    pdf: DocumentResponse


class MessageResponse(BaseModel):
    message: str


class DeleteHighlightResponse(BaseModel):
    message: str
    highlightId: str


# =============================================================================
# Helper Functions
# =============================================================================

def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _highlight_response(highlight: Highlight) -> HighlightResponse:
    return HighlightResponse(
        id=str(highlight.id),
        text=highlight.text,
        color=highlight.color,
        comment=highlight.comment,
        page=highlight.page,
        start=highlight.start,
        end=highlight.end,
        createdAt=_isoformat(highlight.created_at),
    )


def _document_response(
    document: Document,
    blob_store: Optional[BlobStore] = None,
    url: Optional[str] = None,
    error: Optional[str] = None,
    url_ttl_seconds: int = 3600,
) -> DocumentResponse:
    annotated = None
    if document.has_annotated_version:
        annotated_url = None
        if blob_store is not None:
            try:
                annotated_url = blob_store.signed_url(document.annotated_storage_path, url_ttl_seconds)
            except AnnotatorError as e:
                logger.error(f"Error generating signed URL for {document.annotated_storage_path}: {e}")
        annotated = AnnotatedVersionResponse(
            storagePath=document.annotated_storage_path,
            generatedAt=_isoformat(document.annotated_generated_at),
            url=annotated_url,
        )

    return DocumentResponse(
        id=str(document.id),
        title=document.title,
        size=document.size,
        pageCount=document.page_count,
        textContent=document.text_content,
        summary=document.summary,
        storagePath=document.storage_path,
        uploadDate=_isoformat(document.upload_date),
        url=url,
        error=error,
        highlights=[_highlight_response(h) for h in document.highlights],
        annotatedVersion=annotated,
        createdAt=_isoformat(document.created_at),
        updatedAt=_isoformat(document.updated_at),
    )


def _http_error(error: AnnotatorError, status_code: Optional[int] = None) -> HTTPException:
    """Translate a service error into the API error envelope."""
    return HTTPException(status_code=status_code or error.status_code, detail=error.to_detail())


def _load_document(db: Session, pdf_id: str, user_id: str) -> Document:
    try:
        return document_service.get_document(db, pdf_id, user_id)
    except AnnotatorError as e:
        logger.info(f"PDF not found with ID: {pdf_id}")
        raise _http_error(e)


def _content_disposition(filename: str) -> str:
    """
    Attachment header with an ASCII fallback name and the UTF-8 name (RFC 6266).

    Header values are sent as latin-1, so non-ASCII names only travel in
    the percent-encoded filename* parameter.
    """
    fallback = "".join(c if " " <= c < "\x7f" and c not in '"\\' else "_" for c in filename)
    return f'attachment; filename="{fallback}"; filename*=UTF-8\'\'{quote(filename, safe="")}'


def _pdf_attachment(content: bytes, title: str) -> Response:
    return Response(
        content=content,
        media_type=PDF_CONTENT_TYPE,
        headers={"Content-Disposition": _content_disposition(export_filename(title))},
    )


# =============================================================================
# Documents
# =============================================================================

@router.post("/upload", response_model=UploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_pdf(
    pdf: Optional[UploadFile] = File(None),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
    blob_store: BlobStore = Depends(get_blob_store),
    extractor: TextExtractor = Depends(get_text_extractor),
    summarizer: Summarizer = Depends(get_summarizer),
):
    """
    Upload a PDF.

    The original is stored in the blob store, its text extracted and
    summarized, and a document record created.
    """
    if pdf is None or not pdf.filename:
        raise HTTPException(status_code=400, detail="No file uploaded")

    is_pdf = pdf.content_type == PDF_CONTENT_TYPE or pdf.filename.lower().endswith(".pdf")
    if not is_pdf:
        raise HTTPException(status_code=400, detail="Only PDF files are allowed")

    data = await pdf.read()
    if len(data) > settings.max_upload_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File too large: {len(data)} bytes, max allowed {settings.max_upload_bytes} bytes",
        )

    try:
        document = await asyncio.to_thread(
            document_service.create_document,
            db,
            blob_store,
            extractor,
            summarizer,
            user_id,
            pdf.filename,
            data,
        )
    except AnnotatorError as e:
        logger.error(f"Error uploading PDF: {e}")
        # Unreadable uploads are reported as bad requests
        status_code = 400 if e.error_code == "RENDER_FAILED" else None
        raise _http_error(e, status_code)

    url = await asyncio.to_thread(
        blob_store.signed_url, document.storage_path, settings.signed_url_ttl_seconds
    )
    return UploadResponse(
        message="PDF uploaded successfully",
        pdf=_document_response(document, blob_store, url=url, url_ttl_seconds=settings.signed_url_ttl_seconds),
    )


@router.get("", response_model=List[DocumentResponse])
async def list_pdfs(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
    blob_store: BlobStore = Depends(get_blob_store),
):
    """
    List the caller's PDFs with fresh signed URLs.

    A document whose URL cannot be generated is still listed, with
    ``url`` null and an ``error`` message.
    """
    documents = document_service.list_documents(db, user_id)
    logger.info(f"Found {len(documents)} PDFs for user {user_id}")

    results = []
    for document in documents:
        url = None
        error = None
        if not document.storage_path:
            logger.warning(f"PDF {document.id} has no storage path")
            error = "Storage path missing"
        else:
            try:
                url = blob_store.signed_url(document.storage_path, settings.signed_url_ttl_seconds)
            except AnnotatorError as e:
                logger.error(f"Error processing PDF {document.id}: {e}")
                error = "Failed to generate signed URL"
        results.append(_document_response(
            document, blob_store, url=url, error=error, url_ttl_seconds=settings.signed_url_ttl_seconds
        ))
    return results


@router.get("/{pdf_id}", response_model=DocumentResponse)
async def get_pdf(
    pdf_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
    blob_store: BlobStore = Depends(get_blob_store),
):
    """Get one PDF with a signed read URL."""
    document = _load_document(db, pdf_id, user_id)

    if not document.storage_path:
        raise HTTPException(
            status_code=400,
            detail={
                "message": "PDF has no storage path",
                "error": "STORAGE_PATH_MISSING",
                "pdf": _document_response(document).model_dump(),
            },
        )

    try:
        url = blob_store.signed_url(document.storage_path, settings.signed_url_ttl_seconds)
    except AnnotatorError as e:
        logger.error(f"Error generating signed URL for {document.storage_path}: {e}")
        raise HTTPException(
            status_code=500,
            detail={
                "message": "Failed to generate signed URL",
                "error": e.error_code,
                "pdf": _document_response(document).model_dump(),
            },
        )

    return _document_response(document, blob_store, url=url, url_ttl_seconds=settings.signed_url_ttl_seconds)


@router.delete("/{pdf_id}", response_model=MessageResponse)
async def delete_pdf(
    pdf_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
):
    """Delete a PDF together with its highlights and stored files."""
    document = _load_document(db, pdf_id, user_id)
    try:
        await asyncio.to_thread(document_service.delete_document, db, blob_store, document)
    except AnnotatorError as e:
        logger.error(f"Error deleting PDF {pdf_id}: {e}")
        raise _http_error(e)
    return MessageResponse(message="PDF deleted successfully")


# =============================================================================
# Highlights
# =============================================================================

@router.post(
    "/{pdf_id}/highlights",
    response_model=HighlightResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_highlight(
    pdf_id: str,
    request: HighlightCreate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Add a highlight to a PDF."""
    document = _load_document(db, pdf_id, user_id)
    try:
        highlight = document_service.add_highlight(
            db,
            document,
            text=request.text,
            page=request.page,
            start=request.start,
            end=request.end,
            color=request.color.value,
            comment=request.comment,
        )
    except AnnotatorError as e:
        raise _http_error(e)
    return _highlight_response(highlight)


@router.put("/{pdf_id}/highlights/{highlight_id}", response_model=HighlightResponse)
async def update_highlight(
    pdf_id: str,
    highlight_id: str,
    request: HighlightUpdate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Change a highlight's color and/or comment."""
    document = _load_document(db, pdf_id, user_id)
    try:
        highlight = document_service.update_highlight(
            db,
            document,
            highlight_id,
            color=request.color.value if request.color else None,
            comment=request.comment,
        )
    except AnnotatorError as e:
        logger.info(f"Highlight not found: {highlight_id}")
        raise _http_error(e)
    return _highlight_response(highlight)


@router.delete("/{pdf_id}/highlights/{highlight_id}", response_model=DeleteHighlightResponse)
async def delete_highlight(
    pdf_id: str,
    highlight_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Remove a highlight from a PDF."""
    document = _load_document(db, pdf_id, user_id)
    try:
        deleted_id = document_service.delete_highlight(db, document, highlight_id)
    except AnnotatorError as e:
        logger.info(f"No highlight was removed: {highlight_id}")
        raise _http_error(e)
    return DeleteHighlightResponse(message="Highlight deleted successfully", highlightId=str(deleted_id))


# =============================================================================
# Annotated Exports
# =============================================================================

@router.post("/{pdf_id}/generate-annotated", response_model=GenerateAnnotatedResponse)
async def generate_annotated_pdf(
    pdf_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
    blob_store: BlobStore = Depends(get_blob_store),
    export_service: AnnotationExportService = Depends(get_export_service),
):
    """
    Render the annotated PDF and store it as the document's annotated version.

    Each call writes a new timestamped file; the document points at the
    most recent one.
    """
    logger.info(f"Generating annotated PDF for ID: {pdf_id}")
    document = _load_document(db, pdf_id, user_id)
    highlights = snapshot_highlights(document)

    try:
        version = await asyncio.to_thread(export_service.generate_and_store, document, highlights)
    except AnnotatorError as e:
        logger.error(f"Error generating annotated PDF for {pdf_id}: {e}")
        raise _http_error(e)

    logger.info(f"Annotated PDF for {pdf_id} stored ({version.size} bytes)")
    document = document_service.record_annotated_version(
        db, document, version.storage_path, version.generated_at
    )
    return GenerateAnnotatedResponse(
        message="Annotated PDF generated successfully",
        url=version.url,
        pdf=_document_response(document, blob_store, url_ttl_seconds=settings.signed_url_ttl_seconds),
    )


@router.get("/{pdf_id}/export/fresh")
@router.get("/{pdf_id}/export")
async def export_fresh_pdf(
    pdf_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    export_service: AnnotationExportService = Depends(get_export_service),
):
    """
    Render the original PDF with the current highlights and download it.

    Nothing is stored; the persisted annotated version is not used.
    """
    logger.info(f"Starting PDF export for ID: {pdf_id}")
    document = _load_document(db, pdf_id, user_id)
    highlights = snapshot_highlights(document)

    try:
        content = await asyncio.to_thread(export_service.render_fresh, document, highlights)
    except AnnotatorError as e:
        logger.error(f"Error exporting PDF {pdf_id}: {e}")
        raise _http_error(e)

    logger.info(f"PDF export completed ({len(content)} bytes)")
    return _pdf_attachment(content, document.title)


@router.get("/{pdf_id}/export/annotated")
async def export_annotated_pdf(
    pdf_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    export_service: AnnotationExportService = Depends(get_export_service),
):
    """Download the stored annotated version unchanged."""
    document = _load_document(db, pdf_id, user_id)

    try:
        content = await asyncio.to_thread(export_service.load_persisted, document)
    except AnnotatorError as e:
        logger.error(f"Error exporting annotated PDF {pdf_id}: {e}")
        raise _http_error(e)

    return _pdf_attachment(content, document.title)
