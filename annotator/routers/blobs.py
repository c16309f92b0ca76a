"""
Signed blob reads for the local blob store.

GET /blobs/{key} serves a stored PDF when the ``expires`` and ``signature``
query parameters match the URL issued by LocalBlobStore.signed_url.
"""

import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response

from annotator.dependencies import get_blob_store
from annotator.services.blob_store import BlobStore, LocalBlobStore, PDF_CONTENT_TYPE
from annotator.services.errors import AnnotatorError

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/blobs/{key:path}")
async def read_blob(
    key: str,
    expires: int = Query(...),
    signature: str = Query(...),
    blob_store: BlobStore = Depends(get_blob_store),
):
    """Serve a blob through a signed URL."""
    if not isinstance(blob_store, LocalBlobStore):
        raise HTTPException(status_code=404, detail="Not found")

    if not blob_store.verify_signature(key, expires, signature):
        logger.info(f"Rejected blob read with invalid or expired signature: {key}")
        raise HTTPException(status_code=403, detail="Invalid or expired signature")

    try:
        content = await asyncio.to_thread(blob_store.get, key)
    except AnnotatorError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())

    return Response(
        content=content,
        media_type=PDF_CONTENT_TYPE,
        headers={"Content-Disposition": "inline"},
    )
