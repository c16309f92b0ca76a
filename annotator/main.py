"""
FastAPI application entry point for the PDF annotator.

Provides REST API for:
- PDF upload with text extraction and summaries
- Highlight management
- Annotated PDF generation and export
- Signed reads of locally stored PDFs
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from annotator import __version__
from annotator.config import Settings, get_settings
from annotator.db import create_db_engine, create_session_factory, init_schema
from annotator.services.annotation_export import AnnotationExportService
from annotator.services.blob_store import BlobStore, create_blob_store
from annotator.services.summarizer import Summarizer, create_summarizer
from annotator.services.text_extraction import TextExtractor


# Configure logging
logging.basicConfig(
    level=getattr(logging, get_settings().log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[
        logging.StreamHandler(),
    ]
)
logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    blob_store: Optional[BlobStore] = None,
    summarizer: Optional[Summarizer] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Settings to use instead of the environment
        blob_store: Pre-built blob store (tests); created from settings otherwise
        summarizer: Pre-built summarizer (tests); created from settings otherwise

    Returns:
        Configured FastAPI app whose clients are built by its lifespan
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan events."""
        # Startup
        logger.info("Starting annotator application...")

        engine = create_db_engine(settings.database_url, echo=settings.debug)
        try:
            init_schema(engine)
            logger.info("Database schema initialized successfully")
        except Exception as e:
            logger.error(f"Failed to initialize database schema: {e}")
            raise

        store = blob_store or create_blob_store(settings)
        logger.info(f"Using {type(store).__name__} for PDF storage")

        app.state.settings = settings
        app.state.engine = engine
        app.state.session_factory = create_session_factory(engine)
        app.state.blob_store = store
        app.state.text_extractor = TextExtractor()
        app.state.summarizer = summarizer or create_summarizer(settings)
        app.state.export_service = AnnotationExportService(
            store,
            url_ttl_seconds=settings.signed_url_ttl_seconds,
        )

        logger.info("Annotator application started")
        yield

        # Shutdown
        logger.info("Shutting down annotator application...")
        store.close()
        engine.dispose()

    app = FastAPI(
        title="PDF Annotator",
        description="Upload PDFs, highlight and comment on them, and export annotated copies",
        version=__version__,
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Health check endpoint
    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "version": __version__,
            "storage": settings.storage_backend,
        }

    from annotator.routers import blobs, pdfs
    app.include_router(pdfs.router, prefix="/api/pdfs", tags=["pdfs"])
    app.include_router(blobs.router, tags=["blobs"])

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "annotator.main:app",
        host="0.0.0.0",
        port=8080,
        reload=get_settings().debug,
    )
