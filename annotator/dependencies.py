"""
FastAPI dependencies for the clients built at application startup.

Every client lives on ``app.state`` and is created and closed by the
application lifespan; handlers never reach for module-level singletons.
"""

from fastapi import Request

from annotator.config import Settings
from annotator.services.annotation_export import AnnotationExportService
from annotator.services.blob_store import BlobStore
from annotator.services.summarizer import Summarizer
from annotator.services.text_extraction import TextExtractor


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_blob_store(request: Request) -> BlobStore:
    return request.app.state.blob_store


def get_export_service(request: Request) -> AnnotationExportService:
    return request.app.state.export_service


def get_text_extractor(request: Request) -> TextExtractor:
    return request.app.state.text_extractor


def get_summarizer(request: Request) -> Summarizer:
    return request.app.state.summarizer
