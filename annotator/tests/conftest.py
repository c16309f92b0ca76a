"""
Shared fixtures for annotator tests.
"""

from dataclasses import dataclass
from typing import Optional

import fitz  # PyMuPDF
import pytest
from fastapi.testclient import TestClient

from annotator.config import Settings
from annotator.main import create_app
from annotator.security import create_access_token
from annotator.services.blob_store import LocalBlobStore
from annotator.services.pdf_annotation import load_standard_fonts
from annotator.services.summarizer import NullSummarizer

JWT_SECRET = "test-jwt-secret"


def make_pdf(page_count: int = 2, width: float = 612, height: float = 792, text: str = "Sample page") -> bytes:
    """Build a small PDF with one line of text per page."""
    doc = fitz.open()
    for i in range(page_count):
        page = doc.new_page(width=width, height=height)
        page.insert_text(fitz.Point(72, 72), f"{text} {i + 1}", fontsize=12)
    data = doc.tobytes()
    doc.close()
    return data


@dataclass
class FakeHighlight:
    """Highlight-like object accepted by the renderers and the pipeline."""
    text: str
    page: int = 1
    start: int = 0
    end: int = 100
    color: Optional[str] = "yellow"
    comment: Optional[str] = None
    id: str = "hl"


class RecordingPage:
    """Stands in for RenderedPage and records every draw call."""

    def __init__(self, width: float = 612, height: float = 792, fail_on_text: Optional[str] = None):
        self.width = width
        self.height = height
        self.fail_on_text = fail_on_text
        self.rectangles = []
        self.lines = []
        self.texts = []

    def draw_rectangle(self, x, y, width, height, color, opacity=1.0, border_color=None, border_width=0):
        self.rectangles.append({
            "x": x, "y": y, "width": width, "height": height, "color": color,
            "opacity": opacity, "border_color": border_color, "border_width": border_width,
        })

    def draw_line(self, start, end, thickness, color):
        self.lines.append({"start": start, "end": end, "thickness": thickness, "color": color})

    def draw_text(self, text, x, y, size, font, color=(0.0, 0.0, 0.0), max_width=None):
        if self.fail_on_text is not None and self.fail_on_text in text:
            raise RuntimeError(f"cannot draw {text!r}")
        self.texts.append({
            "text": text, "x": x, "y": y, "size": size, "font": font.name,
            "color": color, "max_width": max_width,
        })
        return text

    def text_values(self):
        return [t["text"] for t in self.texts]


@pytest.fixture
def pdf_bytes():
    return make_pdf(page_count=2)


@pytest.fixture(scope="session")
def fonts():
    return load_standard_fonts()


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url="sqlite://",
        storage_backend="local",
        storage_dir=tmp_path / "blobs",
        public_base_url="http://testserver",
        blob_signing_secret="test-signing-secret",
        gemini_api_key="",
        jwt_secret=JWT_SECRET,
        max_upload_bytes=1024 * 1024,
    )


@pytest.fixture
def blob_store(settings):
    return LocalBlobStore(
        root_dir=settings.storage_dir,
        base_url=settings.public_base_url,
        signing_secret=settings.blob_signing_secret,
    )


@pytest.fixture
def client(settings, blob_store):
    app = create_app(settings=settings, blob_store=blob_store, summarizer=NullSummarizer())
    with TestClient(app) as test_client:
        yield test_client


def auth_headers(user_id: str = "user-1") -> dict:
    return {"Authorization": f"Bearer {create_access_token(user_id, JWT_SECRET)}"}


@pytest.fixture
def headers():
    return auth_headers("user-1")
