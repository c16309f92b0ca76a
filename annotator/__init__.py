"""
PDF Highlight Annotator - backend for annotating uploaded PDFs.

This package provides:
- PDF upload with text extraction and optional Gemini summaries
- Per-document highlights with colors and comments
- Annotated PDF rendering (highlight overlays + per-page footnotes)
- Blob storage on local disk or S3 with signed read URLs
"""

__version__ = "1.0.0"
