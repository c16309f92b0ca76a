"""
API tests for the PDF router, run against an in-memory database and a
temporary local blob store.
"""

from urllib.parse import urlparse

import fitz  # PyMuPDF

from annotator.routers.pdfs import _content_disposition
from conftest import auth_headers, make_pdf


def upload(client, headers, data=None, filename="report.pdf", content_type="application/pdf"):
    data = make_pdf(page_count=2) if data is None else data
    return client.post(
        "/api/pdfs/upload",
        files={"pdf": (filename, data, content_type)},
        headers=headers,
    )


def uploaded_pdf(client, headers):
    response = upload(client, headers)
    assert response.status_code == 201
    return response.json()["pdf"]


def add_highlight(client, headers, pdf_id, **overrides):
    body = {"text": "Key finding", "color": "yellow", "page": 1, "start": 0, "end": 400}
    body.update(overrides)
    return client.post(f"/api/pdfs/{pdf_id}/highlights", json=body, headers=headers)


def pdf_text(content: bytes) -> str:
    doc = fitz.open(stream=content, filetype="pdf")
    try:
        return "".join(page.get_text("text") for page in doc)
    finally:
        doc.close()


class TestAuth:
    """Tests for token checks."""

    def test_missing_token(self, client):
        response = client.get("/api/pdfs")
        assert response.status_code == 401
        assert response.json()["detail"] == "No token, authorization denied"

    def test_invalid_token(self, client):
        response = client.get("/api/pdfs", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401
        assert response.json()["detail"] == "Token is not valid"

    def test_health_is_public(self, client):
        assert client.get("/health").json()["status"] == "healthy"


class TestUpload:
    """Tests for POST /upload."""

    def test_upload_creates_document(self, client, headers, blob_store):
        response = upload(client, headers)

        assert response.status_code == 201
        pdf = response.json()["pdf"]
        assert pdf["title"] == "report.pdf"
        assert pdf["pageCount"] == 2
        assert "Sample page 1" in pdf["textContent"]
        assert pdf["summary"] == ""
        assert pdf["storagePath"].startswith("pdfs/user-1/")
        assert pdf["storagePath"].endswith("-report.pdf")
        assert pdf["url"]
        assert pdf["highlights"] == []
        assert blob_store.get(pdf["storagePath"]).startswith(b"%PDF")

    def test_missing_file(self, client, headers):
        response = client.post("/api/pdfs/upload", headers=headers)
        assert response.status_code == 400

    def test_non_pdf_rejected(self, client, headers):
        response = upload(client, headers, data=b"hello", filename="notes.txt", content_type="text/plain")
        assert response.status_code == 400
        assert response.json()["detail"] == "Only PDF files are allowed"

    def test_too_large(self, client, headers):
        response = upload(client, headers, data=b"%PDF" + b"0" * (1024 * 1024 + 1))
        assert response.status_code == 413

    def test_unreadable_pdf(self, client, headers, blob_store):
        response = upload(client, headers, data=b"%PDF-1.4 this is not really a pdf")
        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "RENDER_FAILED"
        assert not (blob_store.root_dir / "pdfs").exists() or not any((blob_store.root_dir / "pdfs").rglob("*.pdf"))

    def test_filename_cannot_escape_user_folder(self, client, headers, blob_store):
        """Test directory parts of the uploaded filename never reach the storage key."""
        response = upload(client, headers, filename="x/../../victim/evil.pdf")

        assert response.status_code == 201
        storage_path = response.json()["pdf"]["storagePath"]
        assert storage_path.startswith("pdfs/user-1/")
        assert ".." not in storage_path.split("/")
        assert storage_path.count("/") == 2
        assert not (blob_store.root_dir / "pdfs" / "victim").exists()
        assert blob_store.get(storage_path).startswith(b"%PDF")

    def test_signed_url_serves_original(self, client, headers):
        pdf = uploaded_pdf(client, headers)
        url = urlparse(pdf["url"])

        response = client.get(f"{url.path}?{url.query}")
        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert response.content.startswith(b"%PDF")

    def test_tampered_signature_rejected(self, client, headers):
        pdf = uploaded_pdf(client, headers)
        url = urlparse(pdf["url"])

        response = client.get(f"{url.path}?{url.query[:-4]}beef")
        assert response.status_code == 403


class TestDocuments:
    """Tests for listing, fetching and deleting documents."""

    def test_list_only_own_documents(self, client, headers):
        uploaded_pdf(client, headers)
        uploaded_pdf(client, auth_headers("someone-else"))

        response = client.get("/api/pdfs", headers=headers)
        assert response.status_code == 200
        assert len(response.json()) == 1
        assert response.json()[0]["url"]

    def test_get_document(self, client, headers):
        pdf = uploaded_pdf(client, headers)

        response = client.get(f"/api/pdfs/{pdf['id']}", headers=headers)
        assert response.status_code == 200
        assert response.json()["id"] == pdf["id"]
        assert response.json()["annotatedVersion"] is None

    def test_other_users_document_not_found(self, client, headers):
        pdf = uploaded_pdf(client, headers)

        response = client.get(f"/api/pdfs/{pdf['id']}", headers=auth_headers("intruder"))
        assert response.status_code == 404

    def test_malformed_id_not_found(self, client, headers):
        response = client.get("/api/pdfs/not-a-uuid", headers=headers)
        assert response.status_code == 404
        assert response.json()["detail"]["error"] == "NOT_FOUND"

    def test_delete_removes_blobs(self, client, headers, blob_store):
        pdf = uploaded_pdf(client, headers)
        add_highlight(client, headers, pdf["id"], comment="note")
        generated = client.post(f"/api/pdfs/{pdf['id']}/generate-annotated", headers=headers).json()

        response = client.delete(f"/api/pdfs/{pdf['id']}", headers=headers)
        assert response.status_code == 200
        assert client.get(f"/api/pdfs/{pdf['id']}", headers=headers).status_code == 404
        assert not (blob_store.root_dir / pdf["storagePath"]).exists()
        assert not (blob_store.root_dir / generated["pdf"]["annotatedVersion"]["storagePath"]).exists()


class TestHighlights:
    """Tests for highlight create/update/delete."""

    def test_add_highlight(self, client, headers):
        pdf = uploaded_pdf(client, headers)

        response = add_highlight(client, headers, pdf["id"], color="green", comment="Important")
        assert response.status_code == 201
        body = response.json()
        assert body["color"] == "green"
        assert body["comment"] == "Important"
        assert body["page"] == 1

        highlights = client.get(f"/api/pdfs/{pdf['id']}", headers=headers).json()["highlights"]
        assert [h["id"] for h in highlights] == [body["id"]]

    def test_highlights_keep_insertion_order(self, client, headers):
        pdf = uploaded_pdf(client, headers)
        for text in ("first", "second", "third"):
            add_highlight(client, headers, pdf["id"], text=text)

        highlights = client.get(f"/api/pdfs/{pdf['id']}", headers=headers).json()["highlights"]
        assert [h["text"] for h in highlights] == ["first", "second", "third"]

    def test_unknown_color_rejected(self, client, headers):
        pdf = uploaded_pdf(client, headers)
        assert add_highlight(client, headers, pdf["id"], color="chartreuse").status_code == 422

    def test_page_out_of_range(self, client, headers):
        pdf = uploaded_pdf(client, headers)

        response = add_highlight(client, headers, pdf["id"], page=999)
        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "INVALID_HIGHLIGHT"

    def test_update_color_keeps_comment(self, client, headers):
        pdf = uploaded_pdf(client, headers)
        highlight = add_highlight(client, headers, pdf["id"], comment="keep me").json()

        response = client.put(
            f"/api/pdfs/{pdf['id']}/highlights/{highlight['id']}",
            json={"color": "red"},
            headers=headers,
        )
        assert response.status_code == 200
        assert response.json()["color"] == "red"
        assert response.json()["comment"] == "keep me"

    def test_update_clears_comment_with_empty_string(self, client, headers):
        pdf = uploaded_pdf(client, headers)
        highlight = add_highlight(client, headers, pdf["id"], comment="remove me").json()

        response = client.put(
            f"/api/pdfs/{pdf['id']}/highlights/{highlight['id']}",
            json={"comment": ""},
            headers=headers,
        )
        assert response.json()["comment"] == ""
        assert response.json()["color"] == "yellow"

    def test_update_unknown_highlight(self, client, headers):
        pdf = uploaded_pdf(client, headers)
        response = client.put(
            f"/api/pdfs/{pdf['id']}/highlights/00000000-0000-0000-0000-000000000000",
            json={"color": "red"},
            headers=headers,
        )
        assert response.status_code == 404

    def test_delete_highlight(self, client, headers):
        pdf = uploaded_pdf(client, headers)
        highlight = add_highlight(client, headers, pdf["id"]).json()

        response = client.delete(f"/api/pdfs/{pdf['id']}/highlights/{highlight['id']}", headers=headers)
        assert response.status_code == 200
        assert response.json()["highlightId"] == highlight["id"]
        assert client.get(f"/api/pdfs/{pdf['id']}", headers=headers).json()["highlights"] == []

    def test_delete_missing_highlight(self, client, headers):
        pdf = uploaded_pdf(client, headers)
        response = client.delete(f"/api/pdfs/{pdf['id']}/highlights/not-a-uuid", headers=headers)
        assert response.status_code == 404


class TestExports:
    """Tests for annotated generation and export."""

    def test_fresh_export(self, client, headers):
        pdf = uploaded_pdf(client, headers)
        add_highlight(client, headers, pdf["id"], comment="Needs review")

        response = client.get(f"/api/pdfs/{pdf['id']}/export/fresh", headers=headers)
        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert response.headers["content-disposition"] == (
            "attachment; filename=\"report_annotated.pdf\"; filename*=UTF-8''report_annotated.pdf"
        )
        text = pdf_text(response.content)
        assert "Footnotes:" in text
        assert "Needs review" in text

    def test_non_latin_title_export(self, client, headers):
        """Test titles outside latin-1 download with an encoded filename."""
        response = upload(client, headers, filename="报告.pdf")
        assert response.status_code == 201
        pdf = response.json()["pdf"]
        assert pdf["title"] == "报告.pdf"

        exported = client.get(f"/api/pdfs/{pdf['id']}/export/fresh", headers=headers)
        assert exported.status_code == 200
        disposition = exported.headers["content-disposition"]
        assert disposition.startswith('attachment; filename="__')
        assert "filename*=UTF-8''%E6%8A%A5%E5%91%8A_annotated.pdf" in disposition

        client.post(f"/api/pdfs/{pdf['id']}/generate-annotated", headers=headers)
        stored = client.get(f"/api/pdfs/{pdf['id']}/export/annotated", headers=headers)
        assert stored.status_code == 200
        assert stored.headers["content-disposition"] == disposition

    def test_quotes_in_filename_are_replaced(self):
        assert _content_disposition('my "draft".pdf') == (
            "attachment; filename=\"my _draft_.pdf\"; filename*=UTF-8''my%20%22draft%22.pdf"
        )

    def test_bare_export_is_fresh(self, client, headers):
        pdf = uploaded_pdf(client, headers)
        add_highlight(client, headers, pdf["id"], comment="Fresh")

        response = client.get(f"/api/pdfs/{pdf['id']}/export", headers=headers)
        assert response.status_code == 200
        assert "Fresh" in pdf_text(response.content)

    def test_fresh_export_reflects_latest_highlights(self, client, headers):
        pdf = uploaded_pdf(client, headers)
        highlight = add_highlight(client, headers, pdf["id"], comment="old comment").json()
        client.put(
            f"/api/pdfs/{pdf['id']}/highlights/{highlight['id']}",
            json={"comment": "new comment"},
            headers=headers,
        )

        text = pdf_text(client.get(f"/api/pdfs/{pdf['id']}/export/fresh", headers=headers).content)
        assert "new comment" in text
        assert "old comment" not in text

    def test_annotated_export_before_generation(self, client, headers):
        pdf = uploaded_pdf(client, headers)

        response = client.get(f"/api/pdfs/{pdf['id']}/export/annotated", headers=headers)
        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "NO_ANNOTATED_VERSION"

    def test_generate_then_export_returns_stored_bytes(self, client, headers, blob_store):
        pdf = uploaded_pdf(client, headers)
        add_highlight(client, headers, pdf["id"], comment="Persisted")

        generated = client.post(f"/api/pdfs/{pdf['id']}/generate-annotated", headers=headers)
        assert generated.status_code == 200
        body = generated.json()
        assert body["url"]
        version = body["pdf"]["annotatedVersion"]
        assert version["storagePath"].startswith(f"annotated/{pdf['id']}/")
        assert version["generatedAt"]

        exported = client.get(f"/api/pdfs/{pdf['id']}/export/annotated", headers=headers)
        assert exported.status_code == 200
        assert exported.content == blob_store.get(version["storagePath"])
        assert "Persisted" in pdf_text(exported.content)

    def test_persisted_version_does_not_follow_later_edits(self, client, headers):
        pdf = uploaded_pdf(client, headers)
        add_highlight(client, headers, pdf["id"], comment="before")
        client.post(f"/api/pdfs/{pdf['id']}/generate-annotated", headers=headers)
        add_highlight(client, headers, pdf["id"], text="Later", start=500, end=900, comment="after")

        text = pdf_text(client.get(f"/api/pdfs/{pdf['id']}/export/annotated", headers=headers).content)
        assert "before" in text
        assert "after" not in text

    def test_export_unknown_document(self, client, headers):
        response = client.get(
            "/api/pdfs/00000000-0000-0000-0000-000000000000/export/fresh",
            headers=headers,
        )
        assert response.status_code == 404

    def test_export_with_missing_original(self, client, headers, blob_store):
        pdf = uploaded_pdf(client, headers)
        blob_store.delete(pdf["storagePath"])

        response = client.get(f"/api/pdfs/{pdf['id']}/export/fresh", headers=headers)
        assert response.status_code == 404
