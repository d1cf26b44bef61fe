"""Tests for the server-rendered workspace and sign-in flow."""

import pytest
from fastapi.testclient import TestClient

from ocrnotes.api.app import create_app
from ocrnotes.auth.session import ACCESS_TOKEN_COOKIE, CODE_VERIFIER_COOKIE
from ocrnotes.utils.config import AppConfig

from conftest import FakeAuthProvider, FakeOCRProvider


@pytest.fixture
def signed_in(client: TestClient) -> TestClient:
    """Client that completed the OAuth callback as Alice."""
    response = client.get("/auth/callback", params={"code": "good-code"}, follow_redirects=False)
    assert response.status_code == 303
    return client


def _upload(client: TestClient, png_bytes: bytes, name: str = "scan.png") -> str:
    response = client.post("/upload", files={"file": (name, png_bytes, "image/png")})
    assert response.status_code == 200
    return response.text


class TestIndexPage:
    """Tests for GET /."""

    def test_guest_sees_sign_in(self, client: TestClient, auth_provider: FakeAuthProvider) -> None:
        response = client.get("/")
        assert response.status_code == 200
        assert "Sign in with Google" in response.text
        assert 'action="/upload"' not in response.text
        assert auth_provider.lookups == 0

    def test_configuration_error(self, app_config: AppConfig) -> None:
        with TestClient(create_app(app_config, ocr_provider=FakeOCRProvider())) as client:
            response = client.get("/")
        assert "Configuration Error" in response.text
        assert "Sign in with Google" not in response.text

    def test_signed_in_workspace(self, signed_in: TestClient) -> None:
        page = signed_in.get("/").text
        assert "Signed in as alice@example.com" in page
        assert 'action="/upload"' in page
        assert "No saved documents yet." in page
        assert "OCR is unavailable" not in page

    def test_ocr_unavailable_banner(
        self, app_config: AppConfig, auth_provider: FakeAuthProvider
    ) -> None:
        with TestClient(create_app(app_config, auth_provider=auth_provider)) as client:
            client.get("/auth/callback", params={"code": "good-code"}, follow_redirects=False)
            page = client.get("/").text
        assert "OCR is unavailable" in page


class TestUploadFlow:
    """Upload, view, download, and manage documents through the page."""

    def test_upload_extracts_and_saves(self, signed_in: TestClient, png_bytes: bytes) -> None:
        page = _upload(signed_in, png_bytes)

        assert "<h1>Title</h1>" in page
        assert "Hello <strong>world</strong>" in page
        assert "Text successfully extracted" in page
        assert "Document automatically saved" in page
        assert "No saved documents yet." not in page

        documents = signed_in.get("/documents").json()["documents"]
        assert [d["file_name"] for d in documents] == ["scan.png"]

    def test_notifications_shown_once(self, signed_in: TestClient, png_bytes: bytes) -> None:
        _upload(signed_in, png_bytes)
        assert "Text successfully extracted" not in signed_in.get("/").text

    def test_non_image_rejected(
        self, signed_in: TestClient, ocr_provider: FakeOCRProvider
    ) -> None:
        response = signed_in.post(
            "/upload", files={"file": ("notes.pdf", b"%PDF-1.4", "application/pdf")}
        )
        assert "Please upload an image file" in response.text
        assert ocr_provider.calls == []

    def test_extraction_failure(
        self, signed_in: TestClient, ocr_provider: FakeOCRProvider, png_bytes: bytes
    ) -> None:
        ocr_provider.error = RuntimeError("boom")
        page = _upload(signed_in, png_bytes)
        assert "OCR process failed" in page
        assert "Failed to extract text from image" in page
        assert signed_in.get("/documents").json()["documents"] == []

    def test_empty_result(
        self, signed_in: TestClient, ocr_provider: FakeOCRProvider, png_bytes: bytes
    ) -> None:
        ocr_provider.response = {"pages": []}
        page = _upload(signed_in, png_bytes)
        assert "No text could be extracted" in page
        assert "No text extracted" in page

    def test_toggle_raw_view(self, signed_in: TestClient, png_bytes: bytes) -> None:
        _upload(signed_in, png_bytes)
        page = signed_in.post("/workspace/toggle").text
        assert "<pre># Title" in page
        assert "Show formatted" in page

        page = signed_in.post("/workspace/toggle").text
        assert "<h1>Title</h1>" in page
        assert "Show raw" in page

    def test_download(self, signed_in: TestClient, png_bytes: bytes) -> None:
        _upload(signed_in, png_bytes)
        response = signed_in.get("/workspace/download")
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/markdown")
        assert response.headers["content-disposition"] == 'attachment; filename="scan.md"'
        assert response.text == "# Title\n\nHello **world**"
        assert "Markdown file downloaded" in signed_in.get("/").text

    def test_download_without_text_redirects(self, signed_in: TestClient) -> None:
        response = signed_in.get("/workspace/download", follow_redirects=False)
        assert response.status_code == 303

    def test_reset(self, signed_in: TestClient, png_bytes: bytes) -> None:
        _upload(signed_in, png_bytes)
        page = signed_in.post("/workspace/reset").text
        assert "<h1>Title</h1>" not in page
        assert "scan.png" in page

    def test_save_again(self, signed_in: TestClient, png_bytes: bytes) -> None:
        _upload(signed_in, png_bytes)
        page = signed_in.post("/workspace/save").text
        assert "Document successfully saved" in page
        assert len(signed_in.get("/documents").json()["documents"]) == 2

    def test_load_and_delete(self, signed_in: TestClient, png_bytes: bytes) -> None:
        _upload(signed_in, png_bytes)
        document_id = signed_in.get("/documents").json()["documents"][0]["id"]
        signed_in.post("/workspace/reset")

        page = signed_in.post(f"/workspace/documents/{document_id}/load").text
        assert "<h1>Title</h1>" in page

        page = signed_in.post(f"/workspace/documents/{document_id}/delete").text
        assert "Document successfully deleted" in page
        assert "No saved documents yet." in page

    def test_guest_upload_ignored(
        self, client: TestClient, ocr_provider: FakeOCRProvider, png_bytes: bytes
    ) -> None:
        page = _upload(client, png_bytes)
        assert "Sign in with Google" in page
        assert ocr_provider.calls == []


class TestAuthFlow:
    """Tests for sign-in and sign-out."""

    def test_login_redirects_with_verifier(self, client: TestClient) -> None:
        response = client.get("/auth/login", follow_redirects=False)
        assert response.status_code == 302
        location = response.headers["location"]
        assert location.startswith("https://auth.example.com/authorize")
        assert "redirect_to=http://testserver/auth/callback" in location
        assert client.cookies.get(CODE_VERIFIER_COOKIE)

    def test_login_unconfigured(self, app_config: AppConfig) -> None:
        with TestClient(create_app(app_config)) as client:
            response = client.get("/auth/login", follow_redirects=False)
        assert response.status_code == 303
        assert response.headers["location"] == "/"

    def test_callback_uses_stored_verifier(
        self, client: TestClient, auth_provider: FakeAuthProvider
    ) -> None:
        client.get("/auth/login", follow_redirects=False)
        verifier = client.cookies.get(CODE_VERIFIER_COOKIE)

        response = client.get(
            "/auth/callback", params={"code": "good-code"}, follow_redirects=False
        )

        assert response.status_code == 303
        assert auth_provider.exchanges == [("good-code", verifier)]
        assert client.cookies.get(ACCESS_TOKEN_COOKIE) == "token-alice"
        assert client.cookies.get(CODE_VERIFIER_COOKIE) is None

    def test_callback_bad_code(self, client: TestClient) -> None:
        response = client.get(
            "/auth/callback", params={"code": "bad-code"}, follow_redirects=False
        )
        assert response.status_code == 303
        assert response.headers["location"] == "/?error=auth"
        assert client.cookies.get(ACCESS_TOKEN_COOKIE) is None
        assert "An error occurred while signing in" in client.get("/?error=auth").text

    def test_callback_without_code(self, client: TestClient) -> None:
        response = client.get("/auth/callback", follow_redirects=False)
        assert response.headers["location"] == "/"

    def test_logout(
        self, signed_in: TestClient, auth_provider: FakeAuthProvider, png_bytes: bytes
    ) -> None:
        _upload(signed_in, png_bytes)
        page = signed_in.post("/auth/logout").text

        assert auth_provider.signed_out == ["token-alice"]
        assert "Successfully signed out" in page
        assert "Sign in with Google" in page
        assert signed_in.cookies.get(ACCESS_TOKEN_COOKIE) is None
        assert signed_in.get("/documents").status_code == 401
