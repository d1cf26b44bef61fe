"""Tests for image encoding and data-URL handling."""

import base64
from pathlib import Path

import pytest

from ocrnotes.errors import EncodingError, ValidationError
from ocrnotes.ocr.encoder import (
    encode_image,
    encode_image_file,
    is_image_media_type,
    strip_data_url_prefix,
    to_data_url,
)


class TestMediaType:
    """Tests for is_image_media_type."""

    @pytest.mark.parametrize("content_type", ["image/png", "image/jpeg", "IMAGE/WEBP"])
    def test_images_accepted(self, content_type: str) -> None:
        assert is_image_media_type(content_type) is True

    @pytest.mark.parametrize("content_type", ["application/pdf", "text/plain", "", None])
    def test_non_images_rejected(self, content_type: str | None) -> None:
        assert is_image_media_type(content_type) is False


class TestDataUrl:
    """Tests for data-URL prefix handling."""

    def test_strip_prefix(self) -> None:
        assert strip_data_url_prefix("data:image/png;base64,QUJD") == "QUJD"

    def test_strip_without_prefix_is_noop(self) -> None:
        assert strip_data_url_prefix("QUJD") == "QUJD"

    def test_to_data_url_is_canonical_jpeg(self) -> None:
        assert to_data_url("QUJD") == "data:image/jpeg;base64,QUJD"

    def test_to_data_url_rewraps_existing_prefix(self) -> None:
        assert to_data_url("data:image/png;base64,QUJD") == "data:image/jpeg;base64,QUJD"


class TestEncodeImage:
    """Tests for encode_image."""

    def test_round_trips_bytes(self, png_bytes: bytes) -> None:
        encoded = encode_image(png_bytes, "image/png")
        assert not encoded.startswith("data:")
        assert base64.b64decode(encoded) == png_bytes

    def test_non_image_type_rejected_before_decoding(self) -> None:
        with pytest.raises(ValidationError, match="Please upload an image file"):
            encode_image(b"%PDF-1.4", "application/pdf")

    def test_undecodable_bytes(self) -> None:
        with pytest.raises(EncodingError):
            encode_image(b"definitely not a png", "image/png")

    def test_empty_file(self) -> None:
        with pytest.raises(EncodingError):
            encode_image(b"", "image/png")

    def test_encoding_error_is_validation_error(self) -> None:
        assert issubclass(EncodingError, ValidationError)
        assert EncodingError("x").status_code == 400


class TestEncodeImageFile:
    """Tests for encode_image_file."""

    def test_encodes_png_file(self, png_file: Path, png_bytes: bytes) -> None:
        assert base64.b64decode(encode_image_file(png_file)) == png_bytes

    def test_rejects_non_image_extension(self, tmp_path: Path) -> None:
        path = tmp_path / "notes.txt"
        path.write_text("hello")
        with pytest.raises(ValidationError):
            encode_image_file(path)

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(EncodingError):
            encode_image_file(tmp_path / "missing.png")
