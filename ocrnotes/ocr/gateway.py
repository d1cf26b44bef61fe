"""OCR gateway: one provider call, one normalized text result.

The provider is anything implementing :class:`OCRProvider`; the gateway owns
payload canonicalization, error mapping, and response normalization so those
can be exercised with synthetic responses.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Protocol

from ocrnotes.errors import ConfigurationError, ExtractionError, ValidationError
from ocrnotes.utils.config import OCRConfig
from ocrnotes.utils.logger import get_logger

from .encoder import strip_data_url_prefix, to_data_url
from .mistral_provider import MistralOCRProvider

logger = get_logger(__name__)

PAGE_SEPARATOR = "\n\n"


class OCRProvider(Protocol):
    """An external OCR service."""

    async def process(self, data_url: str) -> Mapping[str, Any]:
        """Run OCR on an image data URL and return the raw response."""
        ...


@dataclass
class OCRResult:
    """Normalized text extracted from one image."""

    text: str
    page_count: int = 0

    @property
    def is_empty(self) -> bool:
        """True when the provider succeeded but found no text."""
        return not self.text.strip()


def _as_mapping(response: Any) -> Mapping[str, Any]:
    if isinstance(response, Mapping):
        return response
    if hasattr(response, "model_dump"):
        return response.model_dump()
    return {}


def normalize_response(response: Any) -> str:
    """Collapse a provider response into a single markdown string.

    Pages win over the flat ``text`` field: when a non-empty ``pages`` list
    is present, non-blank page markdown is joined with a blank line and the
    ``text`` field is ignored, even if every page is blank.

    Args:
        response: Provider response as a mapping or pydantic model.

    Returns:
        Extracted text, possibly empty.
    """
    data = _as_mapping(response)
    pages = data.get("pages")

    if isinstance(pages, list) and pages:
        chunks = []
        for page in pages:
            markdown = _as_mapping(page).get("markdown") or ""
            if markdown.strip():
                chunks.append(markdown)
        return PAGE_SEPARATOR.join(chunks)

    text = data.get("text")
    if isinstance(text, str) and text:
        return text
    return ""


class OCRGateway:
    """Sends encoded images to the OCR provider and normalizes the result.

    Args:
        provider: OCR provider, or ``None`` when no credential is configured.
        model: Provider model name, used for logging only.
    """

    def __init__(self, provider: OCRProvider | None, model: str = "mistral-ocr-latest") -> None:
        self.provider = provider
        self.model = model

    @classmethod
    def from_config(cls, config: OCRConfig) -> "OCRGateway":
        """Build a gateway backed by Mistral when the API key is usable."""
        if not config.is_configured:
            return cls(None, config.model)
        return cls(MistralOCRProvider(config.api_key, config.model), config.model)

    @property
    def is_configured(self) -> bool:
        return self.provider is not None

    async def extract(self, image_base64: str) -> OCRResult:
        """Extract text from a base64 image.

        Args:
            image_base64: Base64 image, with or without a data-URL prefix.

        Returns:
            Normalized OCR result; ``is_empty`` marks a "no text found" outcome.

        Raises:
            ConfigurationError: If no provider credential is configured.
            ValidationError: If the payload is empty.
            ExtractionError: If the provider call fails.
        """
        if self.provider is None:
            raise ConfigurationError("Mistral API key is not configured")
        if not image_base64 or not strip_data_url_prefix(image_base64):
            raise ValidationError("Image data is required")

        data_url = to_data_url(image_base64)

        try:
            response = await self.provider.process(data_url)
        except Exception as exc:
            logger.error("OCR provider call failed: %s", exc)
            raise ExtractionError("Failed to extract text from image", str(exc)) from exc

        pages = _as_mapping(response).get("pages")
        page_count = len(pages) if isinstance(pages, list) else 0
        text = normalize_response(response)
        logger.info(
            "OCR (%s) returned %d pages, %d characters",
            self.model,
            page_count,
            len(text),
        )
        return OCRResult(text=text, page_count=page_count)
