"""Mistral OCR provider backed by the official ``mistralai`` SDK."""

from collections.abc import Mapping
from typing import Any

from mistralai import Mistral

from ocrnotes.utils.logger import get_logger

logger = get_logger(__name__)


class MistralOCRProvider:
    """Calls Mistral's OCR endpoint with an image data URL.

    Args:
        api_key: Mistral API key.
        model: OCR model name.
        client: Preconfigured SDK client, mainly for tests.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "mistral-ocr-latest",
        client: Mistral | None = None,
    ) -> None:
        self.model = model
        self.client = client or Mistral(api_key=api_key)

    async def process(self, data_url: str) -> Mapping[str, Any]:
        logger.debug("Sending %d-byte data URL to %s", len(data_url), self.model)
        response = await self.client.ocr.process_async(
            model=self.model,
            document={"type": "image_url", "image_url": data_url},
        )
        if isinstance(response, Mapping):
            return response
        return response.model_dump()
