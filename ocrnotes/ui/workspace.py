"""Per-session view state and the upload → extract → save workflow.

The controller drives the same steps a user does on the page: pick an image,
extract its text, save it automatically, and manage previously stored
documents. Each step records a notification describing its outcome; the page
shows and clears them on the next render.
"""

from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import PurePath
from typing import Any

from ocrnotes.errors import OCRNotesError, ProviderError
from ocrnotes.ocr.encoder import encode_image, is_image_media_type
from ocrnotes.ocr.gateway import OCRGateway
from ocrnotes.storage.documents import Document, DocumentStore
from ocrnotes.utils.logger import get_logger

from .render import markdown_to_html

logger = get_logger(__name__)


class ViewMode(StrEnum):
    RAW = "raw"
    RENDERED = "rendered"


@dataclass
class Notification:
    level: str
    message: str


@dataclass
class Workspace:
    """What one signed-in user currently sees."""

    file_name: str = ""
    extracted_text: str = ""
    view_mode: ViewMode = ViewMode.RENDERED
    error: str | None = None
    show_result: bool = False
    documents: list[Document] = field(default_factory=list)
    notifications: list[Notification] = field(default_factory=list)

    def notify(self, level: str, message: str) -> None:
        self.notifications.append(Notification(level, message))

    def drain_notifications(self) -> list[Notification]:
        pending, self.notifications = self.notifications, []
        return pending

    def toggle_view(self) -> None:
        self.view_mode = ViewMode.RAW if self.view_mode is ViewMode.RENDERED else ViewMode.RENDERED

    def reset(self) -> None:
        """Clear the current result before a new upload."""
        self.file_name = ""
        self.extracted_text = ""
        self.error = None
        self.show_result = False

    @property
    def rendered_text(self) -> str:
        return markdown_to_html(self.extracted_text)

    @property
    def download_name(self) -> str:
        stem = self.file_name.split(".")[0] if self.file_name else ""
        return f"{stem or 'ocr-result'}.md"


class WorkspaceRegistry:
    """Holds one workspace per signed-in user id."""

    def __init__(self) -> None:
        self._workspaces: dict[str, Workspace] = {}

    def get(self, user_id: str) -> Workspace:
        return self._workspaces.setdefault(user_id, Workspace())

    def discard(self, user_id: str) -> None:
        self._workspaces.pop(user_id, None)

    def __len__(self) -> int:
        return len(self._workspaces)


class WorkspaceController:
    """Runs user actions against the OCR gateway and document store.

    Args:
        gateway: OCR gateway used for extraction.
        store: Owner-scoped document store.
    """

    def __init__(self, gateway: OCRGateway, store: DocumentStore) -> None:
        self.gateway = gateway
        self.store = store

    async def upload(
        self,
        workspace: Workspace,
        context: Any,
        file_name: str,
        content_type: str | None,
        data: bytes,
    ) -> None:
        """Extract text from an uploaded image and save it automatically."""
        if not is_image_media_type(content_type):
            workspace.notify("error", "Please upload an image file")
            return

        workspace.reset()
        workspace.file_name = PurePath(file_name).name if file_name else "image"

        try:
            image_base64 = encode_image(data, content_type)
            result = await self.gateway.extract(image_base64)
        except OCRNotesError as exc:
            logger.error("Error extracting text from %s: %s", workspace.file_name, exc)
            workspace.error = exc.message
            workspace.notify("error", "OCR process failed")
            workspace.show_result = True
            return

        workspace.show_result = True
        if result.is_empty:
            workspace.error = "No text found in API response"
            workspace.notify("error", "No text could be extracted")
            return

        workspace.extracted_text = result.text
        workspace.notify("success", "Text successfully extracted")

        if await self._save(workspace, context):
            workspace.notify("success", "Document automatically saved")
            await self.refresh(workspace, context)

    async def save(self, workspace: Workspace, context: Any) -> None:
        """Save the current text as a new document."""
        if not workspace.extracted_text or not workspace.file_name:
            return
        if await self._save(workspace, context):
            workspace.notify("success", "Document successfully saved")
            await self.refresh(workspace, context)

    async def _save(self, workspace: Workspace, context: Any) -> bool:
        try:
            await self.store.create(context, workspace.file_name, workspace.extracted_text)
        except OCRNotesError as exc:
            logger.error("Error saving document: %s", exc)
            workspace.notify("error", "An error occurred while saving the document")
            return False
        return True

    async def refresh(self, workspace: Workspace, context: Any) -> None:
        try:
            workspace.documents = await self.store.list(context)
        except OCRNotesError as exc:
            logger.error("Error fetching documents: %s", exc)
            workspace.notify("error", "An error occurred while loading documents")

    async def load(self, workspace: Workspace, context: Any, document_id: str) -> None:
        """Show a previously stored document in the result view."""
        try:
            document = await self.store.get(context, document_id)
        except ProviderError as exc:
            logger.error("Error loading document %s: %s", document_id, exc)
            workspace.notify("error", "An error occurred while loading the document")
            return

        if document is None:
            return
        workspace.file_name = document.file_name
        workspace.extracted_text = document.extracted_text
        workspace.error = None
        workspace.show_result = True

    async def delete(self, workspace: Workspace, context: Any, document_id: str) -> None:
        try:
            await self.store.delete(context, document_id)
        except OCRNotesError as exc:
            logger.error("Error deleting document: %s", exc)
            workspace.notify("error", "An error occurred while deleting the document")
            return
        workspace.notify("success", "Document successfully deleted")
        await self.refresh(workspace, context)
