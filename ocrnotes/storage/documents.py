"""Owner-scoped document persistence.

Every operation first resolves the caller's identity through the injected
resolver, so a caller without a valid session is rejected before the store
opens a database session. Reads and deletes filter on the owner id inside the
query itself, which keeps other users' documents invisible, including their
existence.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ocrnotes.auth.session import Identity
from ocrnotes.errors import StorageError, ValidationError
from ocrnotes.utils.logger import get_logger

from .models import DocumentModel

logger = get_logger(__name__)

IdentityResolver = Callable[[Any], Awaitable[Identity]]


@dataclass
class Document:
    """A stored OCR result owned by one user."""

    id: str
    user_id: str
    file_name: str
    extracted_text: str
    created_at: datetime

    @classmethod
    def from_model(cls, model: DocumentModel) -> "Document":
        created_at = model.created_at
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        return cls(
            id=model.id,
            user_id=model.user_id,
            file_name=model.file_name,
            extracted_text=model.extracted_text,
            created_at=created_at,
        )


class DocumentStore:
    """List, create, fetch, and delete documents for the current user.

    Args:
        session_factory: Factory producing async database sessions.
        resolve_identity: Resolves the caller's identity from a request
            context, raising ``AuthorizationError`` when there is none.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        resolve_identity: IdentityResolver,
    ) -> None:
        self.session_factory = session_factory
        self.resolve_identity = resolve_identity

    async def list(self, context: Any) -> list[Document]:
        """Return the caller's documents, newest first."""
        identity = await self.resolve_identity(context)
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(DocumentModel)
                    .where(DocumentModel.user_id == identity.id)
                    .order_by(DocumentModel.created_at.desc())
                )
                documents = [Document.from_model(m) for m in result.scalars().all()]
        except SQLAlchemyError as exc:
            logger.error("Error fetching documents: %s", exc)
            raise StorageError("Failed to fetch documents", str(exc)) from exc

        logger.debug("Listed %d documents for %s", len(documents), identity.id)
        return documents

    async def create(
        self,
        context: Any,
        file_name: str | None,
        extracted_text: str | None,
    ) -> Document:
        """Store a new document owned by the caller.

        Raises:
            AuthorizationError: If the caller has no valid session.
            ValidationError: If either field is missing or empty.
            StorageError: If the insert fails.
        """
        identity = await self.resolve_identity(context)
        if not file_name or not extracted_text:
            raise ValidationError("Missing required fields")

        try:
            async with self.session_factory() as session:
                model = DocumentModel(
                    user_id=identity.id,
                    file_name=file_name,
                    extracted_text=extracted_text,
                )
                session.add(model)
                await session.commit()
                await session.refresh(model)
                document = Document.from_model(model)
        except SQLAlchemyError as exc:
            logger.error("Error saving document: %s", exc)
            raise StorageError("Failed to save document", str(exc)) from exc

        logger.info("Saved document %s (%s) for %s", document.id, file_name, identity.id)
        return document

    async def get(self, context: Any, document_id: str) -> Document | None:
        """Return one of the caller's documents, or ``None`` if not theirs."""
        identity = await self.resolve_identity(context)
        if not document_id:
            return None
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(DocumentModel).where(
                        DocumentModel.id == document_id,
                        DocumentModel.user_id == identity.id,
                    )
                )
                model = result.scalar_one_or_none()
        except SQLAlchemyError as exc:
            logger.error("Error loading document %s: %s", document_id, exc)
            raise StorageError("Failed to load document", str(exc)) from exc
        return Document.from_model(model) if model else None

    async def delete(self, context: Any, document_id: str | None) -> None:
        """Delete one of the caller's documents.

        Succeeds whether or not a matching owned row existed.
        """
        identity = await self.resolve_identity(context)
        if not document_id:
            raise ValidationError("Missing document ID")

        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    delete(DocumentModel).where(
                        DocumentModel.id == document_id,
                        DocumentModel.user_id == identity.id,
                    )
                )
                await session.commit()
        except SQLAlchemyError as exc:
            logger.error("Error deleting document: %s", exc)
            raise StorageError("Failed to delete document", str(exc)) from exc

        logger.info(
            "Delete of %s by %s matched %d rows",
            document_id,
            identity.id,
            result.rowcount,
        )
