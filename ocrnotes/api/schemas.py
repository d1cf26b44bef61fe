"""Pydantic request/response schemas for the JSON endpoints."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class DocumentResponse(BaseModel):
    """A stored document as returned to its owner."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    file_name: str
    extracted_text: str
    created_at: datetime


class DocumentListResponse(BaseModel):
    documents: list[DocumentResponse]


class DocumentEnvelope(BaseModel):
    document: DocumentResponse


class DocumentCreateRequest(BaseModel):
    """Body of ``POST /documents``.

    Both fields are optional here so that a missing one is reported as
    ``Missing required fields`` after the session check, not as a schema error.
    """

    model_config = ConfigDict(populate_by_name=True)

    file_name: str | None = Field(default=None, alias="fileName")
    extracted_text: str | None = Field(default=None, alias="extractedText")


class DeleteResponse(BaseModel):
    success: bool


class OCRRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    image_base64: str | None = Field(default=None, alias="imageBase64")


class OCRResponse(BaseModel):
    text: str


class ErrorResponse(BaseModel):
    error: str
    details: str | None = None


class HealthResponse(BaseModel):
    """Response schema for the health check endpoint."""

    status: str
    version: str
    ocr_configured: bool
    auth_configured: bool
