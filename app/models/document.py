import re
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator


class DocumentStorageType(str, Enum):
    """Where a document's stored-file reference lives and how it resolves."""

    INLINE_BLOB = "inline-blob"  # Direct CDN blob URL
    OBJECT_STORE_KEY = "object-store-key"  # Key in the object store, needs signing


# File extension or declared document type -> MIME type
MIME_TYPES = {
    "pdf": "application/pdf",
    "doc": "application/msword",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "ppt": "application/vnd.ms-powerpoint",
    "pptx": "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "xls": "application/vnd.ms-excel",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "txt": "text/plain",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "mp4": "video/mp4",
    "avi": "video/x-msvideo",
    "zip": "application/zip",
}

# MIME types whose page count is worth extracting
PAGINATED_CONTENT_TYPES = {"application/pdf"}


def content_type_for_document_type(document_type: Optional[str]) -> str:
    """Map a declared document type to the MIME type used in download headers."""
    return MIME_TYPES.get(
        (document_type or "pdf").lower(), "application/octet-stream"
    )


class Document(BaseModel):
    """Document record as seen by the file access layer."""

    id: str = Field(..., description="Unique document identifier")
    name: str = Field(..., description="Display name, used as download filename")
    file: str = Field(..., description="Stored-file reference (CDN URL or object key)")
    type: Optional[str] = Field(None, description="Declared document type, e.g. pdf")
    storage_type: DocumentStorageType = Field(
        ..., description="Storage backend tag for the stored-file reference"
    )
    team_id: str = Field(..., description="Owning team")
    num_pages: Optional[int] = Field(None, ge=1)

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("created_at", "updated_at")
    def serialize_datetime(self, value: datetime) -> Optional[str]:
        """Serialize datetime fields to ISO format."""
        return value.isoformat() if value else None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Names end up in a Content-Disposition header."""
        v = v.strip()
        if not v:
            raise ValueError("Document name cannot be empty")
        return re.sub(r'["\r\n]', "_", v)

    @property
    def content_type(self) -> str:
        return content_type_for_document_type(self.type)
