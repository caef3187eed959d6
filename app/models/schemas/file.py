"""File upload and presign schemas."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from app.models.schemas.base import CamelModel


class UploadResult(BaseModel):
    """What a storage backend reports after storing an object."""

    path: str = Field(..., description="Object key inside the bucket")
    public_url: str = Field(..., description="Direct URL for public buckets")
    signed_url: Optional[str] = Field(
        None, description="Time-limited URL, only for private uploads"
    )
    expires_at: Optional[datetime] = None


class UploadDescriptor(CamelModel):
    """Descriptor returned to the client for an uploaded file."""

    path: str = Field(..., examples=["team_123/1718000000000-k3j2h1g0f9d8s.pdf"])
    public_url: str
    file_name: str = Field(..., examples=["quarterly-report.pdf"])
    content_type: str = Field(..., examples=["application/pdf"])
    file_size: int = Field(..., ge=0)
    num_pages: int = Field(default=1, ge=1)


class UploadResponse(BaseModel):
    """Envelope for a successful upload."""

    success: bool = True
    data: UploadDescriptor


class PresignRequest(BaseModel):
    """Request body for a presigned GET URL."""

    key: str = Field(..., min_length=1, description="Object key to sign")

    @field_validator("key")
    @classmethod
    def validate_key(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Key cannot be empty")
        if v.startswith(("http://", "https://")):
            raise ValueError("Key must be an object key, not a URL")
        return v


class PresignResponse(BaseModel):
    url: str
