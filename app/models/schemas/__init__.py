"""Pydantic schemas for API requests and responses.

This package contains the Pydantic models organized by domain:
- file.py: Upload and presign schemas
- team.py: Team schemas
- health.py: Health check schema
- base.py: Base classes

Import from this module: `from app.models.schemas import UploadResponse`
"""

# Re-export enums from domain models
from app.models.document import DocumentStorageType
from app.models.team import TeamRole

# Base schemas
from app.models.schemas.base import CamelModel

# File schemas
from app.models.schemas.file import (
    UploadResult,
    UploadDescriptor,
    UploadResponse,
    PresignRequest,
    PresignResponse,
)

# Team schemas
from app.models.schemas.team import (
    TeamCreateRequest,
    TeamResponse,
    TeamList,
)

# Health schemas
from app.models.schemas.health import HealthResponse

__all__ = [
    "DocumentStorageType",
    "TeamRole",
    "CamelModel",
    "UploadResult",
    "UploadDescriptor",
    "UploadResponse",
    "PresignRequest",
    "PresignResponse",
    "TeamCreateRequest",
    "TeamResponse",
    "TeamList",
    "HealthResponse",
]
