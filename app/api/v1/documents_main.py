"""
Document API Router.

Aggregates the document endpoint modules under one router:

- document_download.py: Access-checked download redirects
- common.py: Shared utilities and dependencies
"""

from fastapi import APIRouter

from app.api.v1.documents_modules.document_download import router as download_router

# Create main router
router = APIRouter()

router.include_router(
    download_router,
    tags=["Document Download"],
)
