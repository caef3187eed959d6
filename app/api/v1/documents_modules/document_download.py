"""
Document download endpoint.

The download flow is:
- access check (team membership or share link), 403 when refused
- resolution of the stored-file reference into a URL
- 302 redirect to that URL with download headers
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import RedirectResponse

from app.core.config import settings
from app.core.exceptions import NotAccessibleError
from app.core.ratelimit import rate_limit
from app.core.simple_auth import SimpleSession, get_optional_session, get_session_token
from app.services.document import DocumentService
from .common import (
    get_document_service,
    handle_access_denied,
    handle_generic_error,
    log_operation_start,
    log_operation_success,
)

router = APIRouter()


@router.get(
    "/{document_id}/download",
    summary="Download Document",
    operation_id="downloadDocument",
    status_code=status.HTTP_302_FOUND,
    response_class=RedirectResponse,
    dependencies=[Depends(rate_limit("download"))],
    description="""Redirect to a time-limited URL for the document's file.

**Authentication:** optional. Team members are allowed with their session;
anyone else needs the id of a share link for the document.

**Query Parameters:**
- `linkId`: share link id granting access without a team membership

**Response Codes:**
- **302 Found**: redirect to the file, with `Content-Disposition: attachment`
- **403 Forbidden**: `{"error": "Access denied"}`
- **404 Not Found**: `{"error": "Document not accessible"}`
- **500 Internal Server Error**: `{"error": "Failed to download document"}`""",
    responses={
        302: {"description": "Redirect to the file URL"},
        403: {"description": "Caller may not read this document"},
        404: {"description": "Stored reference did not resolve to a URL"},
        500: {"description": "Download failed"},
    },
)
async def download_document(
    document_id: str,
    link_id: Optional[str] = Query(None, alias="linkId", description="Share link id"),
    session: Optional[SimpleSession] = Depends(get_optional_session),
    session_token: Optional[str] = Depends(get_session_token),
    document_service: DocumentService = Depends(get_document_service),
):
    """Check access to a document and redirect to its file."""
    user_id = session.user_id if session else None
    context = {"document_id": document_id, "user_id": user_id, "link_id": link_id}

    log_operation_start("Document download", **context)

    has_access = await document_service.check_document_access(
        document_id, user_id=user_id, link_id=link_id
    )
    if not has_access:
        raise handle_access_denied("document download", **context)

    try:
        target = await document_service.get_download_target(
            document_id,
            signed=True,
            expires_in=settings.SIGNED_URL_EXPIRATION_SECONDS,
            session_token=session_token,
        )
    except NotAccessibleError:
        raise
    except Exception as e:
        raise handle_generic_error(
            e, "document download", "Failed to download document", **context
        )

    log_operation_success("Document download", filename=target.filename, **context)

    return RedirectResponse(
        url=target.url, status_code=status.HTTP_302_FOUND, headers=target.headers
    )
