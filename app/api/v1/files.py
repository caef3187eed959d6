"""
File endpoints.

- `POST /files/upload`: store a file for a team and describe it
- `POST /file/s3/get-presigned-get-url`: presign an object key (service credential)
- `POST /file/s3/get-presigned-get-url-proxy`: presign an object key (user session)
"""

import re
import secrets
from typing import Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials

from app.core.config import settings
from app.core.exceptions import (
    BadRequestError,
    DocShareError,
    PayloadTooLargeError,
    STATUS_CODE_MAP,
    UnauthorizedError,
    public_message,
)
from app.core.ratelimit import rate_limit
from app.core.simple_auth import SimpleSession, get_current_session, session_security
from app.models.schemas import PresignRequest, PresignResponse, UploadResponse
from app.services.document import DocumentService
from app.api.v1.documents_modules.common import (
    get_document_service,
    log_operation_start,
    log_operation_success,
    logger,
)

router = APIRouter()

# Team ids become the first segment of the storage key
_TEAM_ID_PATTERN = re.compile(r"[A-Za-z0-9_-]{1,64}")


@router.post(
    "/files/upload",
    response_model=UploadResponse,
    summary="Upload File",
    operation_id="uploadFile",
    dependencies=[Depends(rate_limit("upload"))],
    description="""Upload a file into the team's storage area.

**Authentication Required:** session cookie or `Authorization: Bearer <token>`

**Query Parameters:**
- `teamId`: team the file belongs to (required)

**Form Fields:**
- `file`: the file (max 100MB)

**Response Format:**
```json
{
  "success": true,
  "data": {
    "path": "team_123/1718000000000-k3j2h1g0f9d8s.pdf",
    "publicUrl": "https://storage.googleapis.com/documents/team_123/...",
    "fileName": "report.pdf",
    "contentType": "application/pdf",
    "fileSize": 1024567,
    "numPages": 12
  }
}
```""",
    responses={
        400: {"description": "Missing team id or file"},
        401: {"description": "No valid session"},
        413: {"description": "File exceeds the maximum upload size"},
        429: {"description": "Rate limit exceeded"},
        500: {"description": "Upload failed"},
    },
)
async def upload_file(
    team_id: Optional[str] = Query(None, alias="teamId"),
    file: Optional[UploadFile] = File(None),
    session: SimpleSession = Depends(get_current_session),
    document_service: DocumentService = Depends(get_document_service),
):
    """Store an uploaded file and return its descriptor."""
    context = {"user_id": session.user_id, "team_id": team_id}

    try:
        if not team_id:
            raise BadRequestError("Team ID is required")
        if not _TEAM_ID_PATTERN.fullmatch(team_id):
            raise BadRequestError("Invalid team ID")

        log_operation_start(
            "File upload", filename=file.filename if file else None, **context
        )

        descriptor = await document_service.upload_file(file, team_id)

        log_operation_success("File upload", path=descriptor.path, **context)
        return UploadResponse(data=descriptor)

    except (BadRequestError, PayloadTooLargeError):
        if file is not None:
            await file.close()
        raise
    except Exception as e:
        logger.error(
            "File upload failed",
            error=str(e),
            error_type=type(e).__name__,
            exc_info=True,
            **context,
        )
        if isinstance(e, DocShareError):
            message = public_message(e)
        elif settings.is_development:
            message = str(e)
        else:
            message = "An unexpected error occurred"
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Upload failed", "message": message},
        )


def _presign_error(e: DocShareError) -> JSONResponse:
    """Presign errors carry `message`, which is what the presign client reads."""
    return JSONResponse(
        status_code=STATUS_CODE_MAP.get(e.error_code, status.HTTP_500_INTERNAL_SERVER_ERROR),
        content={"message": public_message(e), "code": e.error_code},
    )


async def _presign(document_service: DocumentService, key: str) -> PresignResponse:
    url = await document_service.create_signed_url(
        key, settings.SIGNED_URL_EXPIRATION_SECONDS
    )
    return PresignResponse(url=url)


def require_internal_api_key(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(session_security),
) -> None:
    """Accept only the configured service credential as bearer token."""
    expected = settings.INTERNAL_API_KEY
    provided = credentials.credentials if credentials else ""
    if not expected or not secrets.compare_digest(provided.encode(), expected.encode()):
        raise UnauthorizedError()


@router.post(
    "/file/s3/get-presigned-get-url",
    response_model=PresignResponse,
    summary="Presign Object Key",
    operation_id="getPresignedGetUrl",
    dependencies=[Depends(rate_limit("presign")), Depends(require_internal_api_key)],
)
async def get_presigned_get_url(
    body: PresignRequest,
    document_service: DocumentService = Depends(get_document_service),
):
    """Presign a GET URL for server-side callers holding the service credential."""
    try:
        return await _presign(document_service, body.key)
    except DocShareError as e:
        logger.warning("Presign failed", key=body.key, error=e.message)
        return _presign_error(e)


@router.post(
    "/file/s3/get-presigned-get-url-proxy",
    response_model=PresignResponse,
    summary="Presign Object Key (session)",
    operation_id="getPresignedGetUrlProxy",
    dependencies=[Depends(rate_limit("presign"))],
)
async def get_presigned_get_url_proxy(
    body: PresignRequest,
    session: SimpleSession = Depends(get_current_session),
    document_service: DocumentService = Depends(get_document_service),
):
    """Presign a GET URL for an authenticated user."""
    try:
        return await _presign(document_service, body.key)
    except DocShareError as e:
        logger.warning(
            "Presign failed", key=body.key, user_id=session.user_id, error=e.message
        )
        return _presign_error(e)
