"""
Client for the presigned-URL exchange.

Object-store keys are never handed to callers directly. They are traded for
a short-lived GET URL through the presign endpoints, either the internal one
(authenticated with the service credential) or the session-gated proxy.
"""

from typing import Optional

import httpx

from app.core.config import settings
from app.core.exceptions import PresignFailedError
from app.core.logging import get_service_logger

logger = get_service_logger("presign")


class PresignClient:
    """Exchanges object-store keys for presigned GET URLs over HTTP."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        internal_api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.BASE_URL).rstrip("/")
        self.internal_api_key = internal_api_key
        self.timeout = timeout or settings.PRESIGN_TIMEOUT_SECONDS
        self._transport = transport

    @classmethod
    def from_settings(cls, transport: Optional[httpx.AsyncBaseTransport] = None):
        return cls(
            base_url=settings.BASE_URL,
            internal_api_key=settings.INTERNAL_API_KEY,
            timeout=settings.PRESIGN_TIMEOUT_SECONDS,
            transport=transport,
        )

    def _endpoint(self) -> str:
        if self.internal_api_key:
            return f"{self.base_url}{settings.API_PREFIX}{settings.PRESIGN_ENDPOINT}"
        return f"{self.base_url}{settings.API_PREFIX}{settings.PRESIGN_PROXY_ENDPOINT}"

    def _headers(self, session_token: Optional[str]) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.internal_api_key:
            headers["Authorization"] = f"Bearer {self.internal_api_key}"
        elif session_token:
            # The proxy endpoint authenticates the caller's own session
            headers["Cookie"] = f"{settings.SESSION_COOKIE_NAME}={session_token}"
        return headers

    async def get_presigned_url(
        self, key: str, *, session_token: Optional[str] = None
    ) -> str:
        """
        Trade an object-store key for a presigned GET URL.

        Args:
            key: Object key as stored on the document
            session_token: Caller's session, forwarded to the proxy endpoint
                when no service credential is configured

        Returns:
            The URL from the presign service, verbatim

        Raises:
            PresignFailedError: the service answered with a non-2xx status
        """
        endpoint = self._endpoint()

        async with httpx.AsyncClient(
            timeout=self.timeout, transport=self._transport
        ) as client:
            response = await client.post(
                endpoint, json={"key": key}, headers=self._headers(session_token)
            )

        if not response.is_success:
            message = _error_message(response)
            logger.warning(
                "Presign request failed",
                endpoint=endpoint,
                status_code=response.status_code,
                message=message,
            )
            raise PresignFailedError(message, status_code=response.status_code)

        url = response.json()["url"]
        logger.debug("Presigned URL obtained", endpoint=endpoint)
        return url


def _error_message(response: httpx.Response) -> str:
    """Best available error message from a failed presign response."""
    fallback = f"Request failed with status {response.status_code}"

    content_type = response.headers.get("content-type", "")
    if "application/json" in content_type:
        try:
            body = response.json()
        except ValueError:
            return response.text or fallback
        if isinstance(body, dict) and body.get("message"):
            return str(body["message"])
        return fallback

    return response.text or fallback


def get_presign_client() -> PresignClient:
    """Dependency providing a presign client configured from settings."""
    return PresignClient.from_settings()
