"""HTTP client for the remote document management service (DMS)."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from tenantfiles.core.config import get_settings
from tenantfiles.core.exceptions import (
    RemoteCallFailedError,
    ResourceNotFoundError,
    ServiceNotDefinedError,
)
from tenantfiles.core.structured_logging import log_json

logger = logging.getLogger(__name__)


class DmsClient:
    """Client for the linked-file API of the DMS.

    Endpoints (relative to ``base_url``):

    - ``POST /upload`` multipart form: ``domain``, ``code``, ``path``,
      ``tags``, ``categoryNames`` and ``file``; answers with the stored file
      description including its ``code``
    - ``GET /download?domain=&code=`` returns the file bytes
    - ``DELETE /delete?domain=&code=`` returns ``true`` when deleted
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            transport=self._transport,
        )

    async def upload(
        self,
        *,
        domain: str,
        code: str,
        path: str,
        file_name: str,
        data: bytes,
        content_type: str | None = None,
        tags: list[str] | None = None,
        category_names: list[str] | None = None,
    ) -> dict[str, Any]:
        """Upload a file to the DMS.

        Returns:
            The JSON description of the stored file

        Raises:
            RemoteCallFailedError: If the DMS answers with an error status
        """
        form: dict[str, Any] = {"domain": domain, "code": code, "path": path}
        if tags:
            form["tags"] = tags
        if category_names:
            form["categoryNames"] = category_names

        async with self._client() as client:
            response = await client.post(
                "/upload",
                data=form,
                files={"file": (file_name, data, content_type or "application/octet-stream")},
            )

        if response.is_error:
            log_json(
                logger,
                logging.ERROR,
                "dms_call_failed",
                operation="upload",
                status_code=response.status_code,
                code=code,
            )
            raise RemoteCallFailedError(
                f"DMS upload failed with status {response.status_code}"
            )
        return response.json()

    async def download(self, *, domain: str, code: str) -> bytes:
        """Download a file from the DMS.

        Raises:
            ResourceNotFoundError: If the DMS does not know the file
            RemoteCallFailedError: On any other error status
        """
        async with self._client() as client:
            response = await client.get("/download", params={"domain": domain, "code": code})

        if response.status_code == 404:
            raise ResourceNotFoundError(f"File {code} not found in DMS")
        if response.is_error:
            log_json(
                logger,
                logging.ERROR,
                "dms_call_failed",
                operation="download",
                status_code=response.status_code,
                code=code,
            )
            raise RemoteCallFailedError(
                f"DMS download failed with status {response.status_code}"
            )
        return response.content

    async def delete(self, *, domain: str, code: str) -> bool:
        async with self._client() as client:
            response = await client.delete("/delete", params={"domain": domain, "code": code})

        if response.is_error:
            log_json(
                logger,
                logging.WARNING,
                "dms_call_failed",
                operation="delete",
                status_code=response.status_code,
                code=code,
            )
            return False
        try:
            return bool(response.json())
        except ValueError:
            return True


# Singleton instance
_dms_client: DmsClient | None = None


def get_dms_client() -> DmsClient:
    """Get DMS client singleton instance.

    Raises:
        ServiceNotDefinedError: If no DMS base URL is configured
    """
    global _dms_client
    if _dms_client is None:
        settings = get_settings()
        if not settings.dms_base_url:
            raise ServiceNotDefinedError("DMS base URL is not configured")
        _dms_client = DmsClient(settings.dms_base_url, timeout=settings.dms_timeout_seconds)
    return _dms_client
