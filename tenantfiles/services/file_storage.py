"""Physical storage of attachment bytes.

Two interchangeable backends: ``LocalFileStorage`` writes below the upload
directory, ``DmsFileStorage`` forwards to the remote document management
service. The backend is chosen once from configuration.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path

from tenantfiles.core.config import Settings, get_settings
from tenantfiles.core.exceptions import (
    EmptyPathError,
    FileNotFoundInStorageError,
    ResourceNotFoundError,
)
from tenantfiles.core.file_helper import save_bytes
from tenantfiles.core.metrics import observe_file_transfer, observe_storage_operation
from tenantfiles.core.structured_logging import log_json
from tenantfiles.services.dms_client import DmsClient, get_dms_client

logger = logging.getLogger(__name__)

LOCAL_BACKEND = "local"
DMS_BACKEND = "dms"


class FileStorageBackend(ABC):
    """Where attachment bytes live."""

    name = "backend"

    @abstractmethod
    async def upload(
        self,
        *,
        tenant: str,
        entity_type: str,
        path: str,
        file_name: str,
        data: bytes,
        content_type: str | None = None,
        tags: list[str] | None = None,
    ) -> str:
        """Store bytes and return the name under which they can be read back."""

    @abstractmethod
    async def download(self, *, tenant: str, path: str | None, file_name: str | None) -> bytes:
        """Read stored bytes."""

    @abstractmethod
    async def delete(self, *, tenant: str, path: str | None, file_name: str | None) -> bool:
        """Remove stored bytes."""


class LocalFileStorage(FileStorageBackend):
    """Files on the local filesystem at ``<path>/<file_name>``."""

    name = LOCAL_BACKEND

    async def upload(
        self,
        *,
        tenant: str,
        entity_type: str,
        path: str,
        file_name: str,
        data: bytes,
        content_type: str | None = None,
        tags: list[str] | None = None,
    ) -> str:
        if not path:
            raise EmptyPathError("Storage path must not be empty")
        target = save_bytes(path, file_name, data)
        observe_storage_operation(backend=self.name, operation="upload", outcome="success")
        observe_file_transfer(direction="upload", size=len(data))
        log_json(
            logger,
            logging.INFO,
            "file_stored",
            backend=self.name,
            path=str(target),
            size=len(data),
        )
        return file_name

    async def download(self, *, tenant: str, path: str | None, file_name: str | None) -> bytes:
        """Read ``path/file_name``.

        Raises:
            EmptyPathError: If no path is recorded
            ResourceNotFoundError: If the file does not exist
        """
        if not path:
            raise EmptyPathError("File path is empty")
        target = Path(path, file_name or "")
        if not target.is_file():
            observe_storage_operation(backend=self.name, operation="download", outcome="not_found")
            raise ResourceNotFoundError(f"File not found: {target.name}")
        data = target.read_bytes()
        observe_storage_operation(backend=self.name, operation="download", outcome="success")
        observe_file_transfer(direction="download", size=len(data))
        return data

    async def delete(self, *, tenant: str, path: str | None, file_name: str | None) -> bool:
        """Delete ``path/file_name``.

        Raises:
            FileNotFoundInStorageError: If the file does not exist
        """
        target = Path(path or "", file_name or "")
        if not path or not file_name or not target.is_file():
            observe_storage_operation(backend=self.name, operation="delete", outcome="not_found")
            raise FileNotFoundInStorageError(f"File not found: {file_name}")
        target.unlink()
        observe_storage_operation(backend=self.name, operation="delete", outcome="success")
        log_json(logger, logging.INFO, "file_removed", backend=self.name, path=str(target))
        return True


class DmsFileStorage(FileStorageBackend):
    """Files kept by the remote DMS, addressed by tenant (domain) and code."""

    name = DMS_BACKEND

    def __init__(self, client: DmsClient):
        self.client = client

    async def upload(
        self,
        *,
        tenant: str,
        entity_type: str,
        path: str,
        file_name: str,
        data: bytes,
        content_type: str | None = None,
        tags: list[str] | None = None,
    ) -> str:
        result = await self.client.upload(
            domain=tenant,
            code=file_name,
            path="/" + entity_type.lower(),
            file_name=file_name,
            data=data,
            content_type=content_type,
            tags=tags,
            category_names=[entity_type],
        )
        observe_storage_operation(backend=self.name, operation="upload", outcome="success")
        observe_file_transfer(direction="upload", size=len(data))
        return result.get("code") or file_name

    async def download(self, *, tenant: str, path: str | None, file_name: str | None) -> bytes:
        if not file_name:
            raise EmptyPathError("File code is empty")
        data = await self.client.download(domain=tenant, code=file_name)
        observe_storage_operation(backend=self.name, operation="download", outcome="success")
        observe_file_transfer(direction="download", size=len(data))
        return data

    async def delete(self, *, tenant: str, path: str | None, file_name: str | None) -> bool:
        if not file_name:
            return False
        deleted = await self.client.delete(domain=tenant, code=file_name)
        observe_storage_operation(
            backend=self.name,
            operation="delete",
            outcome="success" if deleted else "failure",
        )
        return deleted


def get_file_storage_backend(settings: Settings | None = None) -> FileStorageBackend:
    """Select the storage backend from configuration."""
    settings = settings or get_settings()
    if settings.dms_enabled:
        return DmsFileStorage(get_dms_client())
    return LocalFileStorage()
