"""Base class of the services that attach files to tenant entities."""

from __future__ import annotations

import logging
from collections.abc import Awaitable
from typing import Any, TypeVar

from fastapi import UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from tenantfiles.core.exceptions import (
    FileNotFoundInStorageError,
    FileTooLargeError,
    RemoteCallFailedError,
    ResourceNotFoundError,
)
from tenantfiles.core.file_helper import build_entity_path
from tenantfiles.core.metrics import observe_storage_operation
from tenantfiles.core.structured_logging import log_json
from tenantfiles.services.crud_tenant_service import CrudTenantService
from tenantfiles.services.file_storage import FileStorageBackend, get_file_storage_backend

logger = logging.getLogger(__name__)

T = TypeVar("T")


class AttachmentTenantService(CrudTenantService):
    """CRUD service owning a file storage backend."""

    def __init__(
        self,
        db: AsyncSession,
        model: type | None = None,
        *,
        storage: FileStorageBackend | None = None,
        **kwargs: Any,
    ):
        """Initialize attachment service.

        Args:
            db: Database session
            model: Entity class handled by the service
            storage: Storage backend; selected from settings when omitted
            **kwargs: Passed to ``CrudTenantService``
        """
        super().__init__(db, model, **kwargs)
        self.storage = storage or get_file_storage_backend(self.settings)

    def entity_directory(self, tenant: str, *sub: str) -> str:
        """Storage directory of this entity type: ``<upload_dir>/<tenant>/<type>/...``."""
        return build_entity_path(self.settings.upload_dir, tenant, self.entity_name, *sub)

    async def read_upload(self, file: UploadFile) -> bytes:
        """Read an uploaded file fully.

        Raises:
            FileTooLargeError: If the file exceeds the configured maximum size
        """
        content = await file.read()
        if len(content) > self.settings.max_upload_size:
            raise FileTooLargeError(
                f"File too large. Maximum size is {self.settings.max_upload_size // (1024 * 1024)}MB"
            )
        await file.seek(0)
        return content

    async def discard_file(self, tenant: str, path: str | None, file_name: str | None) -> None:
        """Remove stored bytes of a deleted entity, logging when they are already gone."""
        try:
            await self.storage.delete(tenant=tenant, path=path, file_name=file_name)
        except (FileNotFoundInStorageError, ResourceNotFoundError, RemoteCallFailedError) as exc:
            log_json(
                logger,
                logging.WARNING,
                "file_discard_failed",
                entity=self.entity_name,
                path=path,
                file_name=file_name,
                error=exc.message,
            )

    async def _execute_safely(self, operation: Awaitable[T], default: T, action: str, **fields: Any) -> T:
        """Await a storage call; on failure log it and return ``default``.

        The database change around the call goes ahead without the stored
        bytes, leaving the entity with an empty storage reference.
        """
        try:
            return await operation
        except Exception as exc:
            observe_storage_operation(backend=self.storage.name, operation=action, outcome="failure")
            log_json(
                logger,
                logging.ERROR,
                "storage_call_failed",
                entity=self.entity_name,
                action=action,
                backend=self.storage.name,
                error=str(exc),
                exception=exc.__class__.__name__,
                **fields,
            )
            return default
