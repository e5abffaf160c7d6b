"""Service for entities carrying a single attached file."""

from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from fastapi import UploadFile

from tenantfiles.core.exceptions import EmptyFileError, ObjectNotFoundError
from tenantfiles.core.file_helper import get_extension
from tenantfiles.core.structured_logging import log_json
from tenantfiles.services.attachment_service import AttachmentTenantService

logger = logging.getLogger(__name__)


class FileTenantService(AttachmentTenantService):
    """Create, update, upload and download an entity together with its file.

    The file of an entity lives at ``<upload_dir>/<tenant>/<type>/<code>``
    on local storage, or under its code in the DMS.
    """

    async def _read_file(self, file: UploadFile | None) -> bytes | None:
        if file is None:
            return None
        data = await self.read_upload(file)
        if not data:
            raise EmptyFileError(f"Uploaded file '{file.filename}' is empty")
        return data

    def _set_file_attributes(self, entity: Any, file: UploadFile) -> None:
        entity.path = self.entity_directory(entity.tenant)
        entity.original_file_name = file.filename
        entity.extension = get_extension(file.filename)
        entity.type = file.content_type

    async def _store_file(self, tenant: str, entity: Any, data: bytes) -> Any:
        entity = await self.hooks.before_upload(tenant, entity, data)
        target_name = entity.code or str(entity.id)
        stored_name = await self._execute_safely(
            self.storage.upload(
                tenant=entity.tenant,
                entity_type=self.entity_name,
                path=entity.path,
                file_name=target_name,
                data=data,
                content_type=entity.type,
                tags=entity.tags,
            ),
            None,
            "upload",
            entity_id=entity.id,
            file_name=target_name,
        )
        entity.file_name = stored_name
        await self.db.flush()
        if stored_name is not None:
            log_json(
                logger,
                logging.INFO,
                "file_uploaded",
                entity=self.entity_name,
                entity_id=entity.id,
                file_name=stored_name,
                size=len(data),
            )
        return await self.hooks.after_upload(tenant, entity, stored_name)

    async def create_with_file(
        self,
        tenant: str,
        entity: Any,
        file: UploadFile | None = None,
    ) -> Any:
        """Create an entity and store its file.

        Args:
            tenant: Calling tenant
            entity: New entity
            file: Optional uploaded file

        Returns:
            Created entity

        Raises:
            EmptyFileError: If the uploaded file has no content
        """
        self._validate_tenant(tenant)
        self._validate_object(entity)
        self._assign_tenant(tenant, entity)

        data = await self._read_file(file)
        if data is not None:
            await self.assign_code_if_empty(entity)
            self._set_file_attributes(entity, file)

        entity = await self.create(tenant, entity)
        if data is not None:
            entity = await self._store_file(tenant, entity, data)
        return entity

    async def update_with_file(
        self,
        tenant: str,
        entity_id: UUID,
        entity: Any,
        file: UploadFile | None = None,
    ) -> Any:
        """Update an entity and optionally replace its file.

        Without a file the stored path, names and extension are kept.

        Raises:
            ObjectNotFoundError: If the entity does not exist
            TenantNotAllowedError: If the entity belongs to another tenant
            EmptyFileError: If the uploaded file has no content
        """
        self._validate_tenant(tenant)
        self._validate_object(entity)
        stored = await self._load(entity_id)
        if stored is None:
            raise ObjectNotFoundError(f"{self.entity_name} with id {entity_id} not found")
        self.validate_tenant_access(tenant, stored)

        data = await self._read_file(file)
        entity.id = entity_id
        if data is not None:
            await self.assign_code_if_empty(stored)
            self._set_file_attributes(stored, file)

        updated = await self.update(tenant, entity)
        if data is not None:
            updated = await self._store_file(tenant, updated, data)
        return updated

    async def upload_file(self, tenant: str, entity_id: UUID, file: UploadFile | None) -> Any:
        """Attach a file to an existing entity.

        Raises:
            ObjectNotFoundError: If the entity does not exist for the tenant
            EmptyFileError: If no file or an empty file is given
        """
        entity = await self.find_by_id(tenant, entity_id)
        if entity is None:
            raise ObjectNotFoundError(f"{self.entity_name} with id {entity_id} not found")

        data = await self._read_file(file)
        if data is None:
            raise EmptyFileError("No file provided")

        await self.assign_code_if_empty(entity)
        self._set_file_attributes(entity, file)
        entity = await self._store_file(tenant, entity, data)
        return await self.update(tenant, entity)

    async def download_file(
        self,
        tenant: str,
        entity_id: UUID,
        version: int | None = None,
    ) -> tuple[Any, bytes]:
        """Read the file of an entity.

        ``version`` is accepted for API compatibility; a single-file entity
        keeps only its latest content.

        Returns:
            Tuple of (entity, file bytes)

        Raises:
            ObjectNotFoundError: If the entity does not exist for the tenant
            EmptyPathError: If the entity has no file
            ResourceNotFoundError: If the stored file is missing
        """
        entity = await self.find_by_id(tenant, entity_id)
        if entity is None:
            raise ObjectNotFoundError(f"{self.entity_name} with id {entity_id} not found")

        data = await self.storage.download(
            tenant=entity.tenant,
            path=entity.path,
            file_name=entity.file_name,
        )
        return entity, data

    async def _handle_entity_deletion(self, entity: Any) -> bool:
        path, file_name = entity.path, entity.file_name
        removed = await super()._handle_entity_deletion(entity)
        if removed and path and file_name:
            await self.discard_file(entity.tenant, path, file_name)
        return removed
