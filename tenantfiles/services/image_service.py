"""Service for entities carrying an image."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any
from uuid import UUID

from fastapi import UploadFile

from tenantfiles.core.exceptions import (
    BadArgumentError,
    EmptyPathError,
    ObjectNotFoundError,
    ResourceNotFoundError,
)
from tenantfiles.core.file_helper import IMAGE_SUBDIR, image_file_name
from tenantfiles.core.structured_logging import log_json
from tenantfiles.services.attachment_service import AttachmentTenantService
from tenantfiles.services.file_storage import DMS_BACKEND

logger = logging.getLogger(__name__)


class ImageTenantService(AttachmentTenantService):
    """Store an entity image under ``<upload_dir>/<tenant>/<type>/image/``."""

    async def _read_image(self, file: UploadFile | None) -> bytes:
        if file is None:
            raise BadArgumentError("Image file must not be empty")
        data = await self.read_upload(file)
        if not data:
            raise BadArgumentError("Image file must not be empty")
        return data

    async def _store_image(self, tenant: str, entity: Any, file: UploadFile, data: bytes) -> Any:
        entity = await self.hooks.before_upload(tenant, entity, data)
        await self.assign_code_if_empty(entity)

        directory = self.entity_directory(entity.tenant, IMAGE_SUBDIR)
        target_name = image_file_name(file.filename, entity.code)
        stored_name = await self._execute_safely(
            self.storage.upload(
                tenant=entity.tenant,
                entity_type=self.entity_name,
                path=directory,
                file_name=target_name,
                data=data,
                content_type=file.content_type,
            ),
            None,
            "upload",
            entity_id=entity.id,
            file_name=target_name,
        )
        if stored_name is None:
            return await self.hooks.after_upload(tenant, entity, None)

        # The DMS addresses images by code alone
        if self.storage.name == DMS_BACKEND:
            entity.image_path = stored_name
        else:
            entity.image_path = str(Path(directory, stored_name))
        log_json(
            logger,
            logging.INFO,
            "image_uploaded",
            entity=self.entity_name,
            entity_id=entity.id,
            image_path=entity.image_path,
            size=len(data),
        )
        return await self.hooks.after_upload(tenant, entity, stored_name)

    def _image_location(self, image_path: str) -> tuple[str | None, str]:
        """Split a stored ``image_path`` into the (path, file name) pair of the backend."""
        if self.storage.name == DMS_BACKEND:
            return None, image_path
        location = Path(image_path)
        return str(location.parent), location.name

    async def upload_image(self, tenant: str, entity_id: UUID, file: UploadFile | None) -> Any:
        """Store a new image for an existing entity.

        Raises:
            BadArgumentError: If no file or an empty file is given
            ObjectNotFoundError: If the entity does not exist for the tenant
        """
        data = await self._read_image(file)
        entity = await self.find_by_id(tenant, entity_id)
        if entity is None:
            raise ObjectNotFoundError(f"{self.entity_name} with id {entity_id} not found")

        entity = await self._store_image(tenant, entity, file, data)
        return await self.update(tenant, entity)

    async def download_image(self, tenant: str, entity_id: UUID) -> tuple[Any, bytes]:
        """Read the image of an entity.

        Returns:
            Tuple of (entity, image bytes)

        Raises:
            ResourceNotFoundError: If the entity or its image file is missing
            EmptyPathError: If the entity has no image
        """
        entity = await self.find_by_id(tenant, entity_id)
        if entity is None:
            raise ResourceNotFoundError(f"{self.entity_name} with id {entity_id} not found")
        if not entity.image_path:
            raise EmptyPathError(f"{self.entity_name} {entity_id} has no image")

        path, file_name = self._image_location(entity.image_path)
        data = await self.storage.download(tenant=entity.tenant, path=path, file_name=file_name)
        return entity, data

    async def create_with_image(
        self,
        tenant: str,
        entity: Any,
        file: UploadFile | None = None,
    ) -> Any:
        """Create an entity and store its image when one is given."""
        data = await self._read_image(file) if file is not None else None
        entity = await self.create(tenant, entity)
        if data is not None:
            entity = await self._store_image(tenant, entity, file, data)
            entity = await self.update(tenant, entity)
        return entity

    async def update_with_image(
        self,
        tenant: str,
        entity: Any,
        file: UploadFile | None = None,
    ) -> Any:
        """Update an entity; without a file the stored image is kept."""
        data = await self._read_image(file) if file is not None else None
        entity = await self.update(tenant, entity)
        if data is not None:
            entity = await self._store_image(tenant, entity, file, data)
            entity = await self.update(tenant, entity)
        return entity

    async def _handle_entity_deletion(self, entity: Any) -> bool:
        image_path = entity.image_path
        removed = await super()._handle_entity_deletion(entity)
        if removed and image_path:
            await self.discard_file(entity.tenant, *self._image_location(image_path))
        return removed
