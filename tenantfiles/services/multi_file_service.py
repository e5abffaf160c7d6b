"""Service for entities with a collection of additional files."""

from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from fastapi import UploadFile
from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import AsyncSession

from tenantfiles.core.checksum import crc16, crc32
from tenantfiles.core.exceptions import (
    EmptyFileError,
    EmptyFileListError,
    FileNotFoundInStorageError,
    ObjectNotFoundError,
)
from tenantfiles.core.file_helper import ADDITIONAL_SUBDIR, get_extension
from tenantfiles.core.structured_logging import log_json
from tenantfiles.models.mixins import LinkedFileMixin
from tenantfiles.services.attachment_service import AttachmentTenantService
from tenantfiles.services.next_code_service import CodeGenerator, NextCodeService

logger = logging.getLogger(__name__)

INITIAL_VERSION = 1


class MultiFileTenantService(AttachmentTenantService):
    """Attach, download and remove additional files of a parent entity.

    Linked files are kept in the parent's ``additional_files`` collection
    and persisted by updating the parent. Storage failures during upload and
    delete are logged and do not abort the database change.
    """

    linked_file_model: type[LinkedFileMixin] | None = None

    def __init__(
        self,
        db: AsyncSession,
        model: type | None = None,
        *,
        linked_file_model: type[LinkedFileMixin] | None = None,
        linked_code_generator: CodeGenerator | None = None,
        **kwargs: Any,
    ):
        super().__init__(db, model, **kwargs)
        self.linked_file_model = linked_file_model or type(self).linked_file_model
        if self.linked_file_model is None:
            raise ValueError(f"{type(self).__name__} requires a linked file model")
        self.linked_code_generator = linked_code_generator or NextCodeService(db).generator_for(
            self.linked_file_model
        )

    async def create(self, tenant: str, entity: Any) -> Any:
        # Start new parents with a loaded, empty collection
        if entity is not None and "additional_files" not in inspect(entity).dict:
            entity.additional_files = []
        return await super().create(tenant, entity)

    async def _get_parent(self, tenant: str, parent_id: UUID) -> Any:
        parent = await self.find_by_id(tenant, parent_id)
        if parent is None:
            raise ObjectNotFoundError(f"{self.entity_name} with id {parent_id} not found")
        return parent

    async def upload_additional_files(
        self,
        tenant: str,
        parent_id: UUID,
        files: list[UploadFile] | None,
    ) -> list[Any]:
        """Attach several files to a parent entity.

        Returns:
            All linked files of the parent

        Raises:
            EmptyFileListError: If no file is given
        """
        if not files:
            raise EmptyFileListError("File list must not be empty")
        linked_files: list[Any] = []
        for file in files:
            linked_files = await self.upload_additional_file(tenant, parent_id, file)
        return linked_files

    async def upload_additional_file(
        self,
        tenant: str,
        parent_id: UUID,
        file: UploadFile | None,
    ) -> list[Any]:
        """Attach one file to a parent entity.

        The linked file gets a generated code, checksums, its size and
        version 1.

        Returns:
            All linked files of the parent

        Raises:
            EmptyFileError: If no file or an empty file is given
            ObjectNotFoundError: If the parent does not exist for the tenant
        """
        if file is None:
            raise EmptyFileError("No file provided")
        data = await self.read_upload(file)
        if not data:
            raise EmptyFileError(f"Uploaded file '{file.filename}' is empty")

        parent = await self._get_parent(tenant, parent_id)
        linked = self.linked_file_model(
            code=await self.linked_code_generator(parent.tenant),
            tenant=parent.tenant,
            original_file_name=file.filename,
            extension=get_extension(file.filename),
            path=self.entity_directory(parent.tenant, ADDITIONAL_SUBDIR),
            mimetype=file.content_type,
            crc16=crc16(data),
            crc32=crc32(data),
            size=len(data),
            version=INITIAL_VERSION,
            tags=getattr(parent, "tags", None),
        )

        linked = await self.hooks.before_upload(tenant, linked, data)
        stored_name = await self._execute_safely(
            self.storage.upload(
                tenant=linked.tenant,
                entity_type=self.entity_name,
                path=linked.path,
                file_name=linked.code,
                data=data,
                content_type=linked.mimetype,
                tags=linked.tags,
            ),
            None,
            "upload",
            code=linked.code,
        )
        linked.file_name = stored_name or linked.code
        linked = await self.hooks.after_upload(tenant, linked, stored_name)

        parent.additional_files.append(linked)
        parent = await self.update(tenant, parent)
        log_json(
            logger,
            logging.INFO,
            "additional_file_uploaded",
            entity=self.entity_name,
            entity_id=parent.id,
            file_id=linked.id,
            code=linked.code,
            size=linked.size,
            crc32=linked.crc32,
        )
        return list(parent.additional_files)

    def _find_linked_file(self, parent: Any, file_id: UUID, version: int | None = None) -> Any | None:
        for linked in parent.additional_files:
            if linked.id == file_id and (version is None or linked.version == version):
                return linked
        return None

    async def download_additional_file(
        self,
        tenant: str,
        parent_id: UUID,
        file_id: UUID,
        version: int | None = None,
    ) -> tuple[Any, bytes]:
        """Read one additional file.

        Returns:
            Tuple of (linked file, bytes)

        Raises:
            ObjectNotFoundError: If the parent or the file (id and version) is missing
        """
        parent = await self._get_parent(tenant, parent_id)
        linked = self._find_linked_file(parent, file_id, version)
        if linked is None:
            raise ObjectNotFoundError(
                f"File {file_id} (version {version}) not found for {self.entity_name} {parent_id}"
            )

        data = await self.storage.download(
            tenant=linked.tenant,
            path=linked.path,
            file_name=linked.file_name,
        )
        return linked, data

    async def delete_additional_file(self, tenant: str, parent_id: UUID, file_id: UUID) -> bool:
        """Remove one additional file from its parent and from storage.

        Raises:
            ObjectNotFoundError: If the parent does not exist for the tenant
            FileNotFoundInStorageError: If the parent has no such file
        """
        parent = await self._get_parent(tenant, parent_id)
        linked = self._find_linked_file(parent, file_id)
        if linked is None:
            raise FileNotFoundInStorageError(
                f"File {file_id} not found for {self.entity_name} {parent_id}"
            )

        parent.additional_files.remove(linked)
        await self._execute_safely(
            self.storage.delete(tenant=linked.tenant, path=linked.path, file_name=linked.file_name),
            False,
            "delete",
            code=linked.code,
        )
        await self.update(tenant, parent)
        log_json(
            logger,
            logging.INFO,
            "additional_file_deleted",
            entity=self.entity_name,
            entity_id=parent.id,
            file_id=file_id,
        )
        return True

    async def _handle_entity_deletion(self, entity: Any) -> bool:
        linked_files = list(entity.additional_files)
        removed = await super()._handle_entity_deletion(entity)
        if removed:
            for linked in linked_files:
                await self.discard_file(linked.tenant, linked.path, linked.file_name)
        return removed
