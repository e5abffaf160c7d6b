"""Router builders for tenant resources.

Each builder adds the routes of one capability, bound to a service class,
to a router (a new one unless given). Resource modules add the attachment
routes before the CRUD routes so that ``/file``, ``/image`` and
``/multi-files`` are matched ahead of ``/{entity_id}``.
"""

from pathlib import PurePath
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from tenantfiles.api.deps import get_tenant
from tenantfiles.api.responses import file_response, parse_form_payload
from tenantfiles.core.database import get_db
from tenantfiles.core.exceptions import ObjectNotFoundError
from tenantfiles.core.file_helper import IMAGE_MEDIA_TYPE
from tenantfiles.services.crud_tenant_service import CrudTenantService


def _service_dependency(service_class: type[CrudTenantService]):
    def get_service(db: AsyncSession = Depends(get_db)) -> CrudTenantService:
        return service_class(db)

    return get_service


def build_crud_router(
    service_class: type[CrudTenantService],
    *,
    create_schema: type[BaseModel],
    update_schema: type[BaseModel],
    response_schema: type[BaseModel],
    router: APIRouter | None = None,
) -> APIRouter:
    """Build list/count/filter/get/create/batch/update/delete routes.

    Args:
        service_class: Service handling the resource
        create_schema: Request body for POST
        update_schema: Request body for PUT (unset fields are left unchanged)
        response_schema: Response body for a single entity
        router: Router to add the routes to

    Returns:
        Router to include under the resource prefix
    """
    router = router if router is not None else APIRouter()
    model = service_class.model
    get_service = _service_dependency(service_class)

    def to_response(entity) -> BaseModel:
        return response_schema.model_validate(entity)

    @router.get("", response_model=list[response_schema], summary="List entities")
    async def list_entities(
        page: int | None = Query(None, ge=0),
        size: int | None = Query(None, ge=1),
        tenant: str = Depends(get_tenant),
        service: CrudTenantService = Depends(get_service),
    ):
        """List the tenant's entities; ``page`` is zero based."""
        return [to_response(e) for e in await service.find_all(tenant, page, size)]

    @router.get("/count", response_model=int, summary="Count entities")
    async def count_entities(
        tenant: str = Depends(get_tenant),
        service: CrudTenantService = Depends(get_service),
    ) -> int:
        return await service.count(tenant)

    @router.get("/filter", response_model=list[response_schema], summary="Filter entities")
    async def filter_entities(
        criteria: str | None = Query(None, description="Criteria expression, e.g. title~draft&active=true"),
        page: int | None = Query(None, ge=0),
        size: int | None = Query(None, ge=1),
        tenant: str = Depends(get_tenant),
        service: CrudTenantService = Depends(get_service),
    ):
        entities = await service.find_all_by_criteria_filter(tenant, criteria, page, size)
        return [to_response(e) for e in entities]

    @router.get("/filter/criteria", response_model=dict[str, str], summary="Filterable fields")
    async def criteria_fields(service: CrudTenantService = Depends(get_service)) -> dict[str, str]:
        return service.get_criteria_fields()

    @router.get("/{entity_id}", response_model=response_schema, summary="Get entity")
    async def get_entity(
        entity_id: UUID,
        tenant: str = Depends(get_tenant),
        service: CrudTenantService = Depends(get_service),
    ):
        entity = await service.find_by_id(tenant, entity_id)
        if entity is None:
            raise ObjectNotFoundError(f"{service.entity_name} with id {entity_id} not found")
        return to_response(entity)

    @router.post(
        "",
        response_model=response_schema,
        status_code=status.HTTP_201_CREATED,
        summary="Create entity",
    )
    async def create_entity(
        payload: create_schema,
        tenant: str = Depends(get_tenant),
        service: CrudTenantService = Depends(get_service),
    ):
        entity = await service.create(tenant, model(**payload.model_dump()))
        await service.db.commit()
        return to_response(entity)

    @router.post(
        "/batch",
        response_model=list[response_schema],
        status_code=status.HTTP_201_CREATED,
        summary="Create entities",
    )
    async def create_entities(
        payload: list[create_schema],
        tenant: str = Depends(get_tenant),
        service: CrudTenantService = Depends(get_service),
    ):
        entities = await service.create_batch(tenant, [model(**item.model_dump()) for item in payload])
        await service.db.commit()
        return [to_response(e) for e in entities]

    @router.put("/{entity_id}", response_model=response_schema, summary="Update entity")
    async def update_entity(
        entity_id: UUID,
        payload: update_schema,
        tenant: str = Depends(get_tenant),
        service: CrudTenantService = Depends(get_service),
    ):
        entity = model(**payload.model_dump(exclude_unset=True))
        entity.id = entity_id
        updated = await service.update(tenant, entity)
        await service.db.commit()
        return to_response(updated)

    @router.delete("/{entity_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete entity")
    async def delete_entity(
        entity_id: UUID,
        tenant: str = Depends(get_tenant),
        service: CrudTenantService = Depends(get_service),
    ) -> None:
        """Delete an entity; cancelable entities are canceled instead."""
        await service.delete(tenant, entity_id)
        await service.db.commit()

    return router


def build_file_router(
    service_class: type,
    *,
    create_schema: type[BaseModel],
    update_schema: type[BaseModel],
    response_schema: type[BaseModel],
    router: APIRouter | None = None,
) -> APIRouter:
    """Build the routes creating, updating, uploading and downloading an entity file.

    Create and update take a multipart form: a JSON ``data`` part with the
    entity fields and an optional ``file`` part.
    """
    router = router if router is not None else APIRouter()
    model = service_class.model
    get_service = _service_dependency(service_class)

    @router.post(
        "/file",
        response_model=response_schema,
        status_code=status.HTTP_201_CREATED,
        summary="Create entity with file",
    )
    async def create_with_file(
        data: str = Form(...),
        file: UploadFile | None = File(None),
        tenant: str = Depends(get_tenant),
        service=Depends(get_service),
    ):
        payload = parse_form_payload(create_schema, data)
        entity = await service.create_with_file(tenant, model(**payload.model_dump()), file)
        await service.db.commit()
        return response_schema.model_validate(entity)

    @router.put("/file/{entity_id}", response_model=response_schema, summary="Update entity with file")
    async def update_with_file(
        entity_id: UUID,
        data: str = Form(...),
        file: UploadFile | None = File(None),
        tenant: str = Depends(get_tenant),
        service=Depends(get_service),
    ):
        payload = parse_form_payload(update_schema, data)
        entity = model(**payload.model_dump(exclude_unset=True))
        updated = await service.update_with_file(tenant, entity_id, entity, file)
        await service.db.commit()
        return response_schema.model_validate(updated)

    @router.put("/file/upload/{entity_id}", response_model=response_schema, summary="Upload entity file")
    async def upload_file(
        entity_id: UUID,
        file: UploadFile = File(...),
        tenant: str = Depends(get_tenant),
        service=Depends(get_service),
    ):
        entity = await service.upload_file(tenant, entity_id, file)
        await service.db.commit()
        return response_schema.model_validate(entity)

    @router.get("/file/download", summary="Download entity file")
    async def download_file(
        id: UUID = Query(...),
        version: int | None = Query(None, ge=1),
        tenant: str = Depends(get_tenant),
        service=Depends(get_service),
    ):
        entity, content = await service.download_file(tenant, id, version)
        return file_response(content, entity.original_file_name or entity.file_name, entity.type)

    return router


def build_image_router(
    service_class: type,
    *,
    create_schema: type[BaseModel],
    update_schema: type[BaseModel],
    response_schema: type[BaseModel],
    router: APIRouter | None = None,
) -> APIRouter:
    """Build the routes creating, updating, uploading and downloading an entity image."""
    router = router if router is not None else APIRouter()
    model = service_class.model
    get_service = _service_dependency(service_class)

    @router.post(
        "/image",
        response_model=response_schema,
        status_code=status.HTTP_201_CREATED,
        summary="Create entity with image",
    )
    async def create_with_image(
        data: str = Form(...),
        file: UploadFile | None = File(None),
        tenant: str = Depends(get_tenant),
        service=Depends(get_service),
    ):
        payload = parse_form_payload(create_schema, data)
        entity = await service.create_with_image(tenant, model(**payload.model_dump()), file)
        await service.db.commit()
        return response_schema.model_validate(entity)

    @router.put("/image", response_model=response_schema, summary="Update entity with image")
    async def update_with_image(
        id: UUID = Query(...),
        data: str = Form(...),
        file: UploadFile | None = File(None),
        tenant: str = Depends(get_tenant),
        service=Depends(get_service),
    ):
        payload = parse_form_payload(update_schema, data)
        entity = model(**payload.model_dump(exclude_unset=True))
        entity.id = id
        updated = await service.update_with_image(tenant, entity, file)
        await service.db.commit()
        return response_schema.model_validate(updated)

    @router.post("/image/upload/{entity_id}", response_model=response_schema, summary="Upload entity image")
    async def upload_image(
        entity_id: UUID,
        file: UploadFile = File(...),
        tenant: str = Depends(get_tenant),
        service=Depends(get_service),
    ):
        entity = await service.upload_image(tenant, entity_id, file)
        await service.db.commit()
        return response_schema.model_validate(entity)

    @router.get("/image/download/{entity_id}", summary="Download entity image")
    async def download_image(
        entity_id: UUID,
        tenant: str = Depends(get_tenant),
        service=Depends(get_service),
    ):
        entity, content = await service.download_image(tenant, entity_id)
        # Images are always stored as PNG, also under a bare DMS code
        return file_response(content, PurePath(entity.image_path).name, IMAGE_MEDIA_TYPE)

    return router


def build_multi_file_router(
    service_class: type,
    *,
    linked_file_schema: type[BaseModel],
    router: APIRouter | None = None,
) -> APIRouter:
    """Build the routes managing the additional files of a parent entity."""
    router = router if router is not None else APIRouter()
    get_service = _service_dependency(service_class)

    def to_response(linked_files) -> list[BaseModel]:
        return [linked_file_schema.model_validate(linked) for linked in linked_files]

    @router.put(
        "/multi-files/upload",
        response_model=list[linked_file_schema],
        summary="Upload additional files",
    )
    async def upload_additional_files(
        parent_id: UUID = Query(...),
        files: list[UploadFile] = File(...),
        tenant: str = Depends(get_tenant),
        service=Depends(get_service),
    ):
        linked_files = await service.upload_additional_files(tenant, parent_id, files)
        await service.db.commit()
        return to_response(linked_files)

    @router.put(
        "/multi-files/upload/one",
        response_model=list[linked_file_schema],
        summary="Upload one additional file",
    )
    async def upload_additional_file(
        parent_id: UUID = Query(...),
        file: UploadFile = File(...),
        tenant: str = Depends(get_tenant),
        service=Depends(get_service),
    ):
        linked_files = await service.upload_additional_file(tenant, parent_id, file)
        await service.db.commit()
        return to_response(linked_files)

    @router.get("/multi-files/download", summary="Download an additional file")
    async def download_additional_file(
        parent_id: UUID = Query(...),
        file_id: UUID = Query(...),
        version: int | None = Query(None, ge=1),
        tenant: str = Depends(get_tenant),
        service=Depends(get_service),
    ):
        linked, content = await service.download_additional_file(tenant, parent_id, file_id, version)
        return file_response(content, linked.original_file_name or linked.file_name, linked.mimetype)

    @router.delete(
        "/multi-files",
        status_code=status.HTTP_204_NO_CONTENT,
        summary="Delete an additional file",
    )
    async def delete_additional_file(
        parent_id: UUID = Query(...),
        file_id: UUID = Query(...),
        tenant: str = Depends(get_tenant),
        service=Depends(get_service),
    ) -> None:
        await service.delete_additional_file(tenant, parent_id, file_id)
        await service.db.commit()

    return router
