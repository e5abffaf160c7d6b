"""API routes for resumes: photo, main document and additional files."""

from fastapi import APIRouter

from tenantfiles.api.routers import (
    build_crud_router,
    build_file_router,
    build_image_router,
    build_multi_file_router,
)
from tenantfiles.schemas.resume import (
    LinkedFileResponse,
    ResumeCreate,
    ResumeResponse,
    ResumeUpdate,
)
from tenantfiles.services.resume_service import ResumeService

schemas = {
    "create_schema": ResumeCreate,
    "update_schema": ResumeUpdate,
    "response_schema": ResumeResponse,
}

router = APIRouter()
build_image_router(ResumeService, router=router, **schemas)
build_multi_file_router(ResumeService, router=router, linked_file_schema=LinkedFileResponse)
build_file_router(ResumeService, router=router, **schemas)
build_crud_router(ResumeService, router=router, **schemas)
